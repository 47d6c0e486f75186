"""Logging setup for scans, plus the FlightLogger buffer that is dumped when a scan fails."""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from framescan.core.config import Settings, get_config

FLIGHT_LOG_CAPACITY = 20_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
# One record per pooled connection per OCR request otherwise.
QUIET_LOGGERS = ("urllib3",)

_flight_logger: "FlightLogger | None" = None


class FlightLogger(logging.Handler):
    """
    Keeps the last `capacity` records of a scan (every level) in memory so a failed scan can be
    diagnosed without rerunning it at DEBUG.
    """

    def __init__(self, forensics_dir: str | Path, capacity: int = FLIGHT_LOG_CAPACITY) -> None:
        super().__init__(level=logging.DEBUG)
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)
        self.forensics_dir = Path(forensics_dir)

    def emit(self, record: logging.LogRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def dump(self, video_stem: str, context: Mapping[str, Any] | None = None) -> str:
        """
        Write `{forensics_dir}/{video_stem}_{UTC time}.log` and return its path.

        `context` (video path, sampling parameters, the error) is written as `# key: value`
        header lines ahead of the buffered records.
        """
        self.forensics_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        path = self.forensics_dir / f"{video_stem}_{stamp}.log"
        formatter = self.formatter or logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        with open(path, "w") as f:
            for key, value in (context or {}).items():
                f.write(f"# {key}: {value}\n")
            f.write(f"# records: {len(self._records)}\n")
            for record in self._records:
                f.write(formatter.format(record) + "\n")
        return str(path)


def get_flight_logger() -> FlightLogger | None:
    """The FlightLogger installed by the last setup_logging() call, if any."""
    return _flight_logger


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure logging for one CLI invocation.

    - Root at DEBUG; the console handler filters at settings.log_level.
    - Console output goes to stderr so `scan --json` keeps stdout clean.
    - Calling it again replaces the handlers instead of stacking them.
    """
    global _flight_logger
    cfg = settings if settings is not None else get_config()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in root.handlers[:]:
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.getLevelName(cfg.log_level.upper()))
    console.setFormatter(formatter)
    root.addHandler(console)

    flight = FlightLogger(cfg.forensics_dir)
    flight.setFormatter(formatter)
    root.addHandler(flight)
    _flight_logger = flight

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)
