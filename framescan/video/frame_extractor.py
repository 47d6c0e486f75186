"""Still-frame extraction at a timestamp: collaborator interface and the FFmpeg backend."""

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

_log = logging.getLogger(__name__)

_DEFAULT_STDERR_TAIL_LINES = 40
FRAME_IMAGE_SUFFIX = ".png"


def format_timestamp(timestamp: float) -> str:
    """Render a timestamp for file names and -ss: 5.0 -> '5', 2.5 -> '2.5', 1e-05 -> '0.00001'."""
    value = float(timestamp)
    if value.is_integer():
        return str(int(value))
    # Shortest round-trip digits, always positional: ffmpeg rejects exponent notation.
    return format(Decimal(repr(value)), "f")


def frame_image_path(directory: Path, timestamp: float) -> Path:
    """Path of the image an extractor writes for timestamp inside directory."""
    return Path(directory) / f"{format_timestamp(timestamp)}{FRAME_IMAGE_SUFFIX}"


def _cmd_to_repro(cmd: list[str]) -> str:
    """Render a shell-safe repro command line for copy/paste."""
    return " ".join(shlex.quote(str(c)) for c in cmd)


def _stderr_tail(stderr: str, *, max_lines: int = _DEFAULT_STDERR_TAIL_LINES) -> str:
    if not stderr:
        return ""
    lines = stderr.strip().splitlines()
    return "\n".join(lines[-max_lines:]).strip()


class ExtractionError(Exception):
    """Raised when the extraction backend fails for a timestamp (not raised for an absent output)."""

    def __init__(self, message: str, *, repro: str | None = None, stderr_tail: str = "") -> None:
        super().__init__(message)
        self.repro = repro
        self.stderr_tail = stderr_tail


@dataclass(frozen=True)
class FFmpegAttempt:
    cmd: list[str]
    returncode: int
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def repro(self) -> str:
        return _cmd_to_repro(self.cmd)

    def stderr_tail(self, *, max_lines: int = _DEFAULT_STDERR_TAIL_LINES) -> str:
        return _stderr_tail(self.stderr, max_lines=max_lines)


class BaseFrameExtractor(ABC):
    """Writes one still image per call to frame_image_path(output_dir, timestamp)."""

    @abstractmethod
    async def extract_frame(self, video_path: Path, timestamp: float, output_dir: Path) -> None:
        """Extract the frame at timestamp. Raises ExtractionError when the backend fails."""
        ...


class FFmpegFrameExtractor(BaseFrameExtractor):
    """
    Runs one short-lived FFmpeg per frame with fast-seeking (-ss before -i).

    A seek past the end of the video exits 0 without writing a file; callers detect that by
    checking the output path rather than by an exception.
    """

    def __init__(self, frame_size: str | None = "1920x1080", ffmpeg_bin: str = "ffmpeg") -> None:
        self._frame_size = frame_size
        self._ffmpeg_bin = ffmpeg_bin

    def build_command(self, video_path: Path, timestamp: float, dest: Path) -> list[str]:
        cmd = [
            self._ffmpeg_bin,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-ss",
            format_timestamp(timestamp),
            "-i",
            str(video_path),
            "-frames:v",
            "1",
        ]
        if self._frame_size:
            cmd += ["-s", self._frame_size]
        cmd.append(str(dest))
        return cmd

    async def _run(self, cmd: list[str]) -> FFmpegAttempt:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExtractionError(f"Cannot start FFmpeg: {e}", repro=_cmd_to_repro(cmd)) from e
        _, stderr_bytes = await process.communicate()
        return FFmpegAttempt(
            cmd=cmd,
            returncode=int(process.returncode or 0),
            stderr=stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else "",
        )

    async def extract_frame(self, video_path: Path, timestamp: float, output_dir: Path) -> None:
        video_path = Path(video_path)
        if not video_path.exists():
            raise ExtractionError(f"Video not found: {video_path}")
        dest = frame_image_path(output_dir, timestamp)
        dest.parent.mkdir(parents=True, exist_ok=True)
        attempt = await self._run(self.build_command(video_path, timestamp, dest))
        if not attempt.ok:
            _log.warning(
                "FFmpeg frame extraction failed at %ss. Repro: %s\n%s",
                format_timestamp(timestamp),
                attempt.repro,
                attempt.stderr_tail(),
            )
            raise ExtractionError(
                f"FFmpeg exited with {attempt.returncode} extracting {format_timestamp(timestamp)}s "
                f"from {video_path}",
                repro=attempt.repro,
                stderr_tail=attempt.stderr_tail(),
            )
