"""Sample timestamp generation: start, start+step, ... up to and including max."""

import math

from framescan.core.config import Settings

# Absorbs float error in (max - start) / step so the last sample is not lost, e.g. 0.3 / 0.1.
_COUNT_EPSILON = 1e-9


def generate_timestamps(start: float, max_second: float, step: float) -> list[float]:
    """
    Return [start, start+step, start+2*step, ...] truncated at the last value <= max_second.

    Pure; assumes step > 0 (validate with sample_timestamps first). Values are computed as
    start + i*step rather than by repeated addition, so they do not drift on long videos.
    The first value is exactly start; only the last one is clamped to max_second.
    """
    if max_second < start:
        return []
    count = int(math.floor((max_second - start) / step + _COUNT_EPSILON)) + 1
    timestamps = [start + i * step for i in range(count)]
    if timestamps[-1] > max_second:
        timestamps[-1] = max_second
    return timestamps


def sample_timestamps(start: float, max_second: float, step: float) -> list[float]:
    """Validate sampling parameters, then generate. Raises ValueError on a bad configuration."""
    for name, value in (("start", start), ("max_second", max_second), ("step", step)):
        if not math.isfinite(value):
            raise ValueError(f"{name} must be finite, got {value!r}")
    if step <= 0:
        raise ValueError(f"Frame interval must be > 0, got {step!r}")
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start!r}")
    return generate_timestamps(start, max_second, step)


def timestamps_from_settings(settings: Settings) -> list[float]:
    return sample_timestamps(
        settings.start_second,
        settings.max_second,
        settings.frame_interval_seconds,
    )
