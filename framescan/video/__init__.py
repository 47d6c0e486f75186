"""Video sampling: timestamp generation and still-frame extraction (FFmpeg)."""

from framescan.video.frame_extractor import (
    BaseFrameExtractor,
    ExtractionError,
    FFmpegFrameExtractor,
    frame_image_path,
)
from framescan.video.intervals import generate_timestamps, sample_timestamps

__all__ = [
    "BaseFrameExtractor",
    "ExtractionError",
    "FFmpegFrameExtractor",
    "frame_image_path",
    "generate_timestamps",
    "sample_timestamps",
]
