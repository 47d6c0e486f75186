"""FrameArtifact: one sampled instant of a video and its OCR classification."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from framescan.ocr.schema import ClassificationResult
from framescan.video.frame_extractor import frame_image_path


@dataclass
class FrameArtifact:
    timestamp: float
    directory: Path
    image_path: Path
    classification: ClassificationResult | None = None

    @classmethod
    def for_timestamp(cls, directory: Path, timestamp: float) -> "FrameArtifact":
        directory = Path(directory)
        return cls(timestamp=timestamp, directory=directory, image_path=frame_image_path(directory, timestamp))

    @property
    def time(self) -> float:
        return self.timestamp

    @property
    def is_relevant(self) -> bool:
        """True once classified with at least one detected text region."""
        return self.classification is not None and self.classification.has_regions

    def image_exists(self) -> bool:
        """True if the extracted image is on disk and non-empty."""
        try:
            return self.image_path.exists() and self.image_path.stat().st_size > 0
        except OSError:
            return False

    def attach_classification(self, result: ClassificationResult) -> None:
        if self.classification is not None:
            raise ValueError(f"Frame at {self.timestamp}s already classified")
        self.classification = result

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "directory": str(self.directory),
            "image_path": str(self.image_path),
            "classification": self.classification.raw() if self.classification is not None else None,
        }


def order_frames(frames: Iterable[FrameArtifact]) -> list[FrameArtifact]:
    """Return frames sorted ascending by timestamp (stable)."""
    return sorted(frames, key=lambda f: f.timestamp)
