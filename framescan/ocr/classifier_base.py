"""Abstract base and mock implementation for OCR classifiers."""

import time
from abc import ABC, abstractmethod
from pathlib import Path

from framescan.ocr.schema import (
    ClassificationResult,
    ClassifierCard,
    OcrLine,
    OcrRegion,
    OcrWord,
)


class ClassifierError(Exception):
    """Raised when one classification call fails (transport, HTTP status, or unparseable response)."""

    def __init__(self, message: str, image_path: Path | None = None) -> None:
        super().__init__(message)
        self.image_path = image_path


class BaseOcrClassifier(ABC):
    """Abstract base for OCR over a single still image. Implementations may block; callers run them off-loop."""

    @abstractmethod
    def get_classifier_card(self) -> ClassifierCard:
        """Return backend identity (name, version)."""
        ...

    @abstractmethod
    def classify(self, image_path: Path) -> ClassificationResult:
        """Run OCR on the image at path. Raises ClassifierError on failure."""
        ...


class MockOcrClassifier(BaseOcrClassifier):
    """Placeholder classifier for testing and development."""

    def __init__(self, *, detect_text: bool = True, delay_seconds: float = 0.0) -> None:
        self._detect_text = detect_text
        self._delay = delay_seconds

    def get_classifier_card(self) -> ClassifierCard:
        return ClassifierCard(name="mock-ocr", version="1.0")

    def classify(self, image_path: Path) -> ClassificationResult:
        if self._delay:
            time.sleep(self._delay)
        if not self._detect_text:
            return ClassificationResult(language="unk", regions=[])
        word = OcrWord(bounding_box="0,0,10,10", text="MOCK TEXT")
        line = OcrLine(bounding_box="0,0,10,10", words=[word])
        return ClassificationResult(
            language="en",
            text_angle=0.0,
            orientation="Up",
            regions=[OcrRegion(bounding_box="0,0,10,10", lines=[line])],
        )
