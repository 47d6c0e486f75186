"""OCR module: response contracts and classifier abstraction."""

from framescan.ocr.schema import ClassificationResult, ClassifierCard, OcrLine, OcrRegion, OcrWord
from framescan.ocr.classifier_base import BaseOcrClassifier, ClassifierError, MockOcrClassifier
from framescan.ocr.factory import get_ocr_classifier

__all__ = [
    "BaseOcrClassifier",
    "ClassificationResult",
    "ClassifierCard",
    "ClassifierError",
    "MockOcrClassifier",
    "OcrLine",
    "OcrRegion",
    "OcrWord",
    "get_ocr_classifier",
]
