"""Factory for OCR classifiers. The HTTP backend is imported lazily so tests and mock runs skip requests setup."""

from framescan.core.config import Settings
from framescan.ocr.classifier_base import BaseOcrClassifier


def get_ocr_classifier(classifier_name: str, settings: Settings | None = None) -> BaseOcrClassifier:
    """Return an OCR classifier by name, configured from settings where the backend needs it."""
    if classifier_name == "mock":
        from framescan.ocr.classifier_base import MockOcrClassifier

        return MockOcrClassifier()
    if classifier_name == "azure":
        from framescan.ocr.classifier_azure import AzureOcrClassifier

        cfg = settings if settings is not None else Settings()
        return AzureOcrClassifier(
            cfg.ocr_endpoint,
            cfg.ocr_subscription_key or "",
            language=cfg.ocr_language,
            timeout=cfg.ocr_timeout_seconds,
        )
    raise ValueError(f"Unknown OCR classifier: {classifier_name}")
