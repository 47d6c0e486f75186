"""Pytest fixtures. Fake extraction and OCR collaborators so pipeline tests need neither ffmpeg nor a network."""

import asyncio
import logging
import threading
from pathlib import Path

import pytest

from framescan.core import config as config_module
from framescan.ocr.classifier_base import BaseOcrClassifier, ClassifierError
from framescan.ocr.schema import ClassificationResult, ClassifierCard
from framescan.video.frame_extractor import BaseFrameExtractor, ExtractionError, frame_image_path

GATE_TIMEOUT_SECONDS = 5.0


def ocr_result(text: str | None = None) -> ClassificationResult:
    """Azure-shaped OCR result: one region with `text`, or no regions when text is None."""
    if text is None:
        return ClassificationResult.model_validate({"language": "unk", "regions": []})
    return ClassificationResult.model_validate(
        {
            "language": "en",
            "textAngle": 0.0,
            "orientation": "Up",
            "regions": [
                {
                    "boundingBox": "10,10,200,40",
                    "lines": [
                        {
                            "boundingBox": "10,10,200,40",
                            "words": [
                                {"boundingBox": "10,10,90,40", "text": w}
                                for w in text.split()
                            ],
                        }
                    ],
                }
            ],
        }
    )


class FakeExtractor(BaseFrameExtractor):
    """
    Writes a small file for each timestamp. Timestamps in `missing` report success without
    writing; reaching `fail_at` raises ExtractionError. Each call sleeps `delay_seconds`.
    Tracks call order and concurrency.
    """

    def __init__(
        self,
        *,
        missing: set[float] | None = None,
        fail_at: float | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.missing = missing or set()
        self.fail_at = fail_at
        self.delay_seconds = delay_seconds
        self.calls: list[float] = []
        self.active = 0
        self.max_active = 0
        self.all_visited = threading.Event()
        self.expected_calls: int | None = None

    async def extract_frame(self, video_path: Path, timestamp: float, output_dir: Path) -> None:
        self.calls.append(timestamp)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay_seconds)
            if self.fail_at is not None and timestamp == self.fail_at:
                raise ExtractionError(f"seek failed at {timestamp}")
            if timestamp not in self.missing:
                path = frame_image_path(output_dir, timestamp)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(b"\x89PNG fake frame")
        finally:
            self.active -= 1
            if self.expected_calls is not None and len(self.calls) >= self.expected_calls:
                self.all_visited.set()


class ScriptedClassifier(BaseOcrClassifier):
    """
    Returns a scripted result per timestamp (parsed from the image file name).

    - texts: timestamp -> detected text (absent means no regions)
    - failures: timestamps that raise ClassifierError
    - unexpected: timestamps that raise RuntimeError
    - wait_for: timestamp -> timestamps that must finish classifying first
    - gates: timestamp -> threading.Event to wait on before answering
    """

    def __init__(
        self,
        *,
        texts: dict[float, str] | None = None,
        failures: set[float] | None = None,
        unexpected: set[float] | None = None,
        wait_for: dict[float, set[float]] | None = None,
        gates: dict[float, threading.Event] | None = None,
    ) -> None:
        self.texts = texts or {}
        self.failures = failures or set()
        self.unexpected = unexpected or set()
        self.wait_for = wait_for or {}
        self.gates = gates or {}
        self.calls: list[float] = []
        self.finished: list[float] = []
        self.gate_timeouts: list[float] = []
        self._cond = threading.Condition()

    def get_classifier_card(self) -> ClassifierCard:
        return ClassifierCard(name="scripted", version="test")

    def classify(self, image_path: Path) -> ClassificationResult:
        timestamp = float(Path(image_path).stem)
        with self._cond:
            self.calls.append(timestamp)
        gate = self.gates.get(timestamp)
        if gate is not None and not gate.wait(GATE_TIMEOUT_SECONDS):
            self.gate_timeouts.append(timestamp)
        deps = self.wait_for.get(timestamp, set())
        with self._cond:
            if not self._cond.wait_for(lambda: deps <= set(self.finished), GATE_TIMEOUT_SECONDS):
                self.gate_timeouts.append(timestamp)
        try:
            if timestamp in self.failures:
                raise ClassifierError(f"HTTP 500 for {image_path}", Path(image_path))
            if timestamp in self.unexpected:
                raise RuntimeError("connection pool exploded")
            return ocr_result(self.texts.get(timestamp))
        finally:
            with self._cond:
                self.finished.append(timestamp)
                self._cond.notify_all()


@pytest.fixture(autouse=True)
def _reset_config():
    """Every test starts and ends without a cached Settings singleton."""
    config_module.reset_config()
    yield
    config_module.reset_config()


@pytest.fixture
def restore_root_logging():
    """Snapshot root logger handlers/level and restore them after the test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for h in root.handlers[:]:
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


@pytest.fixture
def video_file(tmp_path):
    """A placeholder video path; fake extractors never read it."""
    path = tmp_path / "video.mp4"
    path.write_bytes(b"fake video")
    return path


@pytest.fixture
def frames_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path
