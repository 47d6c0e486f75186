"""FrameExtractionDriver: sequential extraction with detached OCR fan-out."""

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from framescan.ocr.classifier_base import BaseOcrClassifier, ClassifierError
from framescan.pipeline.events import (
    ClassificationFailed,
    ClassificationSucceeded,
    ExtractionAborted,
    ExtractionFinished,
    FrameDispatched,
    PipelineEvent,
)
from framescan.pipeline.frames import FrameArtifact
from framescan.video.frame_extractor import BaseFrameExtractor

_log = logging.getLogger(__name__)


class FrameExtractionDriver:
    """
    Visits timestamps in order, one extraction at a time (the backend seeks much faster
    sequentially than in parallel). Each extracted frame is handed to the classifier as a
    detached task and the driver moves on without waiting for it.

    The driver never touches run state; it only posts events to the queue.
    """

    def __init__(
        self,
        extractor: BaseFrameExtractor,
        classifier: BaseOcrClassifier,
        events: "asyncio.Queue[PipelineEvent]",
    ) -> None:
        self._extractor = extractor
        self._classifier = classifier
        self._events = events
        self._in_flight: set[asyncio.Task[None]] = set()

    async def run(self, video_path: Path, timestamps: Sequence[float], output_dir: Path) -> None:
        output_dir = Path(output_dir)
        for timestamp in timestamps:
            try:
                await self._extractor.extract_frame(video_path, timestamp, output_dir)
            except Exception as e:
                _log.error("Frame extraction error at %s seconds: %s", timestamp, e)
                self._events.put_nowait(ExtractionAborted(timestamp, e))
                return

            frame = FrameArtifact.for_timestamp(output_dir, timestamp)
            if not frame.image_exists():
                _log.warning(
                    "Extraction reported success at %s seconds but %s is missing; skipping",
                    timestamp,
                    frame.image_path,
                )
                continue
            _log.info("Took frame at %s seconds", timestamp)
            self._dispatch(frame)

        self._events.put_nowait(ExtractionFinished(visited=len(timestamps)))

    def _dispatch(self, frame: FrameArtifact) -> None:
        # Dispatched is queued before the task exists, so it always precedes the task's outcome.
        self._events.put_nowait(FrameDispatched(frame))
        task = asyncio.create_task(self._classify(frame))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _classify(self, frame: FrameArtifact) -> None:
        try:
            result = await asyncio.to_thread(self._classifier.classify, frame.image_path)
        except ClassifierError as e:
            self._events.put_nowait(ClassificationFailed(frame, e))
        except Exception as e:
            _log.error("Unexpected OCR error for %s", frame.image_path, exc_info=True)
            wrapped = ClassifierError(f"{type(e).__name__}: {e}", frame.image_path)
            wrapped.__cause__ = e
            self._events.put_nowait(ClassificationFailed(frame, wrapped))
        else:
            self._events.put_nowait(ClassificationSucceeded(frame, result))

    def cancel_in_flight(self) -> int:
        """Cancel every classification task still running; return how many were cancelled."""
        pending = [t for t in self._in_flight if not t.done()]
        for task in pending:
            task.cancel()
        return len(pending)
