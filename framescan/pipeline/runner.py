"""Pipeline invocation: wires driver and aggregator together for one run."""

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from framescan.core.config import Settings
from framescan.ocr.classifier_base import BaseOcrClassifier
from framescan.ocr.factory import get_ocr_classifier
from framescan.pipeline.aggregator import PipelineAggregator
from framescan.pipeline.driver import FrameExtractionDriver
from framescan.pipeline.errors import PipelineError
from framescan.pipeline.events import PipelineEvent
from framescan.pipeline.frames import FrameArtifact
from framescan.video.frame_extractor import BaseFrameExtractor, FFmpegFrameExtractor
from framescan.video.intervals import timestamps_from_settings

_log = logging.getLogger(__name__)


class FrameClassificationPipeline:
    """
    Runs sequential extraction plus detached OCR over a timestamp sequence and returns the
    relevant frames in timestamp order.

    When a run fails (extraction error or error budget exceeded) and
    cancel_in_flight_on_failure is True, remaining extraction and in-flight OCR calls are
    cancelled. When False, they are left running and a background task keeps feeding their
    outcomes to the aggregator after the failure has been raised.
    """

    def __init__(
        self,
        extractor: BaseFrameExtractor,
        classifier: BaseOcrClassifier,
        *,
        error_tolerance: int,
        cancel_in_flight_on_failure: bool = True,
    ) -> None:
        self._extractor = extractor
        self._classifier = classifier
        self._error_tolerance = error_tolerance
        self._cancel_on_failure = cancel_in_flight_on_failure
        self._background: set[asyncio.Task[None]] = set()
        self.last_aggregator: PipelineAggregator | None = None

    async def run(
        self,
        video_path: str | Path,
        timestamps: Sequence[float],
        output_dir: str | Path,
    ) -> list[FrameArtifact]:
        events: asyncio.Queue[PipelineEvent] = asyncio.Queue()
        aggregator = PipelineAggregator(self._error_tolerance)
        self.last_aggregator = aggregator
        driver = FrameExtractionDriver(self._extractor, self._classifier, events)
        driver_task = asyncio.create_task(driver.run(Path(video_path), timestamps, Path(output_dir)))

        try:
            while not aggregator.done:
                aggregator.apply(await events.get())
        except BaseException:
            driver_task.cancel()
            driver.cancel_in_flight()
            raise

        if aggregator.failed:
            if self._cancel_on_failure:
                driver_task.cancel()
                cancelled = driver.cancel_in_flight()
                if cancelled:
                    _log.info("Cancelled %d in-flight OCR call(s) after failure", cancelled)
            else:
                drain = asyncio.create_task(self._drain(aggregator, events, driver_task))
                self._background.add(drain)
                drain.add_done_callback(self._background.discard)
        else:
            await driver_task
        return aggregator.outcome()

    async def _drain(
        self,
        aggregator: PipelineAggregator,
        events: "asyncio.Queue[PipelineEvent]",
        driver_task: "asyncio.Task[None]",
    ) -> None:
        """Apply late events until extraction has ended and every dispatched call reported back."""
        while not aggregator.state.settled:
            aggregator.apply(await events.get())
        await driver_task
        _log.debug("Drained failed run: %s", aggregator.state)

    async def wait_background(self) -> None:
        """Wait for drain tasks left behind by failed runs."""
        if self._background:
            await asyncio.gather(*list(self._background))


async def run_pipeline(
    video_path: str | Path,
    timestamps: Sequence[float],
    output_dir: str | Path,
    *,
    extractor: BaseFrameExtractor,
    classifier: BaseOcrClassifier,
    error_tolerance: int,
    cancel_in_flight_on_failure: bool = True,
) -> list[FrameArtifact]:
    """Return the relevant frames of video_path sorted by timestamp; raise ExtractionFailed or ErrorBudgetExceeded."""
    pipeline = FrameClassificationPipeline(
        extractor,
        classifier,
        error_tolerance=error_tolerance,
        cancel_in_flight_on_failure=cancel_in_flight_on_failure,
    )
    return await pipeline.run(video_path, timestamps, output_dir)


def default_output_dir(settings: Settings, video_path: Path) -> Path:
    return Path(settings.data_dir) / video_path.stem / "images"


def scan_video(
    settings: Settings,
    video_path: str | Path,
    output_dir: str | Path | None = None,
    *,
    classifier: BaseOcrClassifier | None = None,
    extractor: BaseFrameExtractor | None = None,
) -> list[FrameArtifact]:
    """Synchronous entry point: build timestamps and collaborators from settings and run one scan."""
    video_path = Path(video_path)
    timestamps = timestamps_from_settings(settings)
    out = Path(output_dir) if output_dir is not None else default_output_dir(settings, video_path)
    out.mkdir(parents=True, exist_ok=True)
    if classifier is None:
        classifier = get_ocr_classifier(settings.classifier, settings)
    if extractor is None:
        extractor = FFmpegFrameExtractor(frame_size=settings.frame_size)

    pipeline = FrameClassificationPipeline(
        extractor,
        classifier,
        error_tolerance=settings.error_tolerance_threshold,
        cancel_in_flight_on_failure=settings.cancel_in_flight_on_failure,
    )
    _log.info("Begin extracting %d frames from %s into %s", len(timestamps), video_path, out)
    return asyncio.run(_run_to_completion(pipeline, video_path, timestamps, out))


async def _run_to_completion(
    pipeline: FrameClassificationPipeline,
    video_path: Path,
    timestamps: Sequence[float],
    output_dir: Path,
) -> list[FrameArtifact]:
    """
    Run one scan inside asyncio.run. A failed run is only re-raised once its drain task has
    finished, since leaving asyncio.run cancels every task still pending.
    """
    try:
        return await pipeline.run(video_path, timestamps, output_dir)
    except PipelineError:
        await pipeline.wait_background()
        raise
