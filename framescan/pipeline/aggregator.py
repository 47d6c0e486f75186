"""PipelineAggregator: sole owner of run state and of the single resolve/fail decision."""

import logging
from dataclasses import dataclass, field

from framescan.pipeline.errors import ErrorBudgetExceeded, ExtractionFailed, PipelineError
from framescan.pipeline.events import (
    ClassificationFailed,
    ClassificationSucceeded,
    ExtractionAborted,
    ExtractionFinished,
    FrameDispatched,
    PipelineEvent,
)
from framescan.pipeline.frames import FrameArtifact, order_frames

_log = logging.getLogger(__name__)


@dataclass
class PipelineState:
    total_dispatched: int = 0
    completed_count: int = 0
    error_count: int = 0
    relevant_frames: list[FrameArtifact] = field(default_factory=list)
    extraction_done: bool = False

    @property
    def settled(self) -> bool:
        """True when extraction has ended and every dispatched classification has reported back."""
        return self.extraction_done and self.completed_count == self.total_dispatched


class PipelineAggregator:
    """
    Applies pipeline events one at a time and decides, exactly once, how the run ends.

    After each event the error budget is checked first, then completion:
    - error_count > error_tolerance -> ErrorBudgetExceeded
    - extraction finished and completed_count == total_dispatched -> ordered relevant frames

    Completion is detected by counting, not by tracking timestamps: every dispatched
    classification reports exactly once. Events applied after the outcome is decided still
    update the counters (late completions of work that was not cancelled) but never change
    the outcome.
    """

    def __init__(self, error_tolerance: int) -> None:
        if error_tolerance < 0:
            raise ValueError("error_tolerance must be >= 0")
        self.error_tolerance = error_tolerance
        self.state = PipelineState()
        self._done = False
        self._frames: list[FrameArtifact] | None = None
        self._error: PipelineError | None = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def error(self) -> PipelineError | None:
        return self._error

    def outcome(self) -> list[FrameArtifact]:
        """Return the ordered relevant frames, or raise the terminal error."""
        if not self._done:
            raise RuntimeError("Pipeline outcome requested before the run finished")
        if self._error is not None:
            raise self._error
        if self._frames is None:
            raise RuntimeError("Pipeline resolved without a frame list")
        return list(self._frames)

    def apply(self, event: PipelineEvent) -> None:
        state = self.state
        late = self._done
        if isinstance(event, FrameDispatched):
            state.total_dispatched += 1
        elif isinstance(event, ClassificationSucceeded):
            state.completed_count += 1
            event.frame.attach_classification(event.result)
            if event.frame.is_relevant:
                _log.info("Relevant frame at %s seconds", event.frame.time)
                state.relevant_frames.append(event.frame)
        elif isinstance(event, ClassificationFailed):
            state.completed_count += 1
            state.error_count += 1
            _log.error(
                "Error during OCR for image at %s: %s",
                event.frame.image_path,
                event.error,
            )
        elif isinstance(event, ExtractionFinished):
            state.extraction_done = True
            _log.debug("Extraction visited all %d timestamps", event.visited)
        elif isinstance(event, ExtractionAborted):
            state.extraction_done = True
            self._fail(ExtractionFailed(event.timestamp, event.cause))
        else:
            raise TypeError(f"Unknown pipeline event: {event!r}")

        if late:
            _log.debug("Late event after run ended: %s (state=%s)", type(event).__name__, state)
            return
        self._evaluate()

    def _evaluate(self) -> None:
        if self._done:
            return
        state = self.state
        if state.error_count > self.error_tolerance:
            self._fail(ErrorBudgetExceeded(state.error_count, self.error_tolerance))
            return
        if state.settled:
            self._resolve(order_frames(state.relevant_frames))

    def _resolve(self, frames: list[FrameArtifact]) -> None:
        self._done = True
        self._frames = frames
        _log.info("Found %d relevant frames", len(frames))
        _log.info("Timestamps of relevant frames: %s", [f.time for f in frames])

    def _fail(self, error: PipelineError) -> None:
        if self._done:
            return
        self._done = True
        self._error = error
        _log.error("Frame pipeline failed: %s", error)
