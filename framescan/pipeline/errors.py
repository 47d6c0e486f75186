"""Terminal failures of a frame classification run."""


class PipelineError(Exception):
    """Base for the two ways a run can fail."""


class ExtractionFailed(PipelineError):
    """The extraction backend failed; the run stops with no partial result."""

    def __init__(self, timestamp: float, cause: BaseException) -> None:
        super().__init__(f"Frame extraction failed at {timestamp}s: {cause}")
        self.timestamp = timestamp
        self.cause = cause


class ErrorBudgetExceeded(PipelineError):
    """More OCR calls failed than the configured tolerance allows."""

    def __init__(self, error_count: int, tolerance: int) -> None:
        super().__init__(
            f"{error_count} OCR classification(s) failed, exceeding the tolerance of {tolerance}"
        )
        self.error_count = error_count
        self.tolerance = tolerance
