"""Frame classification pipeline: sequential extraction, detached OCR, counted completion."""

from framescan.pipeline.aggregator import PipelineAggregator, PipelineState
from framescan.pipeline.driver import FrameExtractionDriver
from framescan.pipeline.errors import ErrorBudgetExceeded, ExtractionFailed, PipelineError
from framescan.pipeline.frames import FrameArtifact, order_frames
from framescan.pipeline.runner import FrameClassificationPipeline, run_pipeline, scan_video

__all__ = [
    "ErrorBudgetExceeded",
    "ExtractionFailed",
    "FrameArtifact",
    "FrameClassificationPipeline",
    "FrameExtractionDriver",
    "PipelineAggregator",
    "PipelineError",
    "PipelineState",
    "order_frames",
    "run_pipeline",
    "scan_video",
]
