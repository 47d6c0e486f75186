"""Events posted by the extraction driver and classification tasks to the aggregator queue."""

from dataclasses import dataclass
from typing import Union

from framescan.ocr.classifier_base import ClassifierError
from framescan.ocr.schema import ClassificationResult
from framescan.pipeline.frames import FrameArtifact


@dataclass(frozen=True)
class FrameDispatched:
    frame: FrameArtifact


@dataclass(frozen=True)
class ClassificationSucceeded:
    frame: FrameArtifact
    result: ClassificationResult


@dataclass(frozen=True)
class ClassificationFailed:
    frame: FrameArtifact
    error: ClassifierError


@dataclass(frozen=True)
class ExtractionFinished:
    visited: int


@dataclass(frozen=True)
class ExtractionAborted:
    timestamp: float
    cause: BaseException


PipelineEvent = Union[
    FrameDispatched,
    ClassificationSucceeded,
    ClassificationFailed,
    ExtractionFinished,
    ExtractionAborted,
]
