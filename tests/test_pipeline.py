"""End-to-end tests for the frame classification pipeline with fake extraction and OCR collaborators."""

import asyncio
import threading

import pytest

from framescan.core.config import Settings
from framescan.ocr.classifier_base import MockOcrClassifier
from framescan.pipeline.errors import ErrorBudgetExceeded, ExtractionFailed
from framescan.pipeline.runner import FrameClassificationPipeline, run_pipeline, scan_video
from framescan.video.intervals import generate_timestamps
from tests.conftest import FakeExtractor, ScriptedClassifier

pytestmark = [pytest.mark.fast]


async def _settle(pipeline: FrameClassificationPipeline, timeout: float = 2.0) -> None:
    """Let detached work run until the aggregator has seen every dispatched outcome or time runs out."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    state = pipeline.last_aggregator.state
    while not state.settled and loop.time() < deadline:
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_relevant_frames_example(video_file, frames_dir):
    """[0, 5, 10] with text at 5 and 10 resolves to [Frame(5), Frame(10)]."""
    timestamps = generate_timestamps(0, 10, 5)
    classifier = ScriptedClassifier(texts={5: "HELLO", 10: "WORLD"})
    frames = await run_pipeline(
        video_file,
        timestamps,
        frames_dir,
        extractor=FakeExtractor(),
        classifier=classifier,
        error_tolerance=0,
    )
    assert [f.timestamp for f in frames] == [5, 10]
    assert frames[0].image_path == frames_dir / "5.png"
    assert frames[1].classification.text == "WORLD"
    assert sorted(classifier.calls) == [0, 5, 10]


@pytest.mark.asyncio
async def test_results_sorted_when_ocr_completes_in_reverse(video_file, frames_dir):
    timestamps = [0, 5, 10, 15]
    classifier = ScriptedClassifier(
        texts={0: "A", 5: "B", 10: "C", 15: "D"},
        wait_for={0: {5}, 5: {10}, 10: {15}},
    )
    frames = await run_pipeline(
        video_file,
        timestamps,
        frames_dir,
        extractor=FakeExtractor(),
        classifier=classifier,
        error_tolerance=0,
    )
    assert classifier.finished == [15, 10, 5, 0]
    assert classifier.gate_timeouts == []
    assert [f.timestamp for f in frames] == [0, 5, 10, 15]


@pytest.mark.asyncio
async def test_extraction_is_sequential_and_in_order(video_file, frames_dir):
    extractor = FakeExtractor()
    timestamps = generate_timestamps(0, 30, 5)
    await run_pipeline(
        video_file,
        timestamps,
        frames_dir,
        extractor=extractor,
        classifier=ScriptedClassifier(),
        error_tolerance=0,
    )
    assert extractor.calls == timestamps
    assert extractor.max_active == 1


@pytest.mark.asyncio
async def test_extraction_does_not_wait_for_classification(video_file, frames_dir):
    """OCR of frame 0 is held until every frame has been extracted; the run still completes."""
    timestamps = [0, 5, 10]
    extractor = FakeExtractor()
    extractor.expected_calls = len(timestamps)
    classifier = ScriptedClassifier(texts={0: "FIRST"}, gates={0: extractor.all_visited})
    frames = await run_pipeline(
        video_file,
        timestamps,
        frames_dir,
        extractor=extractor,
        classifier=classifier,
        error_tolerance=0,
    )
    assert classifier.gate_timeouts == []
    assert [f.timestamp for f in frames] == [0]


@pytest.mark.asyncio
async def test_error_budget_exceeded_with_threshold_plus_one_failures(video_file, frames_dir):
    tolerance = 2
    classifier = ScriptedClassifier(failures={0, 10, 20})
    with pytest.raises(ErrorBudgetExceeded) as exc_info:
        await run_pipeline(
            video_file,
            generate_timestamps(0, 25, 5),
            frames_dir,
            extractor=FakeExtractor(),
            classifier=classifier,
            error_tolerance=tolerance,
        )
    assert exc_info.value.error_count == tolerance + 1


@pytest.mark.asyncio
async def test_exactly_threshold_failures_resolves_with_relevant_frames(video_file, frames_dir):
    classifier = ScriptedClassifier(failures={0, 10}, texts={5: "SALE", 20: "END"})
    frames = await run_pipeline(
        video_file,
        generate_timestamps(0, 25, 5),
        frames_dir,
        extractor=FakeExtractor(),
        classifier=classifier,
        error_tolerance=2,
    )
    assert [f.timestamp for f in frames] == [5, 20]


@pytest.mark.asyncio
async def test_unexpected_classifier_exception_counts_as_failure(video_file, frames_dir):
    classifier = ScriptedClassifier(unexpected={5})
    with pytest.raises(ErrorBudgetExceeded) as exc_info:
        await run_pipeline(
            video_file,
            [0, 5, 10],
            frames_dir,
            extractor=FakeExtractor(),
            classifier=classifier,
            error_tolerance=0,
        )
    assert exc_info.value.error_count == 1


@pytest.mark.asyncio
async def test_missing_artifact_is_skipped(video_file, frames_dir):
    extractor = FakeExtractor(missing={5})
    classifier = ScriptedClassifier(texts={0: "A", 5: "B", 10: "C"})
    pipeline = FrameClassificationPipeline(extractor, classifier, error_tolerance=0)
    frames = await pipeline.run(video_file, [0, 5, 10], frames_dir)
    assert [f.timestamp for f in frames] == [0, 10]
    assert sorted(classifier.calls) == [0, 10]
    state = pipeline.last_aggregator.state
    assert state.error_count == 0
    assert state.total_dispatched == 2
    assert extractor.calls == [0, 5, 10]


@pytest.mark.asyncio
async def test_all_artifacts_missing_resolves_empty(video_file, frames_dir):
    frames = await run_pipeline(
        video_file,
        [0, 5],
        frames_dir,
        extractor=FakeExtractor(missing={0, 5}),
        classifier=ScriptedClassifier(),
        error_tolerance=0,
    )
    assert frames == []


@pytest.mark.asyncio
async def test_extraction_failure_stops_run(video_file, frames_dir):
    """Extraction failing at 5 rejects with ExtractionFailed; 5 and 10 are never classified."""
    extractor = FakeExtractor(fail_at=5)
    classifier = ScriptedClassifier(texts={0: "A", 10: "C"})
    with pytest.raises(ExtractionFailed) as exc_info:
        await run_pipeline(
            video_file,
            [0, 5, 10],
            frames_dir,
            extractor=extractor,
            classifier=classifier,
            error_tolerance=5,
        )
    assert exc_info.value.timestamp == 5
    assert "seek failed" in str(exc_info.value.cause)
    assert extractor.calls == [0, 5]
    await asyncio.sleep(0.05)
    assert 5 not in classifier.calls
    assert 10 not in classifier.calls


@pytest.mark.asyncio
async def test_empty_timestamps_resolve_empty(video_file, frames_dir):
    extractor = FakeExtractor()
    frames = await run_pipeline(
        video_file,
        [],
        frames_dir,
        extractor=extractor,
        classifier=ScriptedClassifier(),
        error_tolerance=0,
    )
    assert frames == []
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_failure_cancels_in_flight_classification(video_file, frames_dir):
    """With cancellation on, outcomes still running at failure time never reach the aggregator."""
    timestamps = [0, 5, 10]
    extractor = FakeExtractor()
    extractor.expected_calls = len(timestamps)
    release = threading.Event()
    classifier = ScriptedClassifier(
        failures={0},
        texts={5: "SLOW"},
        gates={0: extractor.all_visited, 5: release, 10: release},
    )
    pipeline = FrameClassificationPipeline(
        extractor, classifier, error_tolerance=0, cancel_in_flight_on_failure=True
    )
    try:
        with pytest.raises(ErrorBudgetExceeded):
            await pipeline.run(video_file, timestamps, frames_dir)
    finally:
        release.set()
    await asyncio.sleep(0.1)
    state = pipeline.last_aggregator.state
    assert state.total_dispatched == 3
    assert state.completed_count == 1
    assert not state.settled


@pytest.mark.asyncio
async def test_failure_without_cancellation_keeps_counting(video_file, frames_dir):
    """With cancellation off, late outcomes keep updating counters after the failure is raised."""
    timestamps = [0, 5, 10, 15]
    extractor = FakeExtractor()
    release = threading.Event()
    classifier = ScriptedClassifier(
        failures={0},
        texts={15: "LATE"},
        gates={5: release, 10: release, 15: release},
    )
    pipeline = FrameClassificationPipeline(
        extractor, classifier, error_tolerance=0, cancel_in_flight_on_failure=False
    )
    try:
        with pytest.raises(ErrorBudgetExceeded) as exc_info:
            await pipeline.run(video_file, timestamps, frames_dir)
    finally:
        release.set()
    await pipeline.wait_background()
    await _settle(pipeline)
    state = pipeline.last_aggregator.state
    assert exc_info.value.error_count == 1
    assert extractor.calls == timestamps
    assert state.settled
    assert state.completed_count == 4
    assert [f.timestamp for f in state.relevant_frames] == [15]
    with pytest.raises(ErrorBudgetExceeded):
        pipeline.last_aggregator.outcome()


@pytest.mark.asyncio
async def test_caller_cancellation_cancels_driver(video_file, frames_dir):
    release = threading.Event()
    extractor = FakeExtractor()
    classifier = ScriptedClassifier(gates={0: release})
    pipeline = FrameClassificationPipeline(extractor, classifier, error_tolerance=0)
    task = asyncio.create_task(pipeline.run(video_file, [0], frames_dir))
    await asyncio.sleep(0.05)
    task.cancel()
    try:
        with pytest.raises(asyncio.CancelledError):
            await task
    finally:
        release.set()
    assert not pipeline.last_aggregator.done


def test_scan_video_runs_from_settings(video_file, tmp_path):
    cfg = Settings(data_dir=str(tmp_path / "data"), start_second=0, max_second=10, frame_interval_seconds=5)
    frames = scan_video(cfg, video_file, extractor=FakeExtractor(), classifier=MockOcrClassifier())
    out = tmp_path / "data" / "video" / "images"
    assert [f.timestamp for f in frames] == [0, 5, 10]
    assert all(f.directory == out for f in frames)
    assert (out / "10.png").exists()


def test_scan_video_propagates_error_budget(video_file, tmp_path):
    cfg = Settings(max_second=10, frame_interval_seconds=5, error_tolerance_threshold=0)
    with pytest.raises(ErrorBudgetExceeded):
        scan_video(
            cfg,
            video_file,
            tmp_path / "images",
            extractor=FakeExtractor(),
            classifier=ScriptedClassifier(failures={5}),
        )


def test_scan_video_without_cancellation_finishes_extraction(video_file, tmp_path):
    """An early OCR failure still raises, but only after every timestamp has been extracted."""
    cfg = Settings(
        max_second=50,
        frame_interval_seconds=5,
        error_tolerance_threshold=0,
        cancel_in_flight_on_failure=False,
    )
    extractor = FakeExtractor(delay_seconds=0.01)
    classifier = ScriptedClassifier(failures={0}, texts={50: "END"})
    with pytest.raises(ErrorBudgetExceeded) as exc_info:
        scan_video(cfg, video_file, tmp_path / "images", extractor=extractor, classifier=classifier)
    assert exc_info.value.error_count == 1
    assert extractor.calls == generate_timestamps(0, 50, 5)
    assert sorted(classifier.finished) == generate_timestamps(0, 50, 5)
