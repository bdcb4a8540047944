"""Tests for the capture worker's per-frame pipeline and loop."""

from __future__ import annotations

import numpy as np

from capture import CaptureWorker
from errors import DeviceError, EngineRuntimeError
from fakes import FakeFrameSource, FakeOnlineRecognizer, wait_until
from models import AudioFrame
from recognizer import StreamingRecognitionSession
from state import EngineState


class RecordingSession:
    """Stands in for StreamingRecognitionSession and logs every call."""

    def __init__(
        self,
        log: list[str],
        hypothesis: str = "hi",
        fail_accepts: int = 0,
        accept_error: type[Exception] = EngineRuntimeError,
    ) -> None:
        self.log = log
        self.hypothesis = hypothesis
        self.fail_accepts = fail_accepts
        self.accept_error = accept_error
        self.on_hypothesis = None
        self.available = True

    def accept_frame(self, frame: AudioFrame) -> None:
        self.log.append("accept")
        if self.fail_accepts > 0:
            self.fail_accepts -= 1
            raise self.accept_error("accept_waveform failed")

    def drain_ready_steps(self) -> int:
        self.log.append("drain")
        return 1

    def current_hypothesis(self) -> str:
        self.log.append("hypothesis")
        if self.on_hypothesis is not None:
            self.on_hypothesis()
        return self.hypothesis

    def reset_on_endpoint(self) -> bool:
        self.log.append("reset_check")
        return False


class RecordingState(EngineState):
    """EngineState that also logs publishes in call order."""

    def __init__(self, log: list[str]) -> None:
        super().__init__()
        self.log = log

    def publish_level(self, level: float) -> bool:
        self.log.append("level")
        return super().publish_level(level)

    def publish_text(self, hypothesis: str | None) -> bool:
        self.log.append("text")
        return super().publish_text(hypothesis)


def _frame(amplitude: float) -> AudioFrame:
    return AudioFrame(samples=np.full(1024, amplitude, dtype=np.float32))


def test_process_frame_order() -> None:
    log: list[str] = []
    state = RecordingState(log)
    worker = CaptureWorker(FakeFrameSource(), RecordingSession(log), state)

    worker.process_frame(_frame(0.5))

    assert log == ["level", "accept", "drain", "hypothesis", "text", "reset_check"]
    assert state.audio_level.value == 0.5
    assert state.recognized_text.value == "hi"
    assert worker.frames_processed == 1


def test_stop_during_frame_skips_endpoint_reset() -> None:
    log: list[str] = []
    session = RecordingSession(log)
    worker = CaptureWorker(FakeFrameSource(), session, EngineState())
    session.on_hypothesis = worker.request_stop

    worker.process_frame(_frame(0.5))

    assert "reset_check" not in log
    assert worker.frames_processed == 0


def test_unexpected_error_skips_frame_and_continues() -> None:
    source = FakeFrameSource()
    source.open()
    session = RecordingSession([], fail_accepts=2, accept_error=ValueError)
    worker = CaptureWorker(source, session, EngineState())

    worker.start()
    assert wait_until(lambda: worker.frames_processed >= 3)
    assert worker.is_alive is True
    worker.stop()

    assert worker.runtime_errors == 2


def test_loop_runs_until_stopped() -> None:
    source = FakeFrameSource()
    source.open()
    recognizer = FakeOnlineRecognizer()
    worker = CaptureWorker(source, StreamingRecognitionSession(recognizer), EngineState())

    worker.start()
    assert wait_until(lambda: worker.frames_processed >= 5)
    worker.stop()

    assert worker.is_alive is False
    reads = source.reads
    source.close()
    assert source.reads == reads
    assert recognizer.decode_calls > 0


def test_runtime_error_skips_frame_and_continues() -> None:
    log: list[str] = []
    source = FakeFrameSource()
    source.open()
    worker = CaptureWorker(source, RecordingSession(log, fail_accepts=2), EngineState())

    worker.start()
    assert wait_until(lambda: worker.frames_processed >= 3)
    worker.stop()

    assert worker.runtime_errors == 2


def test_device_failure_reports_and_exits() -> None:
    failures: list[tuple[CaptureWorker, DeviceError]] = []
    source = FakeFrameSource(fail_after=2)
    source.open()
    worker = CaptureWorker(
        source,
        RecordingSession([]),
        EngineState(),
        on_failure=lambda w, exc: failures.append((w, exc)),
    )

    worker.start()
    assert wait_until(lambda: len(failures) == 1)
    assert wait_until(lambda: not worker.is_alive)

    assert failures[0][0] is worker
    assert "unplugged" in str(failures[0][1])
    assert worker.frames_processed == 2


def test_read_error_after_stop_is_not_reported() -> None:
    failures: list[DeviceError] = []
    source = FakeFrameSource(read_delay=0.02)
    source.open()
    worker = CaptureWorker(
        source,
        RecordingSession([]),
        EngineState(),
        on_failure=lambda w, exc: failures.append(exc),
    )

    worker.start()
    assert wait_until(lambda: worker.frames_processed >= 1)
    worker.request_stop()
    source.close()
    worker.stop()

    assert failures == []
