"""Background capture loop: microphone -> level meter -> recognizer."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import DeviceError, EngineRuntimeError
from interfaces import AudioFrameSource
from level_meter import peak_level
from models import AudioFrame
from recognizer import StreamingRecognitionSession
from state import EngineState

logger = logging.getLogger(__name__)

FailureCallback = Callable[["CaptureWorker", DeviceError], None]


class CaptureWorker:
    """Runs the per-frame pipeline on a dedicated thread until stopped.

    The frame source must already be open; the worker never opens or closes it.
    """

    def __init__(
        self,
        source: AudioFrameSource,
        session: StreamingRecognitionSession,
        state: EngineState,
        on_failure: Optional[FailureCallback] = None,
    ) -> None:
        self._source = source
        self._session = session
        self._state = state
        self._on_failure = on_failure
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames_processed = 0
        self.runtime_errors = 0

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="voice-capture", daemon=True)
        self._thread.start()

    def request_stop(self) -> None:
        self._stop_event.set()

    def stop(self) -> None:
        """Request cancellation and wait for the loop to exit."""
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join()

    def process_frame(self, frame: AudioFrame) -> None:
        # Order matters: the level is published before recognition so the
        # visualizer never waits on decode latency.
        self._state.publish_level(peak_level(frame.samples))
        self._session.accept_frame(frame)
        self._session.drain_ready_steps()
        self._state.publish_text(self._session.current_hypothesis())
        if self._stop_event.is_set():
            # The session may already belong to a speak transition.
            return
        self._session.reset_on_endpoint()
        self.frames_processed += 1

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                frame = self._source.read_frame()
            except DeviceError as exc:
                if self._stop_event.is_set():
                    break
                logger.error("Microphone read failed: %s", exc)
                if self._on_failure is not None:
                    self._on_failure(self, exc)
                return
            if self._stop_event.is_set():
                break
            try:
                self.process_frame(frame)
            except EngineRuntimeError as exc:
                self.runtime_errors += 1
                logger.warning("Recognition step failed, skipping frame: %s", exc)
            except Exception:
                self.runtime_errors += 1
                logger.exception("Unexpected error in capture pipeline, skipping frame")
        logger.debug("Capture loop exited after %d frames", self.frames_processed)
