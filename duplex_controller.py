"""State-machine arbitration between listening and speaking.

Only one direction owns audio hardware at a time. Every transition runs under
``_lock``; the capture worker is joined and the microphone closed before the
engine may enter SPEAKING, and the speaker is released before it leaves.
Callbacks never run under the lock: they are queued on the engine state's
notification thread, so an observer may call back into the controller.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from capture import CaptureWorker
from errors import (
    EMPTY_TEXT,
    ENGINE_RUNTIME_ERROR,
    RECOGNIZER_UNAVAILABLE,
    SYNTHESIZER_UNAVAILABLE,
    DeviceError,
    StateConflictError,
    SubsystemUnavailableError,
    VoiceEngineError,
)
from interfaces import AudioFrameSource, AudioSink, Synthesizer
from models import DuplexState, SynthesisResult
from recognizer import StreamingRecognitionSession
from state import EngineState

logger = logging.getLogger(__name__)

StateCallback = Callable[[DuplexState, DuplexState], None]
ErrorCallback = Callable[[str, str], None]

_LOCK_POLL_S = 0.05


class DuplexController:
    def __init__(
        self,
        source: AudioFrameSource,
        session: StreamingRecognitionSession,
        synthesizer: Synthesizer,
        sink: AudioSink,
        state: Optional[EngineState] = None,
        auto_resume: bool = True,
        resume_delay_s: float = 0.5,
        voice_id: int = 0,
        speed: float = 1.0,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._source = source
        self._session = session
        self._synthesizer = synthesizer
        self._sink = sink
        self._engine_state = state or EngineState()
        self.auto_resume = auto_resume
        self.resume_delay_s = resume_delay_s
        self.voice_id = voice_id
        self.speed = speed
        self._on_state_change = on_state_change
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = DuplexState.IDLE
        self._worker: Optional[CaptureWorker] = None
        self._playback_thread: Optional[threading.Thread] = None
        self._shutdown = threading.Event()
        self._resume_token = 0

    @property
    def state(self) -> DuplexState:
        return self._state

    @property
    def engine_state(self) -> EngineState:
        return self._engine_state

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    def start_listening(self) -> None:
        """IDLE -> LISTENING. Raises if the recognizer or microphone is unavailable."""
        with self._lock:
            if self._shutdown.is_set():
                return
            if self._state == DuplexState.LISTENING:
                return
            if self._state == DuplexState.SPEAKING:
                logger.info("start_listening ignored while speaking")
                return
            if not self._session.available:
                raise SubsystemUnavailableError(code=RECOGNIZER_UNAVAILABLE)
            self._source.open()
            worker = CaptureWorker(
                self._source,
                self._session,
                self._engine_state,
                on_failure=self._handle_capture_failure,
            )
            self._worker = worker
            self._transition(DuplexState.LISTENING)
            worker.start()

    def stop_listening(self) -> None:
        with self._lock:
            self._resume_token += 1
            if self._state != DuplexState.LISTENING:
                return
            self._stop_capture()
            self._transition(DuplexState.IDLE)

    def _stop_capture(self) -> None:
        worker = self._worker
        self._worker = None
        if worker is not None:
            worker.stop()
        self._safe_close_source()
        self._engine_state.publish_level(0.0)

    def _handle_capture_failure(self, worker: CaptureWorker, exc: DeviceError) -> None:
        self._emit_error(exc.code, str(exc))
        # A transition that is joining this worker holds the lock; it sets the
        # stop flag first, so bail out instead of waiting on it.
        while not self._lock.acquire(timeout=_LOCK_POLL_S):
            if worker.stop_requested:
                return
        try:
            if self._worker is not worker:
                return
            self._worker = None
            worker.request_stop()
            self._safe_close_source()
            self._engine_state.publish_level(0.0)
            self._transition(DuplexState.IDLE)
        finally:
            self._lock.release()

    # ------------------------------------------------------------------
    # Speaking
    # ------------------------------------------------------------------

    def speak(self, text: str) -> bool:
        """Start synthesis and playback on the playback thread.

        Returns False, without touching the state, when the request is rejected.
        """
        if not text or not text.strip():
            logger.info("speak ignored: empty text")
            self._emit_error(EMPTY_TEXT, "nothing to say")
            return False
        if not self._synthesizer.available:
            self._emit_error(SYNTHESIZER_UNAVAILABLE, "speak requested without a voice model")
            return False
        with self._lock:
            if self._shutdown.is_set():
                return False
            if self._state == DuplexState.SPEAKING:
                logger.info("speak ignored: already speaking")
                conflict = StateConflictError("already speaking")
                self._emit_error(conflict.code, str(conflict))
                return False
            was_listening = self._state == DuplexState.LISTENING
            if was_listening:
                self._stop_capture()
            self._resume_token += 1
            token = self._resume_token
            self._transition(DuplexState.SPEAKING)
            thread = threading.Thread(
                target=self._speak_worker,
                args=(text, was_listening, token),
                name="voice-playback",
                daemon=True,
            )
            self._playback_thread = thread
            thread.start()
        return True

    def _speak_worker(self, text: str, was_listening: bool, token: int) -> None:
        completed = False
        try:
            result = self._synthesizer.generate(text, voice_id=self.voice_id, speed=self.speed)
            if not self._shutdown.is_set():
                self._play(result)
                completed = not self._shutdown.is_set()
        except VoiceEngineError as exc:
            logger.error("Speak failed: %s", exc)
            self._emit_error(exc.code, str(exc))
        except Exception as exc:
            logger.exception("Speak failed")
            self._emit_error(ENGINE_RUNTIME_ERROR, str(exc))
        finally:
            with self._lock:
                if self._state == DuplexState.SPEAKING:
                    self._transition(DuplexState.IDLE)
        if completed and was_listening and self.auto_resume:
            self._resume_after_delay(token)

    def _play(self, result: SynthesisResult) -> None:
        self._sink.open(result.sample_rate)
        try:
            # A release that aborted before the stream existed must still win.
            if self._shutdown.is_set():
                return
            self._sink.write_blocking(result.samples)
            self._sink.stop()
        finally:
            self._safe_release_sink()

    def _resume_after_delay(self, token: int) -> None:
        # Wait out the tail of our own playback before reopening the microphone.
        if self._shutdown.wait(self.resume_delay_s):
            return
        with self._lock:
            if token != self._resume_token or self._state != DuplexState.IDLE:
                return
            try:
                self.start_listening()
            except VoiceEngineError as exc:
                logger.error("Resume listening failed: %s", exc)
                self._emit_error(exc.code, str(exc))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def release(self, join_timeout_s: float = 2.0) -> None:
        self._shutdown.set()
        self.stop_listening()
        self._sink.abort()
        thread = self._playback_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=join_timeout_s)
            if thread.is_alive():
                logger.warning("Playback thread did not exit within %.1fs", join_timeout_s)

    def _emit_error(self, code: str, message: str) -> None:
        # Delivered off the calling thread: it may hold the transition lock.
        self._engine_state.notify(self._on_error, code, message)

    def _safe_close_source(self) -> None:
        try:
            self._source.close()
        except Exception as exc:
            logger.warning("Microphone release failed: %s", exc)

    def _safe_release_sink(self) -> None:
        try:
            self._sink.release()
        except Exception as exc:
            logger.warning("Speaker release failed: %s", exc)

    def _transition(self, to_state: DuplexState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        self._engine_state.set_listening(to_state == DuplexState.LISTENING)
        logger.debug("Duplex %s -> %s", from_state.value, to_state.value)
        self._engine_state.notify(self._on_state_change, from_state, to_state)
