"""Public voice engine facade."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from config import EngineConfig
from duplex_controller import DuplexController, ErrorCallback, StateCallback
from endpoint import DEFAULT_ENDPOINT_RULES, EndpointRuleSet
from errors import ENGINE_RUNTIME_ERROR, VoiceEngineError
from interfaces import AudioFrameSource, AudioSink, Synthesizer
from models import DuplexState, EngineSnapshot
from player import SoundDeviceAudioSink
from recognizer import StreamingRecognitionSession
from recorder import SoundDeviceFrameSource
from state import EngineState
from synthesizer import SpeechSynthesizer

logger = logging.getLogger(__name__)


class VoiceEngine:
    """Listen, recognize and speak through a single arbitrated audio session.

    Public operations never raise: failures are logged and forwarded to
    ``on_error(code, message)``. Observe ``state`` for ``is_listening``,
    ``recognized_text`` and ``audio_level``. Subscribers and callbacks run
    on one notification thread, in order, and may call back into the engine.
    """

    def __init__(
        self,
        source: AudioFrameSource,
        session: StreamingRecognitionSession,
        synthesizer: Synthesizer,
        sink: AudioSink,
        auto_resume: bool = True,
        resume_delay_s: float = 0.5,
        voice_id: int = 0,
        speed: float = 1.0,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._on_error = on_error
        self._session = session
        self._synthesizer = synthesizer
        self._state = EngineState()
        self._released = False
        self._controller = DuplexController(
            source=source,
            session=session,
            synthesizer=synthesizer,
            sink=sink,
            state=self._state,
            auto_resume=auto_resume,
            resume_delay_s=resume_delay_s,
            voice_id=voice_id,
            speed=speed,
            on_state_change=on_state_change,
            on_error=on_error,
        )

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        rules: EndpointRuleSet = DEFAULT_ENDPOINT_RULES,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> "VoiceEngine":
        """Build sherpa-onnx models and sounddevice devices.

        A missing asset disables only its own subsystem.
        """
        return cls(
            source=SoundDeviceFrameSource(frame_size=config.frame_size),
            session=StreamingRecognitionSession.from_models(config.recognizer, rules),
            synthesizer=SpeechSynthesizer.from_models(config.synthesizer),
            sink=SoundDeviceAudioSink(),
            auto_resume=config.auto_resume,
            resume_delay_s=config.resume_delay_s,
            voice_id=config.voice_id,
            speed=config.speed,
            on_state_change=on_state_change,
            on_error=on_error,
        )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state.is_listening.value

    @property
    def recognized_text(self) -> str:
        return self._state.recognized_text.value

    @property
    def audio_level(self) -> float:
        return self._state.audio_level.value

    @property
    def duplex_state(self) -> DuplexState:
        return self._controller.state

    @property
    def recognizer_available(self) -> bool:
        return self._session.available

    @property
    def synthesizer_available(self) -> bool:
        return self._synthesizer.available

    def snapshot(self) -> EngineSnapshot:
        return self._state.snapshot()

    def subscribe(self, field: str, callback: Callable) -> Callable[[], None]:
        """Subscribe to ``is_listening``, ``recognized_text`` or ``audio_level``."""
        if field not in ("is_listening", "recognized_text", "audio_level"):
            raise ValueError(f"unknown state field: {field}")
        return getattr(self._state, field).subscribe(callback)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start_listening(self) -> bool:
        if self._released:
            logger.warning("start_listening called after release")
            return False
        try:
            self._controller.start_listening()
        except VoiceEngineError as exc:
            logger.error("Cannot start listening: %s", exc)
            self._emit_error(exc.code, str(exc))
            return False
        return self._controller.state == DuplexState.LISTENING

    def stop_listening(self) -> None:
        if self._released:
            return
        self._controller.stop_listening()

    def speak(self, text: str) -> bool:
        if self._released:
            logger.warning("speak called after release")
            return False
        try:
            return self._controller.speak(text)
        except VoiceEngineError as exc:
            logger.error("Cannot speak: %s", exc)
            self._emit_error(exc.code, str(exc))
            return False

    def release(self) -> None:
        if self._released:
            logger.warning("VoiceEngine.release called twice")
            return
        self._released = True
        try:
            self._controller.release()
        except Exception as exc:
            logger.exception("Engine release failed")
            self._emit_error(ENGINE_RUNTIME_ERROR, str(exc))
        self._session.release()
        release_tts = getattr(self._synthesizer, "release", None)
        if release_tts is not None:
            release_tts()
        # Pending notifications (final level, IDLE transition) are delivered first.
        self._state.close()
        logger.info("Voice engine released")

    def _emit_error(self, code: str, message: str) -> None:
        self._state.notify(self._on_error, code, message)
