"""Protocol interfaces used by DuplexController and VoiceEngine."""

from __future__ import annotations

from typing import Any, Protocol

from config import EngineConfig
from models import AudioFrame, SynthesisResult


class AudioFrameSource(Protocol):
    def open(self) -> None: ...

    def read_frame(self) -> AudioFrame: ...

    def close(self) -> None: ...


class AudioSink(Protocol):
    def open(self, sample_rate: int) -> None: ...

    def write_blocking(self, samples: Any) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...

    def release(self) -> None: ...


class OnlineRecognizerBackend(Protocol):
    """Subset of ``sherpa_onnx.OnlineRecognizer`` the session relies on."""

    def create_stream(self) -> Any: ...

    def is_ready(self, stream: Any) -> bool: ...

    def decode_stream(self, stream: Any) -> None: ...

    def get_result(self, stream: Any) -> Any: ...

    def is_endpoint(self, stream: Any) -> bool: ...

    def reset(self, stream: Any) -> None: ...


class TtsBackend(Protocol):
    """Subset of ``sherpa_onnx.OfflineTts`` the synthesizer relies on."""

    def generate(self, text: str, sid: int = 0, speed: float = 1.0) -> Any: ...


class Synthesizer(Protocol):
    @property
    def available(self) -> bool: ...

    def generate(self, text: str, voice_id: int = 0, speed: float = 1.0) -> SynthesisResult: ...


class ConfigStore(Protocol):
    def get_auto_resume(self) -> bool: ...

    def set_auto_resume(self, enabled: bool) -> None: ...

    def get_hotkey(self, action: str) -> str: ...

    def set_hotkey(self, action: str, hotkey: str) -> None: ...

    def get_log_level(self) -> str: ...

    def load_engine_config(self) -> EngineConfig: ...
