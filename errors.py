"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

RECOGNIZER_UNAVAILABLE = "RECOGNIZER_UNAVAILABLE"
SYNTHESIZER_UNAVAILABLE = "SYNTHESIZER_UNAVAILABLE"
DEVICE_ERROR = "DEVICE_ERROR"
PERMISSION_DENIED = "PERMISSION_DENIED"
ENGINE_RUNTIME_ERROR = "ENGINE_RUNTIME_ERROR"
EMPTY_TEXT = "EMPTY_TEXT"
STATE_CONFLICT = "STATE_CONFLICT"

ERROR_MESSAGES = {
    RECOGNIZER_UNAVAILABLE: "Speech recognizer is unavailable, check the recognition model files.",
    SYNTHESIZER_UNAVAILABLE: "Speech synthesizer is unavailable, check the voice model files.",
    DEVICE_ERROR: "Audio device failed, check the microphone and speaker.",
    PERMISSION_DENIED: "Microphone permission is required in system settings.",
    ENGINE_RUNTIME_ERROR: "Speech engine failed while processing audio.",
    EMPTY_TEXT: "Nothing to say.",
    STATE_CONFLICT: "Operation is not valid right now.",
}


class VoiceEngineError(Exception):
    code = ENGINE_RUNTIME_ERROR

    def __init__(self, message: str = "", code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or ERROR_MESSAGES.get(self.code, self.code))

    @property
    def message(self) -> str:
        return str(self)


class InitializationError(VoiceEngineError):
    """A model asset is missing or the inference library could not load it."""


class SubsystemUnavailableError(VoiceEngineError):
    """Recognition or synthesis was disabled at initialization."""


class DeviceError(VoiceEngineError):
    code = DEVICE_ERROR


class EngineRuntimeError(VoiceEngineError):
    code = ENGINE_RUNTIME_ERROR


class SynthesisError(EngineRuntimeError):
    pass


class StateConflictError(VoiceEngineError):
    code = STATE_CONFLICT


def device_error_from(exc: BaseException) -> DeviceError:
    """Map a sounddevice/PortAudio exception to a DeviceError with a code."""
    if isinstance(exc, DeviceError):
        return exc
    message = str(exc) or exc.__class__.__name__
    low = message.lower()
    if "permission" in low or "denied" in low or "not authorized" in low:
        return DeviceError(message, code=PERMISSION_DENIED)
    return DeviceError(message, code=DEVICE_ERROR)
