"""Streaming recognition session backed by a sherpa-onnx online recognizer.

The recognizer consumes 16 kHz frames incrementally. After every frame the
session drains all decode steps the engine reports as ready, so no backlog is
carried into the next frame. Endpoint detection runs inside the engine using
the rules from ``endpoint.py``; the session only asks whether one fired and
resets the current utterance when it did.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from config import RecognizerModels
from endpoint import DEFAULT_ENDPOINT_RULES, EndpointRuleSet
from errors import (
    RECOGNIZER_UNAVAILABLE,
    EngineRuntimeError,
    InitializationError,
)
from interfaces import OnlineRecognizerBackend
from models import CAPTURE_SAMPLE_RATE, AudioFrame

try:
    import sherpa_onnx
except Exception:  # pragma: no cover
    sherpa_onnx = None  # type: ignore

logger = logging.getLogger(__name__)

FEATURE_DIM = 80


def clean_hypothesis(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.strip().lower()


def create_sherpa_recognizer(
    models: RecognizerModels,
    rules: EndpointRuleSet = DEFAULT_ENDPOINT_RULES,
) -> Any:
    """Build a ``sherpa_onnx.OnlineRecognizer`` or raise InitializationError."""
    missing = models.missing()
    if missing:
        raise InitializationError(
            f"missing recognition model files: {', '.join(m or '<unset>' for m in missing)}",
            code=RECOGNIZER_UNAVAILABLE,
        )
    if sherpa_onnx is None:
        raise InitializationError("sherpa_onnx is not installed", code=RECOGNIZER_UNAVAILABLE)
    try:
        endpoint_kwargs = rules.recognizer_kwargs()
    except ValueError as exc:
        raise InitializationError(str(exc), code=RECOGNIZER_UNAVAILABLE) from exc

    common = dict(
        tokens=models.tokens,
        encoder=models.encoder,
        decoder=models.decoder,
        num_threads=models.num_threads,
        sample_rate=CAPTURE_SAMPLE_RATE,
        feature_dim=FEATURE_DIM,
        decoding_method=models.decoding_method,
        provider=models.provider,
        **endpoint_kwargs,
    )
    try:
        if models.model_type == "transducer":
            return sherpa_onnx.OnlineRecognizer.from_transducer(joiner=models.joiner, **common)
        return sherpa_onnx.OnlineRecognizer.from_paraformer(**common)
    except Exception as exc:
        raise InitializationError(str(exc), code=RECOGNIZER_UNAVAILABLE) from exc


class StreamingRecognitionSession:
    """Owns the recognizer stream; accessed only from the capture worker."""

    def __init__(self, recognizer: Optional[OnlineRecognizerBackend]) -> None:
        self._recognizer = recognizer
        self._stream: Any = None
        self.endpoint_count = 0

    @classmethod
    def from_models(
        cls,
        models: RecognizerModels,
        rules: EndpointRuleSet = DEFAULT_ENDPOINT_RULES,
    ) -> "StreamingRecognitionSession":
        try:
            recognizer = create_sherpa_recognizer(models, rules)
        except InitializationError as exc:
            logger.error("Recognizer disabled: %s", exc)
            return cls(None)
        logger.info("Recognizer initialized (%s)", models.model_type)
        return cls(recognizer)

    @property
    def available(self) -> bool:
        return self._recognizer is not None

    @property
    def has_stream(self) -> bool:
        return self._stream is not None

    def ensure_stream(self) -> None:
        if self._recognizer is None or self._stream is not None:
            return
        try:
            self._stream = self._recognizer.create_stream()
        except Exception as exc:
            raise EngineRuntimeError(f"create_stream failed: {exc}") from exc

    def accept_frame(self, frame: AudioFrame) -> None:
        if self._recognizer is None:
            return
        self.ensure_stream()
        try:
            self._stream.accept_waveform(frame.sample_rate, frame.samples)
        except Exception as exc:
            raise EngineRuntimeError(f"accept_waveform failed: {exc}") from exc

    def drain_ready_steps(self) -> int:
        """Decode until the engine has no complete chunk left; return the step count."""
        if self._recognizer is None or self._stream is None:
            return 0
        steps = 0
        try:
            while self._recognizer.is_ready(self._stream):
                self._recognizer.decode_stream(self._stream)
                steps += 1
        except Exception as exc:
            raise EngineRuntimeError(f"decode failed: {exc}") from exc
        return steps

    def current_hypothesis(self) -> str:
        if self._recognizer is None or self._stream is None:
            return ""
        try:
            result = self._recognizer.get_result(self._stream)
        except Exception as exc:
            raise EngineRuntimeError(f"get_result failed: {exc}") from exc
        # Older sherpa-onnx releases return a result object instead of str.
        if isinstance(result, str):
            return result
        return str(getattr(result, "text", "") or "")

    def is_endpoint(self) -> bool:
        if self._recognizer is None or self._stream is None:
            return False
        try:
            return bool(self._recognizer.is_endpoint(self._stream))
        except Exception as exc:
            raise EngineRuntimeError(f"is_endpoint failed: {exc}") from exc

    def reset_on_endpoint(self) -> bool:
        """Clear the current utterance if an endpoint fired. Returns True on reset."""
        if not self.is_endpoint():
            return False
        try:
            self._recognizer.reset(self._stream)
        except Exception as exc:
            logger.warning("Recognizer reset failed, dropping stream: %s", exc)
            self._stream = None
            return True
        self.endpoint_count += 1
        logger.debug("Endpoint #%d, utterance reset", self.endpoint_count)
        return True

    def release(self) -> None:
        self._stream = None
        self._recognizer = None
