"""Text-to-speech adapter backed by a sherpa-onnx VITS model."""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from config import SynthesizerModels
from errors import (
    EMPTY_TEXT,
    SYNTHESIZER_UNAVAILABLE,
    InitializationError,
    SubsystemUnavailableError,
    SynthesisError,
)
from interfaces import TtsBackend
from models import SynthesisResult

try:
    import sherpa_onnx
except Exception:  # pragma: no cover
    sherpa_onnx = None  # type: ignore

logger = logging.getLogger(__name__)


def create_sherpa_tts(models: SynthesizerModels) -> Any:
    """Build a ``sherpa_onnx.OfflineTts`` or raise InitializationError."""
    missing = models.missing()
    if missing:
        raise InitializationError(
            f"missing voice model files: {', '.join(m or '<unset>' for m in missing)}",
            code=SYNTHESIZER_UNAVAILABLE,
        )
    if sherpa_onnx is None:
        raise InitializationError("sherpa_onnx is not installed", code=SYNTHESIZER_UNAVAILABLE)

    data_dir = models.resolved_data_dir()
    if models.data_dir and not data_dir:
        logger.warning("Phoneme data directory %s not found, continuing without it", models.data_dir)
    try:
        config = sherpa_onnx.OfflineTtsConfig(
            model=sherpa_onnx.OfflineTtsModelConfig(
                vits=sherpa_onnx.OfflineTtsVitsModelConfig(
                    model=models.model,
                    lexicon=models.lexicon,
                    tokens=models.tokens,
                    data_dir=data_dir,
                    noise_scale=models.noise_scale,
                    noise_scale_w=models.noise_scale_w,
                    length_scale=models.length_scale,
                ),
                num_threads=models.num_threads,
                provider=models.provider,
            ),
        )
        if not config.validate():
            raise InitializationError("invalid TTS configuration", code=SYNTHESIZER_UNAVAILABLE)
        return sherpa_onnx.OfflineTts(config)
    except InitializationError:
        raise
    except Exception as exc:
        raise InitializationError(str(exc), code=SYNTHESIZER_UNAVAILABLE) from exc


class SpeechSynthesizer:
    def __init__(self, tts: Optional[TtsBackend]) -> None:
        self._tts = tts

    @classmethod
    def from_models(cls, models: SynthesizerModels) -> "SpeechSynthesizer":
        try:
            tts = create_sherpa_tts(models)
        except InitializationError as exc:
            logger.error("Synthesizer disabled: %s", exc)
            return cls(None)
        logger.info("Synthesizer initialized")
        return cls(tts)

    @property
    def available(self) -> bool:
        return self._tts is not None

    def generate(self, text: str, voice_id: int = 0, speed: float = 1.0) -> SynthesisResult:
        if not text or not text.strip():
            raise SynthesisError("text is empty", code=EMPTY_TEXT)
        if self._tts is None:
            raise SubsystemUnavailableError(code=SYNTHESIZER_UNAVAILABLE)
        try:
            audio = self._tts.generate(text.strip(), sid=voice_id, speed=speed)
        except Exception as exc:
            raise SynthesisError(f"synthesis failed: {exc}") from exc
        samples = np.asarray(getattr(audio, "samples", []), dtype=np.float32)
        sample_rate = int(getattr(audio, "sample_rate", 0) or 0)
        if samples.size == 0 or sample_rate <= 0:
            raise SynthesisError("synthesis produced no audio")
        return SynthesisResult(samples=samples, sample_rate=sample_rate)

    def release(self) -> None:
        self._tts = None
