"""Core data models for the voice engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

CAPTURE_SAMPLE_RATE = 16000
PCM16_SCALE = 32768.0


class DuplexState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    SPEAKING = "SPEAKING"


@dataclass
class AudioFrame:
    """One block of mono float samples in [-1, 1]."""

    samples: Any
    sample_rate: int = CAPTURE_SAMPLE_RATE
    timestamp_ms: int = 0

    @classmethod
    def from_pcm16(
        cls,
        pcm: Any,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        timestamp_ms: int = 0,
    ) -> "AudioFrame":
        if isinstance(pcm, (bytes, bytearray)):
            raw = np.frombuffer(bytes(pcm), dtype=np.int16)
        else:
            raw = np.asarray(pcm, dtype=np.int16)
        samples = raw.reshape(-1).astype(np.float32) / PCM16_SCALE
        return cls(samples=samples, sample_rate=sample_rate, timestamp_ms=timestamp_ms)

    @property
    def duration_s(self) -> float:
        return len(self.samples) / float(self.sample_rate)


@dataclass
class SynthesisResult:
    samples: Any
    sample_rate: int

    @property
    def duration_s(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate)


@dataclass(frozen=True)
class EngineSnapshot:
    is_listening: bool = False
    recognized_text: str = ""
    audio_level: float = 0.0
