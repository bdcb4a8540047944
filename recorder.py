"""Microphone frame source adapter."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from errors import DeviceError, device_error_from
from models import CAPTURE_SAMPLE_RATE, AudioFrame

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceFrameSource:
    """Blocking 16 kHz mono reader over a sounddevice InputStream.

    ``frame_size`` bounds how long a single ``read_frame`` can block, which is
    also the cancellation latency of the capture loop (1024 samples = 64 ms).
    """

    def __init__(
        self,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        frame_size: int = 1024,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.device = device
        self._stream: Any = None
        self._lock = threading.Lock()
        self.overflow_count = 0

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        with self._lock:
            if self._stream is not None:
                return
            if sd is None:
                raise DeviceError("sounddevice is not installed")
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=1,
                    dtype="int16",
                    blocksize=self.frame_size,
                    device=self.device,
                )
                stream.start()
            except Exception as exc:
                raise device_error_from(exc) from exc
            self._stream = stream
            self.overflow_count = 0
            logger.info("Microphone opened (%d Hz, %d samples/frame)", self.sample_rate, self.frame_size)

    def read_frame(self) -> AudioFrame:
        stream = self._stream
        if stream is None:
            raise DeviceError("microphone is not open")
        try:
            data, overflowed = stream.read(self.frame_size)
        except Exception as exc:
            raise device_error_from(exc) from exc
        if overflowed:
            self.overflow_count += 1
            logger.debug("Input overflow (%d so far)", self.overflow_count)
        return AudioFrame.from_pcm16(
            data,
            sample_rate=self.sample_rate,
            timestamp_ms=int(time.time() * 1000),
        )

    def close(self) -> None:
        with self._lock:
            stream = self._stream
            self._stream = None
            if stream is None:
                return
            try:
                stream.stop()
            finally:
                stream.close()
            logger.info("Microphone closed")
