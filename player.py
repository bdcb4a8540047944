"""Speaker sink adapter."""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from errors import DeviceError, device_error_from

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceAudioSink:
    """Mono float32 playback at whatever rate the synthesizer reports."""

    def __init__(self, device: int | str | None = None) -> None:
        self.device = device
        self.sample_rate = 0
        self._stream: Any = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self, sample_rate: int) -> None:
        with self._lock:
            if self._stream is not None:
                raise DeviceError("speaker is already open")
            if sd is None:
                raise DeviceError("sounddevice is not installed")
            try:
                stream = sd.OutputStream(
                    samplerate=sample_rate,
                    channels=1,
                    dtype="float32",
                    device=self.device,
                )
                stream.start()
            except Exception as exc:
                raise device_error_from(exc) from exc
            self._stream = stream
            self.sample_rate = sample_rate

    def write_blocking(self, samples: Any) -> None:
        stream = self._stream
        if stream is None:
            raise DeviceError("speaker is not open")
        data = np.ascontiguousarray(samples, dtype=np.float32).reshape(-1, 1)
        try:
            stream.write(data)
        except Exception as exc:
            if self._stream is None or not stream.active:
                logger.debug("Playback interrupted: %s", exc)
                return
            raise device_error_from(exc) from exc

    def stop(self) -> None:
        """Let buffered audio finish, then stop the stream."""
        stream = self._stream
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as exc:
            raise device_error_from(exc) from exc

    def abort(self) -> None:
        """Drop buffered audio; unblocks a concurrent ``write_blocking``."""
        stream = self._stream
        if stream is None:
            return
        try:
            stream.abort()
        except Exception as exc:
            logger.debug("Stream abort failed: %s", exc)

    def release(self) -> None:
        with self._lock:
            stream = self._stream
            self._stream = None
            if stream is None:
                return
            stream.close()
