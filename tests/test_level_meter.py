from __future__ import annotations

import numpy as np

from level_meter import peak_level


def test_silence_is_zero() -> None:
    assert peak_level(np.zeros(1024, dtype=np.float32)) == 0.0


def test_peak_uses_absolute_value() -> None:
    samples = np.array([0.1, -0.7, 0.3], dtype=np.float32)
    assert abs(peak_level(samples) - 0.7) < 1e-6


def test_out_of_range_is_clamped() -> None:
    assert peak_level(np.array([1.5, -0.2])) == 1.0
    assert peak_level(np.array([np.inf])) == 1.0


def test_empty_and_nan_frames() -> None:
    assert peak_level(np.array([], dtype=np.float32)) == 0.0
    assert peak_level(np.array([np.nan, 0.25])) == 0.25


def test_level_always_within_unit_interval() -> None:
    rng = np.random.default_rng(7)
    for _ in range(100):
        frame = rng.uniform(-2.0, 2.0, size=256).astype(np.float32)
        level = peak_level(frame)
        assert 0.0 <= level <= 1.0
        assert level == min(1.0, float(np.max(np.abs(frame))))
