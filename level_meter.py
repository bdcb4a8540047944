"""Peak level meter for the visualizer side channel."""

from __future__ import annotations

from typing import Any

import numpy as np


def peak_level(samples: Any) -> float:
    """Return max(|sample|) over the frame, clamped to [0, 1]."""
    data = np.asarray(samples, dtype=np.float32)
    if data.size == 0:
        return 0.0
    peak = float(np.max(np.abs(np.nan_to_num(data, nan=0.0))))
    return max(0.0, min(1.0, peak))
