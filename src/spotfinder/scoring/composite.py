"""
Shared numeric helpers.

- `clamp01`: keep intensities and ratios within 0..1 for stable rendering
- `clamp`: general range clamp used by zoom/scale limits
- `round_half_up`: percentage/meter rounding that matches the client's display (0.5 rounds up)
"""

from __future__ import annotations

import math


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(x)))


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (unlike `round`)."""
    return int(math.floor(float(x) + 0.5))
