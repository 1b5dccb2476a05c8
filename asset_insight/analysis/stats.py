"""
Small numeric helpers shared by the anomaly detector and the demand predictor.

All functions are pure and total: they accept any sequence of numbers
(including an empty one) and never return NaN.

Zero-variance policy
--------------------
A z-score against a distribution with zero standard deviation is undefined.
``z_score`` returns ``0.0`` in that case, i.e. "no anomaly": when every past
observation is identical there is no spread to deviate from, so a detector
built on the z-score never fires on it.  The same policy covers
``coefficient_of_variation`` when the mean is zero.

Standard deviation is the population form (divide by ``n``).
"""

from __future__ import annotations

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; ``0.0`` for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; ``0.0`` for fewer than two values."""
    if len(values) < 2:
        return 0.0
    mu = mean(values)
    variance = sum((v - mu) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def z_score(value: float, mu: float, std: float) -> float:
    """Signed z-score of ``value``; ``0.0`` when ``std`` is zero."""
    if std <= 0.0:
        return 0.0
    return (value - mu) / std


def coefficient_of_variation(values: Sequence[float]) -> float:
    """``std / mean``; ``0.0`` for an empty sequence or a zero mean."""
    mu = mean(values)
    if mu == 0.0:
        return 0.0
    return standard_deviation(values) / abs(mu)


def relative_change(current: float, baseline: float) -> float | None:
    """``(current - baseline) / baseline``; ``None`` when ``baseline`` is zero.

    Also ``None`` when either input is NaN or infinite.
    """
    if baseline == 0 or not (math.isfinite(current) and math.isfinite(baseline)):
        return None
    return (current - baseline) / baseline


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp ``value`` to ``[lo, hi]``."""
    return max(lo, min(hi, value))
