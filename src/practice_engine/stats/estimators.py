"""Numeric helpers shared by the profile, health and scoring modules."""
from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""

    return float(np.mean(values)) if len(values) else 0.0


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation, 0 for an empty sequence."""

    return float(np.std(values)) if len(values) else 0.0


def median(values: Sequence[float]) -> float:
    """Median averaging the two middle values for even lengths."""

    return float(np.median(values)) if len(values) else 0.0


def rank_percentile(sorted_values: Sequence[float], p: float) -> float:
    """Return the ``p``-th percentile of already sorted values.

    Uses the nearest-rank index ``ceil(p/100 * n) - 1`` clamped to the
    valid range.
    """

    n = len(sorted_values)
    if n == 0:
        return 0.0
    idx = math.ceil((p / 100.0) * n) - 1
    return float(sorted_values[max(0, min(idx, n - 1))])


def calculate_trend(values: Sequence[float], scale: float = 10.0) -> float:
    """Least-squares slope of ``values`` normalised by their range.

    The result stays roughly within [-1, 1] for percentile series.
    """

    n = len(values)
    if n < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    dx = x - x.mean()
    den = float(np.sum(dx * dx))
    if den == 0:
        return 0.0
    slope = float(np.sum(dx * (y - y.mean()))) / den
    y_range = float(y.max() - y.min()) or 1.0
    return slope / y_range * scale


def weighted_slope(newest_first: Sequence[float], alpha: float = 0.25) -> float:
    """Exponentially weighted least-squares slope.

    ``newest_first`` is reversed so the fit runs oldest to newest; the
    weight of step ``i`` is ``exp(alpha * i)`` so recent runs dominate.
    Non-finite values count as 0.
    """

    y = np.asarray(list(reversed(newest_first)), dtype=float)
    n = len(y)
    if n < 2:
        return 0.0
    y = np.where(np.isfinite(y), y, 0.0)
    w = np.exp(alpha * np.arange(n, dtype=float))
    x = np.arange(1, n + 1, dtype=float)
    sw = w.sum()
    mx = float(np.sum(w * x) / sw)
    my = float(np.sum(w * y) / sw)
    dx = x - mx
    den = float(np.sum(w * dx * dx))
    if den == 0:
        return 0.0
    return float(np.sum(w * dx * (y - my))) / den


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""

    return int(math.floor(value + 0.5))


__all__ = [
    "mean",
    "population_std",
    "median",
    "rank_percentile",
    "calculate_trend",
    "weighted_slope",
    "clamp",
    "round_half_up",
]
