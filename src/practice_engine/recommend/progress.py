"""Rank progress normalisation shared by both recommendation scorers."""
from __future__ import annotations

import math
from typing import Sequence

from ..stats.estimators import clamp


def calculate_progress(rank: int, score: float, thresholds: Sequence[float]) -> float:
    """Map an achieved rank index plus partial progress onto [0, 1].

    ``rank`` is the index of the highest tier reached, ``-1`` when unranked.
    Reaching the final tier returns exactly 1.0.  Below the first tier the
    result is the fraction of the first threshold reached, scaled into
    ``[0, 1/len(thresholds))``.
    """

    total = len(thresholds)
    if total == 0:
        return 0.0
    if rank >= total - 1:
        return 1.0

    if rank < 0:
        prev, nxt, base = 0.0, float(thresholds[0] or 0.0), 0
    else:
        prev = float(thresholds[rank])
        nxt = float(thresholds[rank + 1] or prev)
        base = rank

    span = nxt - prev
    frac = (score - prev) / span if span > 0 else 0.0
    frac = clamp(frac, 0.0, 1.0)
    if rank < 0:
        # an unranked player stays strictly below the first tier
        return min(frac / total, math.nextafter(1.0 / total, 0.0))
    return (base + frac) / total


__all__ = ["calculate_progress"]
