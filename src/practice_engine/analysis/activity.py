"""Daily activity totals and strongest/weakest run findings."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Sequence, Set, Tuple

import pandas as pd

from ..core.models import Run, Session, finite_or_none, parse_timestamp

SCORE_WEIGHT = 0.6
ACCURACY_WEIGHT = 0.35
TTK_WEIGHT = 0.05


@dataclass(frozen=True)
class DailyActivity:
    playtime_seconds: float = 0.0
    streak: int = 0


@dataclass(frozen=True)
class Findings:
    strongest: Tuple[Run, ...] = field(default_factory=tuple)
    weakest: Tuple[Run, ...] = field(default_factory=tuple)


def calculate_daily_activity(current: Optional[Session], all_sessions: Sequence[Session]) -> DailyActivity:
    """Playtime on the current session's day and the consecutive-day streak.

    The streak counts backwards from the session day, inclusive.
    """

    if current is None:
        return DailyActivity()
    start = parse_timestamp(current.start)
    if start is None:
        return DailyActivity()
    target_day = start.date()

    playtime = 0.0
    active_days: Set[date] = set()
    for session in all_sessions:
        for run in session.runs:
            ts = run.timestamp
            if ts is None:
                continue
            day = ts.date()
            active_days.add(day)
            if day == target_day:
                playtime += finite_or_none(run.duration) or 0.0

    streak = 0
    day = target_day
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return DailyActivity(playtime_seconds=playtime, streak=streak)


def _normalised(series: pd.Series) -> pd.Series:
    """Min-max scale to 0..1; constant or missing values map to 0.5."""

    lo, hi = series.min(), series.max()
    if pd.isna(lo) or pd.isna(hi) or hi == lo:
        return pd.Series(0.5, index=series.index)
    return ((series - lo) / (hi - lo)).fillna(0.5)


def compute_findings(runs: Sequence[Run], top_n: int = 3) -> Findings:
    """Rank runs by a composite of score, accuracy and time-to-kill."""

    if not runs:
        return Findings()
    df = pd.DataFrame(
        {
            "score": [finite_or_none(r.score) for r in runs],
            "accuracy": [finite_or_none(r.accuracy) for r in runs],
            "ttk": [finite_or_none(r.avg_ttk) for r in runs],
        },
        dtype=float,
    )
    composite = (
        SCORE_WEIGHT * _normalised(df["score"])
        + ACCURACY_WEIGHT * _normalised(df["accuracy"] * 100.0)
        + TTK_WEIGHT * (1.0 - _normalised(df["ttk"]))
    )
    order: List[int] = composite.sort_values(ascending=False, kind="mergesort").index.tolist()
    n = min(top_n, len(order))
    strongest = tuple(runs[i] for i in order[:n])
    weakest = tuple(runs[i] for i in reversed(order[len(order) - n:]))
    return Findings(strongest=strongest, weakest=weakest)


__all__ = ["DailyActivity", "Findings", "calculate_daily_activity", "compute_findings"]
