"""Plain data containers for practice runs and sessions.

Runs and sessions are produced by the ingestion layer and treated as
immutable snapshots by every analysis in this package.  Timestamps are kept
in their raw form and parsed at the point of use so that malformed entries
can be skipped instead of rejected up front.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple


def parse_timestamp(value: Any) -> datetime | None:
    """Return a timezone-aware datetime or ``None`` when unparsable.

    Naive values are assumed to be UTC.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def finite_or_none(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None``."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Run:
    """One completed attempt at a scenario."""

    scenario: str
    score: float
    played_at: Any
    duration: float = 0.0
    accuracy: Optional[float] = None
    avg_ttk: Optional[float] = None

    @property
    def timestamp(self) -> datetime | None:
        return parse_timestamp(self.played_at)

    @property
    def finite_score(self) -> float | None:
        return finite_or_none(self.score)

    @property
    def started_at(self) -> datetime | None:
        """Completion time minus the run duration."""

        ts = self.timestamp
        if ts is None:
            return None
        seconds = finite_or_none(self.duration) or 0.0
        return ts - timedelta(seconds=seconds)


@dataclass(frozen=True)
class Session:
    """A time-clustered group of runs, newest first."""

    id: str
    start: Any
    end: Any
    runs: Tuple[Run, ...] = field(default_factory=tuple)
    name: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.runs, tuple):
            object.__setattr__(self, "runs", tuple(self.runs))

    def __len__(self) -> int:
        return len(self.runs)

    @property
    def duration_minutes(self) -> float:
        start = parse_timestamp(self.start)
        end = parse_timestamp(self.end)
        if start is None or end is None:
            return 0.0
        return abs((end - start).total_seconds()) / 60.0

    @property
    def playtime_minutes(self) -> float:
        total = 0.0
        for run in self.runs:
            seconds = finite_or_none(run.duration)
            if seconds is not None:
                total += seconds
        return total / 60.0

    def ordered_runs(self) -> List[Run]:
        """Return runs oldest first.

        Runs with an unparsable timestamp are dropped.
        """

        stamped = [(run.timestamp, idx, run) for idx, run in enumerate(self.runs)]
        valid = [item for item in stamped if item[0] is not None]
        valid.sort(key=lambda item: (item[0], -item[1]))
        return [run for _, _, run in valid]


__all__ = [
    "Run",
    "Session",
    "parse_timestamp",
    "finite_or_none",
    "utc_now",
]
