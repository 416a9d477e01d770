"""Historical score profiles and percentile normalisation.

Profiles are a pure projection of the run history: they are rebuilt from
scratch on every call and never persisted.  ``ProfileCache`` is an optional
memoisation layer keyed by a content hash of the history for callers that
recompute often on large histories.
"""
from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.models import Run, Session, finite_or_none, parse_timestamp
from .estimators import rank_percentile

logger = logging.getLogger(__name__)

PERCENTILE_POINTS: Tuple[int, ...] = (10, 25, 50, 75, 90)

FRAME_COLUMNS = ["session_id", "scenario", "score", "ts", "duration"]


@dataclass(frozen=True)
class HistoricalProfile:
    """Aggregated history of one scenario, oldest sample first."""

    scenario: str
    scores: Tuple[float, ...]
    timestamps: Tuple[datetime, ...]
    mean: float
    std: float
    percentiles: Tuple[float, ...]  # p10, p25, p50, p75, p90

    @property
    def sample_count(self) -> int:
        return len(self.scores)

    @property
    def last_played(self) -> datetime | None:
        return self.timestamps[-1] if self.timestamps else None


def runs_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """Return one row per valid run across ``sessions``.

    Rows with a non-finite score or an unparsable timestamp are dropped.
    """

    rows: List[Dict[str, object]] = []
    skipped = 0
    for session in sessions:
        for run in session.runs:
            score = finite_or_none(run.score)
            ts = parse_timestamp(run.played_at)
            if score is None or ts is None:
                skipped += 1
                continue
            rows.append(
                {
                    "session_id": session.id,
                    "scenario": run.scenario,
                    "score": score,
                    "ts": ts,
                    "duration": finite_or_none(run.duration) or 0.0,
                }
            )
    if skipped:
        logger.debug("skipped %d malformed runs while building the runs frame", skipped)
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["ts"] = pd.to_datetime(df["ts"], utc=True)
    return df


def _profile_from_samples(
    scenario: str, scores: Sequence[float], timestamps: Sequence[datetime]
) -> HistoricalProfile:
    if len(scores) < 2:
        # Single-point distribution; std of 1 keeps callers away from 0-division.
        only = float(scores[0]) if scores else 0.0
        return HistoricalProfile(
            scenario=scenario,
            scores=tuple(float(s) for s in scores),
            timestamps=tuple(timestamps),
            mean=only,
            std=1.0,
            percentiles=tuple(only for _ in PERCENTILE_POINTS),
        )
    values = np.asarray(scores, dtype=float)
    mean = float(values.mean())
    std = float(values.std()) or 1.0
    ordered = np.sort(values)
    percentiles = tuple(rank_percentile(ordered, p) for p in PERCENTILE_POINTS)
    return HistoricalProfile(
        scenario=scenario,
        scores=tuple(float(s) for s in values),
        timestamps=tuple(timestamps),
        mean=mean,
        std=std,
        percentiles=percentiles,
    )


def build_scenario_profiles(sessions: Iterable[Session]) -> Dict[str, HistoricalProfile]:
    """Build a profile for every scenario found in ``sessions``."""

    df = runs_frame(sessions)
    profiles: Dict[str, HistoricalProfile] = {}
    if df.empty:
        return profiles
    df = df.sort_values("ts", kind="mergesort")
    for scenario, group in df.groupby("scenario", sort=False):
        timestamps = [ts.to_pydatetime() for ts in group["ts"]]
        profiles[str(scenario)] = _profile_from_samples(
            str(scenario), group["score"].tolist(), timestamps
        )
    return profiles


def profiles_from_runs(runs: Iterable[Run]) -> Dict[str, HistoricalProfile]:
    """Build profiles from a flat run history."""

    return build_scenario_profiles([Session(id="history", start=None, end=None, runs=tuple(runs))])


def score_to_percentile(score: float, profile: HistoricalProfile | None) -> float:
    """Return the tie-aware percentile rank (0-100) of ``score``.

    Scores equal to historical samples count half, so duplicates split the
    tie evenly.  Missing or empty profiles and non-finite scores map to 50.
    """

    value = finite_or_none(score)
    if value is None or profile is None or not profile.scores:
        return 50.0
    samples = np.asarray(profile.scores, dtype=float)
    below = int(np.count_nonzero(samples < value))
    equal = int(np.count_nonzero(samples == value))
    return (below + equal / 2.0) / len(samples) * 100.0


def summarise_profiles(profiles: Mapping[str, HistoricalProfile]) -> Dict[str, Dict[str, object]]:
    """Return a JSON-friendly summary of ``profiles``."""

    summary: Dict[str, Dict[str, object]] = {}
    for name in sorted(profiles):
        profile = profiles[name]
        last = profile.last_played
        summary[name] = {
            "samples": profile.sample_count,
            "mean": profile.mean,
            "std": profile.std,
            "percentiles": dict(zip((f"p{p}" for p in PERCENTILE_POINTS), profile.percentiles)),
            "last_played": last.isoformat() if last is not None else None,
        }
    return summary


def history_digest(sessions: Iterable[Session]) -> str:
    """Content hash of the run history, independent of session grouping."""

    digest = hashlib.sha256()
    for session in sessions:
        for run in session.runs:
            digest.update(f"{run.scenario}\x1f{run.score!r}\x1f{run.played_at!s}\x1e".encode())
    return digest.hexdigest()


class ProfileCache:
    """Small LRU cache of profile maps keyed by ``history_digest``.

    Hits are shared between callers, so maps are handed out read-only.
    """

    def __init__(self, max_entries: int = 8) -> None:
        self.max_entries = max(1, int(max_entries))
        self._entries: "OrderedDict[str, Mapping[str, HistoricalProfile]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, sessions: Sequence[Session]) -> Mapping[str, HistoricalProfile]:
        key = history_digest(sessions)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            return cached
        logger.debug("profile cache miss for history %s", key[:12])
        profiles = MappingProxyType(build_scenario_profiles(sessions))
        self._entries[key] = profiles
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return profiles

    def clear(self) -> None:
        self._entries.clear()


__all__ = [
    "HistoricalProfile",
    "PERCENTILE_POINTS",
    "runs_frame",
    "build_scenario_profiles",
    "profiles_from_runs",
    "score_to_percentile",
    "summarise_profiles",
    "history_digest",
    "ProfileCache",
]
