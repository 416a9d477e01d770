"""Per-scenario focus scores: what to practice next.

Each candidate scenario gets a signed score, roughly -15..+15, where higher
means "focus on this".  The score adds up five independent terms:

1. relative weakness against the other candidates' rank progress,
2. the recent score trend, with a plateau adjustment,
3. time since the scenario was last played,
4. a penalty for repeats within the latest session,
5. a small bonus when the next rank threshold is close.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.models import Session, finite_or_none, parse_timestamp, utc_now
from ..schemas import ScenarioScoringTuning
from ..stats.estimators import clamp, mean, population_std, round_half_up, weighted_slope
from .progress import calculate_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioBenchmarkData:
    rank: int  # achieved rank index, -1 when unranked
    score: float
    thresholds: Tuple[float, ...] = field(default_factory=tuple)
    category: Optional[str] = None


def _median_upper(values: Sequence[float]) -> float:
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def _history(
    candidates: Sequence[str], sessions: Sequence[Session], limit: int
) -> Dict[str, List[Tuple[datetime, float]]]:
    """Scenario -> (session start, score), newest first."""

    wanted = set(candidates)
    history: Dict[str, List[Tuple[datetime, float]]] = {}
    for session in sessions[:limit]:
        started = parse_timestamp(session.start)
        if started is None:
            continue
        for run in session.runs:
            if run.scenario not in wanted:
                continue
            score = finite_or_none(run.score)
            if score is None:
                continue
            history.setdefault(run.scenario, []).append((started, score))
    return history


def _weakness_term(progress: float, median_p: float, avg_p: float, tuning: ScenarioScoringTuning) -> float:
    points = 0.0
    if progress > 0:
        gap = (median_p - progress) * 0.5 + (avg_p - progress) * 0.5
        points += gap * tuning.weakness_scale
        if gap > tuning.weakness_gap:
            points += tuning.weakness_bonus
    if progress >= 1:
        points -= tuning.maxed_penalty
    return points


def _trend_term(
    scores: Sequence[float], progress: float, median_p: float, tuning: ScenarioScoringTuning
) -> float:
    if len(scores) < tuning.trend_min_history:
        return 0.0
    recent = list(scores[: tuning.trend_window])
    slope = weighted_slope(recent, tuning.slope_alpha)
    std = population_std(recent)
    slope_norm = clamp(slope / (tuning.slope_std_multiple * std), -1.0, 1.0) if std > 0 else 0.0
    points = slope_norm * tuning.trend_scale

    recent_std = population_std(recent[: tuning.plateau_window])
    if abs(slope_norm) < tuning.plateau_slope and recent_std < tuning.plateau_std_fraction * (std or 1.0):
        gap = median_p - progress if progress > 0 else 0.0
        if gap > tuning.plateau_weak_gap:
            points += tuning.plateau_weak_bonus
        else:
            points -= tuning.plateau_strong_penalty
    return points


def _recency_term(
    last_played: datetime | None, has_progress: bool, now: datetime, tuning: ScenarioScoringTuning
) -> float:
    if last_played is not None:
        hours = (now - last_played).total_seconds() / 3600.0
        neutral = tuning.recency_neutral_hours
        return clamp((hours - neutral) / neutral, -tuning.recency_cap, tuning.recency_cap)
    if has_progress:
        return tuning.unplayed_bonus
    return 0.0


def _proximity_term(data: ScenarioBenchmarkData, tuning: ScenarioScoringTuning) -> float:
    thresholds = data.thresholds
    if not thresholds:
        return 0.0
    if data.rank < 0:
        prev, nxt = 0.0, thresholds[0]
    else:
        top = len(thresholds) - 1
        r = min(data.rank, top)
        prev = thresholds[r]
        nxt = thresholds[r + 1] if r + 1 <= top else thresholds[r]
    span = nxt - prev
    if span <= 0:
        return 0.0
    distance = (nxt - data.score) / span
    if distance < tuning.proximity_close:
        return tuning.proximity_close_bonus
    if distance < tuning.proximity_near:
        return tuning.proximity_near_bonus
    return 0.0


def compute_recommendation_scores(
    candidates: Sequence[str],
    last_session_count: Mapping[str, int],
    sessions: Sequence[Session],
    benchmark_data: Mapping[str, ScenarioBenchmarkData],
    *,
    now: datetime | None = None,
    tuning: ScenarioScoringTuning | None = None,
) -> Dict[str, int]:
    """Return the integer focus score of every candidate scenario.

    ``sessions`` are ordered newest first; only the most recent ones are
    used for trend and recency.
    """

    tuning = tuning or ScenarioScoringTuning()
    now = now or utc_now()

    progress: Dict[str, float] = {}
    for name in candidates:
        data = benchmark_data.get(name)
        if data is not None:
            progress[name] = calculate_progress(data.rank, data.score, data.thresholds)

    played = [p for p in progress.values() if p > 0]
    median_p = _median_upper(played) if played else 0.5
    avg_p = mean(played) if played else 0.5

    history = _history(candidates, sessions, tuning.history_sessions)

    out: Dict[str, int] = {}
    for name in candidates:
        p = progress.get(name, 0.0)
        data = benchmark_data.get(name)
        entries = history.get(name, [])
        scores = [score for _, score in entries]

        total = _weakness_term(p, median_p, avg_p, tuning)
        total += _trend_term(scores, p, median_p, tuning)
        total += _recency_term(entries[0][0] if entries else None, p > 0, now, tuning)

        repeats = last_session_count.get(name, 0)
        if repeats > 0:
            total -= min(tuning.repeat_penalty_cap, repeats * tuning.repeat_penalty_per_play)

        if data is not None and p < 1:
            total += _proximity_term(data, tuning)

        out[name] = round_half_up(total)

    logger.debug("scored %d scenarios (median progress %.3f)", len(out), median_p)
    return out


def select_top_picks(
    scores: Mapping[str, float],
    category_map: Mapping[str, str],
    max_picks: int,
    *,
    tuning: ScenarioScoringTuning | None = None,
) -> List[str]:
    """Pick up to ``max_picks`` scenarios, preferring distinct categories.

    Only scenarios within a small band of the best score qualify.
    """

    tuning = tuning or ScenarioScoringTuning()
    ranked = sorted(
        ((name, s) for name, s in scores.items() if s >= tuning.top_pick_min_score),
        key=lambda item: item[1],
        reverse=True,
    )
    if not ranked:
        return []
    top = ranked[0][1]
    ranked = [(name, s) for name, s in ranked if s >= top - tuning.top_pick_band]

    selected: List[str] = []
    seen_categories = set()
    for name, _ in ranked:
        if len(selected) >= max_picks:
            break
        category = category_map.get(name)
        if category and category not in seen_categories:
            selected.append(name)
            seen_categories.add(category)

    for name, _ in ranked:
        if len(selected) >= max_picks:
            break
        if name not in selected:
            selected.append(name)
    return selected


__all__ = [
    "ScenarioBenchmarkData",
    "compute_recommendation_scores",
    "select_top_picks",
]
