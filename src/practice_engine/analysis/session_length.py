"""Recommend how many runs make a productive session.

The recommender looks at every historical session across all scenarios and
builds an average percentile curve by run index:

* warm-up: how many runs before performance reaches its typical level,
* peak window: the best contiguous stretch of runs,
* diminishing returns: where extra runs stop improving the curve.

All run positions reported here are 1-based.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Sequence, Tuple

from ..core.models import Session, finite_or_none
from ..schemas import SessionLengthTuning
from ..stats.estimators import mean, median, population_std, round_half_up
from ..stats.profiles import HistoricalProfile, build_scenario_profiles, score_to_percentile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionLengthRecommendation:
    suggested_runs: int
    confidence: str  # low | medium | high
    warmup_runs: int
    peak_performance_window: Tuple[int, int]
    diminishing_returns_at: int
    sessions_analyzed: int = 0
    avg_session_length: int = 0
    data_quality_score: float = 0.0
    insights: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _SessionCurve:
    percentiles: Tuple[float, ...]
    length: int
    weight: float


def default_recommendation(tuning: SessionLengthTuning | None = None) -> SessionLengthRecommendation:
    """Low-confidence fallback used until enough history exists."""

    tuning = tuning or SessionLengthTuning()
    return SessionLengthRecommendation(
        suggested_runs=tuning.default_suggested_runs,
        confidence="low",
        warmup_runs=tuning.default_warmup_runs,
        peak_performance_window=tuple(tuning.default_peak_window),
        diminishing_returns_at=tuning.default_diminishing_at,
        insights=("Play more sessions to get personalized recommendations",),
    )


def _min_length_threshold(sessions: Sequence[Session], tuning: SessionLengthTuning) -> int:
    lengths = [len(s.runs) for s in sessions if len(s.runs) >= tuning.min_session_runs]
    if len(lengths) < tuning.median_min_sessions:
        return tuning.min_session_runs
    return max(tuning.min_session_runs, math.floor(median(lengths) * tuning.median_fraction))


def _session_curve(
    session: Session,
    profiles: Mapping[str, HistoricalProfile],
    tuning: SessionLengthTuning,
) -> _SessionCurve | None:
    percentiles: List[float] = []
    for run in session.ordered_runs():
        profile = profiles.get(run.scenario)
        if profile is None or profile.sample_count < tuning.min_profile_samples:
            continue
        score = finite_or_none(run.score)
        if score is None:
            continue
        percentiles.append(score_to_percentile(score, profile))
    if len(percentiles) < tuning.min_curve_points:
        return None
    # flatter sessions count more; the offset bounds the weight
    weight = tuning.stability_numerator / (population_std(percentiles) + tuning.stability_offset)
    return _SessionCurve(tuple(percentiles), len(session.runs), weight)


def _index_curve(curves: Sequence[_SessionCurve], tuning: SessionLengthTuning) -> List[float]:
    """Weighted mean percentile per run index, cut where support gets sparse."""

    min_support = max(tuning.min_support, math.floor(len(curves) * tuning.support_fraction))
    max_len = max(len(c.percentiles) for c in curves)
    means: List[float] = []
    for i in range(max_len):
        contributing = [c for c in curves if i < len(c.percentiles)]
        if len(contributing) < min_support:
            break
        total_weight = sum(c.weight for c in contributing)
        means.append(sum(c.percentiles[i] * c.weight for c in contributing) / total_weight)
    return means


def _smooth(values: Sequence[float]) -> List[float]:
    """3-point moving average, endpoints left as they are."""

    last = len(values) - 1
    return [
        v if i == 0 or i == last else (values[i - 1] + v + values[i + 1]) / 3.0
        for i, v in enumerate(values)
    ]


def _warmup_runs(smoothed: Sequence[float], tuning: SessionLengthTuning) -> int:
    target = mean(smoothed) * tuning.warmup_fraction
    warmup = 1
    for i, value in enumerate(smoothed):
        if value >= target:
            warmup = i + 1
            break
    return max(1, min(warmup, tuning.warmup_cap))


def _peak_window(smoothed: Sequence[float], warmup: int, tuning: SessionLengthTuning) -> Tuple[int, int]:
    size = min(tuning.peak_window, len(smoothed) - warmup)
    best = (warmup, len(smoothed))
    best_avg = 0.0
    if size <= 0:
        return best
    for start in range(warmup - 1, len(smoothed) - size + 1):
        avg = mean(smoothed[start:start + size])
        if avg > best_avg:
            best, best_avg = (start + 1, start + size), avg
    return best


def _diminishing_returns_at(
    smoothed: Sequence[float], warmup: int, peak_end: int, tuning: SessionLengthTuning
) -> int:
    for i in range(warmup, len(smoothed) - 1):
        if smoothed[i + 1] - smoothed[i] < tuning.diminishing_threshold and i >= peak_end:
            return i + 1
    return len(smoothed)


def _insights(
    *,
    warmup: int,
    peak: Tuple[int, int],
    diminishing_at: int,
    avg_length: float,
    curve_count: int,
    excluded: int,
    tuning: SessionLengthTuning,
) -> Tuple[str, ...]:
    insights: List[str] = []
    if warmup > 1:
        insights.append(f"First {warmup} runs are typically warm-up")
    if peak[1] - peak[0] >= 3:
        insights.append(f"Peak performance usually between runs {peak[0]}-{peak[1]}")
    if diminishing_at < avg_length:
        insights.append(f"Extra runs beyond {diminishing_at} show diminishing returns")
    if curve_count < tuning.few_sessions_hint:
        insights.append("More sessions will improve recommendation accuracy")
    if excluded > 0:
        plural = "s" if excluded != 1 else ""
        insights.append(f"Excluded {excluded} short session{plural} from analysis")
    return tuple(insights)


def recommend_session_length(
    sessions: Sequence[Session],
    profiles: Mapping[str, HistoricalProfile] | None = None,
    *,
    tuning: SessionLengthTuning | None = None,
) -> SessionLengthRecommendation:
    """Estimate a productive session length from the full session history."""

    tuning = tuning or SessionLengthTuning()
    fallback = default_recommendation(tuning)
    qualifying = [s for s in sessions if len(s.runs) >= tuning.min_session_runs]
    if len(qualifying) < tuning.min_sessions:
        return fallback

    if profiles is None:
        profiles = build_scenario_profiles(sessions)

    threshold = _min_length_threshold(qualifying, tuning)
    curves: List[_SessionCurve] = []
    excluded = 0
    for session in qualifying:
        if len(session.runs) < threshold:
            excluded += 1
            continue
        curve = _session_curve(session, profiles, tuning)
        if curve is not None:
            curves.append(curve)

    if len(curves) < tuning.min_sessions:
        logger.debug("only %d sessions with tracked runs; using default length", len(curves))
        return replace(
            fallback,
            sessions_analyzed=len(curves),
            insights=("Need more sessions with at least 3 tracked runs each",),
        )

    by_index = _index_curve(curves, tuning)
    if len(by_index) < tuning.min_curve_points:
        return replace(fallback, sessions_analyzed=len(curves))

    smoothed = _smooth(by_index)
    warmup = _warmup_runs(smoothed, tuning)
    peak = _peak_window(smoothed, warmup, tuning)
    diminishing_at = _diminishing_returns_at(smoothed, warmup, peak[1], tuning)

    avg_length = mean([c.length for c in curves])
    suggested = min(peak[1] + tuning.peak_tail_runs, diminishing_at)
    suggested = round_half_up(max(suggested, warmup + tuning.warmup_margin_runs))

    quality = min(1.0, len(curves) / tuning.quality_sessions) * min(1.0, avg_length / tuning.quality_length)
    if quality > tuning.high_confidence:
        confidence = "high"
    elif quality > tuning.medium_confidence:
        confidence = "medium"
    else:
        confidence = "low"

    return SessionLengthRecommendation(
        suggested_runs=suggested,
        confidence=confidence,
        warmup_runs=warmup,
        peak_performance_window=peak,
        diminishing_returns_at=diminishing_at,
        sessions_analyzed=len(curves),
        avg_session_length=round_half_up(avg_length),
        data_quality_score=quality,
        insights=_insights(
            warmup=warmup,
            peak=peak,
            diminishing_at=diminishing_at,
            avg_length=avg_length,
            curve_count=len(curves),
            excluded=excluded,
            tuning=tuning,
        ),
    )


__all__ = [
    "SessionLengthRecommendation",
    "default_recommendation",
    "recommend_session_length",
]
