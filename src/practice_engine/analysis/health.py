"""Live health and fatigue assessment of the session in progress.

The health level is a stateless classification recomputed from scratch on
every call.  Fatigue has to be told apart from learning curves (improvement
is expected), ordinary variance and scenario switching, so the fatigue
confidence is discounted whenever one of those explanations is likely.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from ..core.models import Run, Session, finite_or_none, utc_now
from ..schemas import HealthTuning, SessionLengthTuning
from ..stats.estimators import calculate_trend, mean, population_std
from ..stats.profiles import HistoricalProfile, build_scenario_profiles, score_to_percentile
from .session_length import recommend_session_length

logger = logging.getLogger(__name__)


class SessionHealthLevel(str, Enum):
    OPTIMAL = "optimal"
    GOOD = "good"
    DECLINING = "declining"
    FATIGUED = "fatigued"


@dataclass(frozen=True)
class ScenarioBreakdown:
    runs: int
    trend: float
    avg_percentile: float


@dataclass(frozen=True)
class LearningCurve:
    is_learning: bool
    expected_improvement: float = 0.0


@dataclass(frozen=True)
class SessionAnalysis:
    health_level: SessionHealthLevel = SessionHealthLevel.OPTIMAL
    health_message: str = ""
    should_take_break: bool = False

    total_runs: int = 0
    duration_minutes: float = 0.0
    playtime_minutes: float = 0.0
    unique_scenarios: int = 0

    performance_trend: float = 0.0  # -1..1, negative = declining
    consistency_score: float = 1.0  # 0..1
    fatigue_confidence: float = 0.0  # 0..1

    has_learning_curve_effect: bool = False
    has_insufficient_data: bool = True

    scenario_breakdown: Mapping[str, ScenarioBreakdown] = field(default_factory=dict)


def detect_learning_curve(
    profile: HistoricalProfile,
    recent_scores: Sequence[float],
    now: datetime | None = None,
    tuning: HealthTuning | None = None,
) -> LearningCurve:
    """Return whether ``profile`` is likely still in a learning phase.

    True for scenarios with little history, for in-session scores well
    above the historical mean, and for scenarios coming back after a long
    break without much history.
    """

    tuning = tuning or HealthTuning()
    total = profile.sample_count
    if total < tuning.learning_min_samples:
        return LearningCurve(True, 0.15)

    if len(recent_scores) >= tuning.learning_recent_min:
        improvement = (mean(recent_scores) - profile.mean) / profile.std
        if improvement > tuning.learning_improvement_std:
            return LearningCurve(True, improvement / len(recent_scores))

    last = profile.last_played
    if last is not None:
        days_since = ((now or utc_now()) - last).total_seconds() / 86400.0
        if days_since > tuning.learning_gap_days and total < tuning.learning_gap_max_samples:
            return LearningCurve(True, 0.1)

    return LearningCurve(False, 0.0)


def _group_chronological(runs: Sequence[Run]) -> Dict[str, List[Run]]:
    # session runs are newest first; runs without a timestamp are skipped
    grouped: Dict[str, List[Run]] = {}
    for run in reversed(runs):
        if run.timestamp is None:
            continue
        grouped.setdefault(run.scenario, []).append(run)
    return grouped


def _fatigue_confidence(
    *,
    percentiles: Sequence[float],
    performance_trend: float,
    consistency: float,
    total_runs: int,
    duration_minutes: float,
    learning: bool,
    tuning: HealthTuning,
) -> float:
    recent = percentiles[-min(tuning.recent_window, len(percentiles)):]
    recent_avg = mean(recent)

    trend_factor = max(0.0, -performance_trend * tuning.trend_factor_scale)
    below_avg_factor = max(0.0, (50.0 - recent_avg) / 50.0)
    length_factor = min(1.0, total_runs / tuning.length_cap_runs)
    duration_factor = min(1.0, duration_minutes / tuning.duration_cap_minutes)

    # a flat trend with low scores is a bad day, not fatigue
    effective_below_avg = below_avg_factor if trend_factor > tuning.bad_day_trend_gate else 0.0

    learning_discount = tuning.learning_discount if learning else 1.0
    raw = (
        trend_factor * tuning.trend_weight
        + effective_below_avg * tuning.below_average_weight
        + length_factor * tuning.length_weight
        + duration_factor * tuning.duration_weight
    )
    return raw * learning_discount * consistency


def _classify(
    *,
    insufficient: bool,
    fatigue: float,
    trend: float,
    total_runs: int,
    duration_minutes: float,
    recommended_runs: int,
    tuning: HealthTuning,
) -> tuple[SessionHealthLevel, str]:
    if insufficient:
        level, message = SessionHealthLevel.GOOD, "Keep playing to build performance insights"
    elif fatigue > tuning.fatigued_confidence and trend < tuning.fatigued_trend:
        level = SessionHealthLevel.FATIGUED
        message = "Performance declining significantly - consider taking a break"
    elif fatigue > tuning.declining_confidence or (
        trend < tuning.declining_trend and total_runs >= tuning.declining_min_runs
    ):
        level = SessionHealthLevel.DECLINING
        message = "Performance trending down - a short break might help"
    elif trend > tuning.optimal_trend:
        level, message = SessionHealthLevel.OPTIMAL, "Great session! Performance is improving"
    elif trend > tuning.good_trend:
        level, message = SessionHealthLevel.GOOD, "Consistent performance"
    else:
        level, message = SessionHealthLevel.GOOD, "Slight variance in performance - this is normal"

    if level is SessionHealthLevel.FATIGUED:
        return level, message
    if total_runs > recommended_runs * tuning.extended_ratio and total_runs >= tuning.extended_min_runs:
        return (
            SessionHealthLevel.DECLINING,
            f"Session longer than recommended ({recommended_runs} runs) - focus may be slipping",
        )
    if total_runs >= tuning.long_session_runs and duration_minutes >= tuning.long_session_minutes:
        return SessionHealthLevel.DECLINING, "Long session - regular breaks help maintain focus"
    return level, message


def analyze_session_health(
    current: Optional[Session],
    all_sessions: Sequence[Session],
    profiles: Mapping[str, HistoricalProfile] | None = None,
    *,
    now: datetime | None = None,
    tuning: HealthTuning | None = None,
    length_tuning: SessionLengthTuning | None = None,
) -> SessionAnalysis:
    """Assess the health of ``current`` against the full history.

    Never raises for missing or malformed data: every branch falls back to
    a neutral result with ``has_insufficient_data`` set.
    """

    tuning = tuning or HealthTuning()
    if current is None or len(current.runs) == 0:
        return SessionAnalysis()

    if profiles is None:
        profiles = build_scenario_profiles(all_sessions)

    total_runs = len(current.runs)
    duration_minutes = current.duration_minutes
    by_scenario = _group_chronological(current.runs)

    breakdown: Dict[str, ScenarioBreakdown] = {}
    all_percentiles: List[float] = []
    weighted_trends: List[float] = []
    has_learning_curve = False

    for name, runs in by_scenario.items():
        profile = profiles.get(name)
        if profile is None or profile.sample_count < tuning.min_profile_samples:
            continue
        scores = [s for s in (finite_or_none(run.score) for run in runs) if s is not None]
        if not scores:
            continue
        percentiles = [score_to_percentile(score, profile) for score in scores]

        if detect_learning_curve(profile, scores, now=now, tuning=tuning).is_learning:
            has_learning_curve = True

        trend = calculate_trend(percentiles, tuning.trend_scale)
        breakdown[name] = ScenarioBreakdown(
            runs=len(runs), trend=trend, avg_percentile=mean(percentiles)
        )
        all_percentiles.extend(percentiles)
        if len(runs) >= 2:
            weighted_trends.append(trend * len(runs))

    insufficient = not breakdown or total_runs < tuning.min_session_runs

    performance_trend = 0.0
    if weighted_trends:
        total_weight = sum(item.runs for item in breakdown.values())
        performance_trend = sum(weighted_trends) / total_weight

    consistency = 1.0
    if len(all_percentiles) >= tuning.consistency_min_points:
        consistency = max(0.0, 1.0 - population_std(all_percentiles) / tuning.consistency_divisor)

    fatigue = 0.0
    if not insufficient and total_runs >= tuning.fatigue_min_runs:
        fatigue = _fatigue_confidence(
            percentiles=all_percentiles,
            performance_trend=performance_trend,
            consistency=consistency,
            total_runs=total_runs,
            duration_minutes=duration_minutes,
            learning=has_learning_curve,
            tuning=tuning,
        )

    recommendation = recommend_session_length(all_sessions, profiles, tuning=length_tuning)
    level, message = _classify(
        insufficient=insufficient,
        fatigue=fatigue,
        trend=performance_trend,
        total_runs=total_runs,
        duration_minutes=duration_minutes,
        recommended_runs=recommendation.suggested_runs,
        tuning=tuning,
    )
    logger.debug(
        "session %s: %s (trend=%.3f fatigue=%.3f runs=%d)",
        current.id,
        level.value,
        performance_trend,
        fatigue,
        total_runs,
    )

    return SessionAnalysis(
        health_level=level,
        health_message=message,
        should_take_break=level is SessionHealthLevel.FATIGUED,
        total_runs=total_runs,
        duration_minutes=duration_minutes,
        playtime_minutes=current.playtime_minutes,
        unique_scenarios=len(by_scenario),
        performance_trend=performance_trend,
        consistency_score=consistency,
        fatigue_confidence=fatigue,
        has_learning_curve_effect=has_learning_curve,
        has_insufficient_data=insufficient,
        scenario_breakdown=breakdown,
    )


__all__ = [
    "SessionHealthLevel",
    "ScenarioBreakdown",
    "LearningCurve",
    "SessionAnalysis",
    "detect_learning_curve",
    "analyze_session_health",
]
