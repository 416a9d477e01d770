"""Pydantic models for tuning parameters and input documents.

Every heuristic weight and threshold used by the analyses lives here so it
can be retuned from a JSON file without touching the algorithms.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core.models import finite_or_none


class HealthTuning(BaseModel):
    """Thresholds for the session health classifier."""

    min_profile_samples: int = 5  # historical samples needed before a scenario counts
    min_session_runs: int = 4  # below this the session is "insufficient data"
    consistency_min_points: int = 3
    consistency_divisor: float = 50.0  # std of 25 percentile points = 0.5 consistency
    trend_scale: float = 10.0

    # fatigue confidence
    fatigue_min_runs: int = 5
    recent_window: int = 5
    trend_factor_scale: float = 2.0
    bad_day_trend_gate: float = 0.1
    trend_weight: float = 0.5
    below_average_weight: float = 0.2
    length_weight: float = 0.2
    duration_weight: float = 0.1
    length_cap_runs: float = 15.0
    duration_cap_minutes: float = 60.0
    learning_discount: float = 0.5

    # learning curve
    learning_min_samples: int = 10
    learning_recent_min: int = 3
    learning_improvement_std: float = 0.5
    learning_gap_days: float = 7.0
    learning_gap_max_samples: int = 30

    # classification
    fatigued_confidence: float = 0.6
    fatigued_trend: float = -0.1
    declining_confidence: float = 0.45
    declining_trend: float = -0.15
    declining_min_runs: int = 6
    optimal_trend: float = 0.05
    good_trend: float = -0.05

    # extended session overrides
    extended_ratio: float = 1.3
    extended_min_runs: int = 10
    long_session_runs: int = 30
    long_session_minutes: float = 60.0


class SessionLengthTuning(BaseModel):
    """Parameters of the session length recommender."""

    min_sessions: int = 3
    min_session_runs: int = 3
    min_profile_samples: int = 5
    min_curve_points: int = 3

    # fallback result
    default_suggested_runs: int = 8
    default_warmup_runs: int = 2
    default_peak_window: Tuple[int, int] = (3, 10)
    default_diminishing_at: int = 12

    # short session exclusion
    median_min_sessions: int = 5
    median_fraction: float = 0.4

    # curve construction
    stability_numerator: float = 100.0
    stability_offset: float = 10.0  # keeps the weight bounded for flat sessions
    support_fraction: float = 0.15
    min_support: int = 2

    warmup_fraction: float = 0.95
    warmup_cap: int = 5
    peak_window: int = 5
    diminishing_threshold: float = 0.5
    peak_tail_runs: int = 2
    warmup_margin_runs: int = 3

    # confidence
    quality_sessions: float = 10.0
    quality_length: float = 8.0
    high_confidence: float = 0.7
    medium_confidence: float = 0.4
    few_sessions_hint: int = 8


class ScenarioScoringTuning(BaseModel):
    """Weights of the per-scenario focus score."""

    history_sessions: int = 50

    weakness_scale: float = 30.0  # 0.1 progress gap = 3 points
    weakness_gap: float = 0.2
    weakness_bonus: float = 2.0
    maxed_penalty: float = 8.0

    trend_min_history: int = 3
    trend_window: int = 10
    slope_alpha: float = 0.25
    slope_std_multiple: float = 3.0
    trend_scale: float = 4.0
    plateau_slope: float = 0.05
    plateau_window: int = 6
    plateau_std_fraction: float = 0.25
    plateau_weak_gap: float = 0.1
    plateau_weak_bonus: float = 1.0
    plateau_strong_penalty: float = 3.0

    recency_neutral_hours: float = 12.0
    recency_cap: float = 3.0
    unplayed_bonus: float = 1.0

    repeat_penalty_per_play: float = 1.5
    repeat_penalty_cap: float = 10.0

    proximity_close: float = 0.05
    proximity_near: float = 0.15
    proximity_close_bonus: float = 2.0
    proximity_near_bonus: float = 1.0

    top_pick_min_score: float = 2.0
    top_pick_band: float = 1.5


class BenchmarkScoringTuning(BaseModel):
    """Weights of the per-benchmark priority score."""

    maxed_score: float = 5.0
    new_score: float = 50.0
    in_progress_base: float = 60.0
    in_progress_span: float = 30.0
    next_step_score: float = 70.0
    jitter_max: float = 5.0

    beginner_session_threshold: int = 10
    beginner_boosts: Dict[str, float] = Field(
        default_factory=lambda: {"VT-Voltaic S5": 20.0, "V-Viscose Benchmarks": 19.0}
    )

    low_quality_raw: float = 20.0
    fallback_picks: int = 3
    min_normalized: float = 45.0
    min_picks: int = 2
    max_picks: int = 5


class Tuning(BaseModel):
    """All tuning groups, as stored in a tuning JSON file."""

    model_config = ConfigDict(extra="forbid")

    health: HealthTuning = HealthTuning()
    session_length: SessionLengthTuning = SessionLengthTuning()
    scenario_scoring: ScenarioScoringTuning = ScenarioScoringTuning()
    benchmark_scoring: BenchmarkScoringTuning = BenchmarkScoringTuning()


# ---------------------------------------------------------------------------
# Input documents


class RunRecord(BaseModel):
    """One run as found in a history file."""

    model_config = ConfigDict(populate_by_name=True)

    scenario: str
    score: Optional[float] = None
    played_at: Optional[str] = Field(None, alias="date_played")
    duration: Optional[float] = None
    accuracy: Optional[float] = None
    avg_ttk: Optional[float] = None

    @field_validator("score", "duration", "accuracy", "avg_ttk", mode="before")
    @classmethod
    def _number_or_none(cls, value: Any) -> Optional[float]:
        # malformed numbers are dropped at the point of use, not rejected here
        return finite_or_none(value)

    @field_validator("played_at", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class HistoryDocument(BaseModel):
    """A flat run history, in any order."""

    runs: List[RunRecord] = Field(default_factory=list)
    session_gap_minutes: Optional[int] = None


class ScenarioProgressSpec(BaseModel):
    name: str
    rank: int = -1
    score: float = 0.0
    thresholds: List[float] = Field(default_factory=list)
    category: Optional[str] = None


class DifficultyProgressSpec(BaseModel):
    benchmark_id: int
    overall_rank: int = 0
    rank_count: int = 0
    scenarios: List[ScenarioProgressSpec] = Field(default_factory=list)


class DifficultySpec(BaseModel):
    name: str
    benchmark_id: int


class BenchmarkSpec(BaseModel):
    id: str
    title: str = ""
    difficulties: List[DifficultySpec] = Field(default_factory=list)


class BenchmarkDocument(BaseModel):
    """Benchmarks, their tier progress and the scenario focus candidates."""

    benchmarks: List[BenchmarkSpec] = Field(default_factory=list)
    progress: List[DifficultyProgressSpec] = Field(default_factory=list)
    scenarios: List[ScenarioProgressSpec] = Field(default_factory=list)


def dump_tuning(tuning: Tuning) -> Dict[str, Any]:
    return tuning.model_dump()
