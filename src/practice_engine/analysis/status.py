"""Session status summary combining health and length recommendation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.models import Session
from .health import SessionAnalysis, SessionHealthLevel
from .session_length import SessionLengthRecommendation

MIN_SCALE_RUNS = 20
SCALE_MARGIN_RUNS = 5


@dataclass(frozen=True)
class SessionStatus:
    label: str
    health_level: SessionHealthLevel
    health_message: str
    duration_minutes: float
    playtime_minutes: float
    unique_scenarios: int
    current_runs: int
    target_runs: int
    default_target: int
    warmup_runs: int
    peak_window: Tuple[int, int]
    phase: str
    max_runs: int

    @property
    def is_target_modified(self) -> bool:
        return self.target_runs != self.default_target

    def to_percent(self, runs: float) -> float:
        """Position of ``runs`` on the progress scale, 0-100."""

        return min(100.0, max(0.0, runs / self.max_runs * 100.0))


def status_label(level: SessionHealthLevel, trend: float) -> str:
    if level is SessionHealthLevel.FATIGUED:
        return "Take a break"
    if level is SessionHealthLevel.DECLINING:
        return "Declining"
    if level is SessionHealthLevel.OPTIMAL:
        return "Improving" if trend > 0.05 else "Optimal"
    return "Active"


def session_phase(runs: int, recommendation: SessionLengthRecommendation, target: int) -> str:
    peak_start, peak_end = recommendation.peak_performance_window
    if runs <= recommendation.warmup_runs:
        return "warm-up"
    if peak_start <= runs <= peak_end:
        return "peak"
    if runs > target:
        return "past target"
    return "steady"


def build_session_status(
    current: Optional[Session],
    analysis: SessionAnalysis,
    recommendation: SessionLengthRecommendation,
    target_runs: int | None = None,
) -> SessionStatus | None:
    """Summarise the current session, or ``None`` when nothing is running.

    ``target_runs`` overrides the recommended run count.
    """

    if current is None or len(current.runs) == 0:
        return None
    target = target_runs if target_runs and target_runs > 0 else recommendation.suggested_runs
    max_runs = max(
        target + SCALE_MARGIN_RUNS,
        recommendation.diminishing_returns_at + SCALE_MARGIN_RUNS,
        MIN_SCALE_RUNS,
    )
    return SessionStatus(
        label=status_label(analysis.health_level, analysis.performance_trend),
        health_level=analysis.health_level,
        health_message=analysis.health_message,
        duration_minutes=analysis.duration_minutes,
        playtime_minutes=analysis.playtime_minutes,
        unique_scenarios=analysis.unique_scenarios,
        current_runs=analysis.total_runs,
        target_runs=target,
        default_target=recommendation.suggested_runs,
        warmup_runs=recommendation.warmup_runs,
        peak_window=recommendation.peak_performance_window,
        phase=session_phase(analysis.total_runs, recommendation, target),
        max_runs=max_runs,
    )


__all__ = ["SessionStatus", "status_label", "session_phase", "build_session_status"]
