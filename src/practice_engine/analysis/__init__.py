"""Analyses of the current session against the practice history."""
from __future__ import annotations

from .activity import DailyActivity, Findings, calculate_daily_activity, compute_findings
from .health import SessionAnalysis, SessionHealthLevel, analyze_session_health
from .session_length import SessionLengthRecommendation, recommend_session_length
from .status import SessionStatus, build_session_status

__all__ = [
    "DailyActivity",
    "Findings",
    "calculate_daily_activity",
    "compute_findings",
    "SessionAnalysis",
    "SessionHealthLevel",
    "analyze_session_health",
    "SessionLengthRecommendation",
    "recommend_session_length",
    "SessionStatus",
    "build_session_status",
]
