from __future__ import annotations

from datetime import timedelta

from practice_engine.analysis import activity, status
from practice_engine.analysis.health import SessionAnalysis, SessionHealthLevel
from practice_engine.analysis.session_length import default_recommendation
from practice_engine.core.models import Run


def test_status_label() -> None:
    assert status.status_label(SessionHealthLevel.FATIGUED, 0.5) == "Take a break"
    assert status.status_label(SessionHealthLevel.DECLINING, 0.5) == "Declining"
    assert status.status_label(SessionHealthLevel.OPTIMAL, 0.2) == "Improving"
    assert status.status_label(SessionHealthLevel.OPTIMAL, 0.0) == "Optimal"
    assert status.status_label(SessionHealthLevel.GOOD, 0.0) == "Active"


def test_no_status_without_session() -> None:
    assert status.build_session_status(None, SessionAnalysis(), default_recommendation()) is None


def test_status_summary(make_session) -> None:
    current = make_session([("A", float(i)) for i in range(6)])
    analysis = SessionAnalysis(
        health_level=SessionHealthLevel.OPTIMAL,
        performance_trend=0.2,
        total_runs=6,
        unique_scenarios=1,
    )
    summary = status.build_session_status(current, analysis, default_recommendation())
    assert summary is not None
    assert summary.label == "Improving"
    assert summary.target_runs == 8
    assert summary.is_target_modified is False
    assert summary.max_runs == 20
    assert summary.phase == "peak"
    assert summary.to_percent(10) == 50.0
    assert summary.to_percent(40) == 100.0


def test_status_with_custom_target(make_session) -> None:
    current = make_session([("A", 1.0)])
    analysis = SessionAnalysis(total_runs=1)
    summary = status.build_session_status(current, analysis, default_recommendation(), target_runs=25)
    assert summary.target_runs == 25
    assert summary.default_target == 8
    assert summary.is_target_modified is True
    assert summary.max_runs == 30
    assert summary.phase == "warm-up"


def test_session_phase_past_target() -> None:
    rec = default_recommendation()
    assert status.session_phase(11, rec, 8) == "past target"
    assert status.session_phase(10, rec, 12) == "peak"


def test_daily_activity(make_session, base_time) -> None:
    current = make_session([("A", 1.0)] * 4, start=base_time)
    earlier_today = make_session([("B", 1.0)] * 2, start=base_time - timedelta(hours=3))
    yesterday = make_session([("A", 1.0)], start=base_time - timedelta(days=1))
    three_days_ago = make_session([("A", 1.0)], start=base_time - timedelta(days=3))
    sessions = [current, earlier_today, yesterday, three_days_ago]

    result = activity.calculate_daily_activity(current, sessions)
    assert result.playtime_seconds == 6 * 60.0
    assert result.streak == 2
    assert activity.calculate_daily_activity(None, sessions) == activity.DailyActivity()


def test_findings_rank_runs() -> None:
    runs = [
        Run("A", 100.0, None, accuracy=0.9, avg_ttk=0.3),
        Run("A", 50.0, None, accuracy=0.5, avg_ttk=0.5),
        Run("A", 10.0, None, accuracy=0.2, avg_ttk=0.9),
        Run("A", 75.0, None, accuracy=0.7, avg_ttk=0.4),
    ]
    findings = activity.compute_findings(runs)
    assert [r.score for r in findings.strongest] == [100.0, 75.0, 50.0]
    assert [r.score for r in findings.weakest] == [10.0, 50.0, 75.0]


def test_findings_without_optional_metrics() -> None:
    runs = [Run("A", s, None) for s in (3.0, 1.0, 2.0)]
    findings = activity.compute_findings(runs, top_n=1)
    assert findings.strongest[0].score == 3.0
    assert findings.weakest[0].score == 1.0
    assert activity.compute_findings([]) == activity.Findings()
