from __future__ import annotations

from datetime import timedelta

from practice_engine.analysis import session_length
from practice_engine.schemas import SessionLengthTuning

CURVE_SCORES = [40.0, 55.0, 70.0, 80.0, 80.0, 80.0, 80.0, 80.0, 65.0, 50.0]


def _shaped_history(make_session, base_time, count: int = 20):
    return [
        make_session([("Gridshot", s) for s in CURVE_SCORES], start=base_time - timedelta(days=k))
        for k in range(count)
    ]


def test_default_with_little_history(make_session, base_time) -> None:
    sessions = [make_session([("A", 1.0), ("A", 2.0)], start=base_time - timedelta(days=k)) for k in range(5)]
    rec = session_length.recommend_session_length(sessions)
    assert rec.suggested_runs == 8
    assert rec.confidence == "low"
    assert rec.warmup_runs == 2
    assert rec.peak_performance_window == (3, 10)
    assert rec.diminishing_returns_at == 12
    assert rec == session_length.default_recommendation()


def test_default_when_runs_are_not_tracked(make_session, base_time) -> None:
    # every scenario has fewer than five historical samples
    sessions = [
        make_session([(f"S{k}", float(i)) for i in range(3)], start=base_time - timedelta(days=k))
        for k in range(4)
    ]
    rec = session_length.recommend_session_length(sessions)
    assert rec.suggested_runs == 8
    assert rec.confidence == "low"
    assert rec.sessions_analyzed == 0
    assert rec.insights == ("Need more sessions with at least 3 tracked runs each",)


def test_shaped_curve(make_session, base_time) -> None:
    rec = session_length.recommend_session_length(_shaped_history(make_session, base_time))
    assert rec.warmup_runs == 3
    assert rec.peak_performance_window == (4, 8)
    assert rec.diminishing_returns_at == 9
    assert rec.suggested_runs == 9
    assert rec.confidence == "high"
    assert rec.data_quality_score == 1.0
    assert rec.sessions_analyzed == 20
    assert rec.avg_session_length == 10
    assert rec.insights == (
        "First 3 runs are typically warm-up",
        "Peak performance usually between runs 4-8",
        "Extra runs beyond 9 show diminishing returns",
    )


def test_recommendation_is_consistent(make_session, base_time) -> None:
    rec = session_length.recommend_session_length(_shaped_history(make_session, base_time))
    start, end = rec.peak_performance_window
    assert 1 <= rec.warmup_runs <= start <= end
    assert rec.suggested_runs >= rec.warmup_runs


def test_fewer_sessions_lower_confidence(make_session, base_time) -> None:
    rec = session_length.recommend_session_length(_shaped_history(make_session, base_time, count=4))
    assert rec.sessions_analyzed == 4
    assert rec.confidence == "low"
    assert "More sessions will improve recommendation accuracy" in rec.insights


def test_short_sessions_are_excluded(make_session, base_time) -> None:
    history = _shaped_history(make_session, base_time)
    history += [
        make_session([("Gridshot", 80.0)] * 3, start=base_time - timedelta(days=40 + k))
        for k in range(2)
    ]
    rec = session_length.recommend_session_length(history)
    assert rec.sessions_analyzed == 20
    assert "Excluded 2 short sessions from analysis" in rec.insights


def test_tuning_overrides_defaults(make_session, base_time) -> None:
    tuning = SessionLengthTuning(default_suggested_runs=15)
    rec = session_length.recommend_session_length([], tuning=tuning)
    assert rec.suggested_runs == 15
