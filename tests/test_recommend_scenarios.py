from __future__ import annotations

from datetime import timedelta

import pytest

from practice_engine.recommend import progress, scenarios
from practice_engine.recommend.scenarios import ScenarioBenchmarkData

THRESHOLDS = (100.0, 200.0, 300.0, 400.0)


def test_progress_saturates_at_final_rank() -> None:
    assert progress.calculate_progress(3, 0.0, THRESHOLDS) == 1.0
    assert progress.calculate_progress(7, 0.0, THRESHOLDS) == 1.0
    assert progress.calculate_progress(-1, 50.0, ()) == 0.0


def test_progress_interpolates_between_ranks() -> None:
    assert progress.calculate_progress(0, 150.0, THRESHOLDS) == pytest.approx(0.125)
    assert progress.calculate_progress(1, 200.0, THRESHOLDS) == pytest.approx(0.25)
    assert progress.calculate_progress(1, 9999.0, THRESHOLDS) == pytest.approx(0.5)


def test_unranked_progress_stays_below_first_rank() -> None:
    assert progress.calculate_progress(-1, 50.0, (100.0, 200.0)) == pytest.approx(0.25)
    capped = progress.calculate_progress(-1, 150.0, (100.0, 200.0))
    assert capped < 0.5
    assert capped == pytest.approx(0.5)


def test_progress_is_monotonic_in_score() -> None:
    values = [progress.calculate_progress(0, s, THRESHOLDS) for s in range(0, 400, 25)]
    assert values == sorted(values)
    assert all(0.0 <= v <= 1.0 for v in values)


def test_weakness_term_favours_lagging_scenarios(base_time) -> None:
    data = {
        "weak": ScenarioBenchmarkData(0, 150.0, THRESHOLDS),
        "strong": ScenarioBenchmarkData(2, 300.0, THRESHOLDS),
    }
    result = scenarios.compute_recommendation_scores(["weak", "strong"], {}, [], data, now=base_time)
    assert result == {"weak": 11, "strong": -2}


def test_repeats_in_last_session_are_penalised(base_time) -> None:
    data = {
        "weak": ScenarioBenchmarkData(0, 150.0, THRESHOLDS),
        "strong": ScenarioBenchmarkData(2, 300.0, THRESHOLDS),
    }
    result = scenarios.compute_recommendation_scores(
        ["weak", "strong"], {"strong": 3}, [], data, now=base_time
    )
    assert result["strong"] == -6
    capped = scenarios.compute_recommendation_scores(
        ["weak", "strong"], {"strong": 50}, [], data, now=base_time
    )
    assert capped["strong"] == -12


def test_maxed_scenario_is_penalised(base_time) -> None:
    data = {"done": ScenarioBenchmarkData(3, 500.0, THRESHOLDS)}
    assert scenarios.compute_recommendation_scores(["done"], {}, [], data, now=base_time) == {"done": -7}


def test_unknown_candidate_scores_zero(base_time) -> None:
    assert scenarios.compute_recommendation_scores(["mystery"], {}, [], {}, now=base_time) == {"mystery": 0}


def test_recency_term(make_session, base_time) -> None:
    def played(hours_ago: float):
        return [make_session([("X", 1.0)], start=base_time - timedelta(hours=hours_ago))]

    def score(hours_ago: float) -> int:
        return scenarios.compute_recommendation_scores(["X"], {}, played(hours_ago), {}, now=base_time)["X"]

    assert score(12) == 0
    assert score(36) == 2
    assert score(1) == -1
    assert score(500) == 3


def _trend_history(make_session, base_time, newest_first):
    return [
        make_session([("T", s)], start=base_time - timedelta(hours=12 * (k + 1)))
        for k, s in enumerate(newest_first)
    ]


def test_trend_term_follows_recent_direction(make_session, base_time) -> None:
    rising = _trend_history(make_session, base_time, [30.0, 20.0, 10.0])
    falling = _trend_history(make_session, base_time, [10.0, 20.0, 30.0])
    up = scenarios.compute_recommendation_scores(["T"], {}, rising, {}, now=base_time)["T"]
    down = scenarios.compute_recommendation_scores(["T"], {}, falling, {}, now=base_time)["T"]
    assert up == 2
    assert down == -2


def test_flat_history_counts_as_plateau(make_session, base_time) -> None:
    flat = _trend_history(make_session, base_time, [50.0] * 6)
    assert scenarios.compute_recommendation_scores(["T"], {}, flat, {}, now=base_time) == {"T": -3}


def test_proximity_bonus(base_time) -> None:
    thresholds = (100.0, 200.0, 300.0)

    def score(rank: int, value: float) -> int:
        data = {"P": ScenarioBenchmarkData(rank, value, thresholds)}
        return scenarios.compute_recommendation_scores(["P"], {}, [], data, now=base_time)["P"]

    # +1 for having progress but no history, then the proximity bonus
    assert score(0, 120.0) == 1
    assert score(0, 190.0) == 2
    assert score(0, 198.0) == 3
    assert score(-1, 97.0) == 3


def test_select_top_picks_prefers_distinct_categories() -> None:
    scores = {"a": 10, "b": 9, "c": 9, "d": 5, "e": 1}
    categories = {"a": "click", "b": "click", "c": "track"}
    assert scenarios.select_top_picks(scores, categories, 2) == ["a", "c"]
    assert scenarios.select_top_picks(scores, categories, 3) == ["a", "c", "b"]


def test_select_top_picks_filters_low_scores() -> None:
    assert scenarios.select_top_picks({"a": 1, "b": -4}, {}, 3) == []
    assert scenarios.select_top_picks({"a": 4, "b": 3}, {}, 3) == ["a", "b"]
    assert scenarios.select_top_picks({"a": 4, "b": 2}, {}, 3) == ["a"]
