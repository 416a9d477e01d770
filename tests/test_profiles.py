from __future__ import annotations

from datetime import timedelta

import pytest

from practice_engine.core.models import Run, Session
from practice_engine.stats import profiles


def _spread_profile() -> profiles.HistoricalProfile:
    # 20 samples, mean 80, std 10
    runs = [
        Run("Gridshot", 70.0 if i % 2 else 90.0, f"2026-02-01T10:{i:02d}:00Z")
        for i in range(20)
    ]
    return profiles.profiles_from_runs(runs)["Gridshot"]


def test_profile_statistics() -> None:
    profile = _spread_profile()
    assert profile.sample_count == 20
    assert profile.mean == pytest.approx(80.0)
    assert profile.std == pytest.approx(10.0)
    assert profile.percentiles == (70.0, 70.0, 70.0, 90.0, 90.0)


def test_score_above_all_samples_is_100() -> None:
    profile = _spread_profile()
    assert profiles.score_to_percentile(200.0, profile) == 100.0
    assert profiles.score_to_percentile(0.0, profile) == 0.0


def test_ties_count_half() -> None:
    profile = _spread_profile()
    assert profiles.score_to_percentile(80.0, profile) == pytest.approx(50.0)
    assert profiles.score_to_percentile(70.0, profile) == pytest.approx(25.0)
    assert profiles.score_to_percentile(90.0, profile) == pytest.approx(75.0)


def test_percentile_is_monotonic_and_bounded() -> None:
    profile = _spread_profile()
    values = [profiles.score_to_percentile(s, profile) for s in range(50, 111, 5)]
    assert values == sorted(values)
    assert all(0.0 <= v <= 100.0 for v in values)


def test_missing_profile_or_score_is_neutral() -> None:
    profile = _spread_profile()
    assert profiles.score_to_percentile(75.0, None) == 50.0
    assert profiles.score_to_percentile(float("nan"), profile) == 50.0


def test_degenerate_profiles_keep_unit_std() -> None:
    single = profiles.profiles_from_runs([Run("Solo", 42.0, "2026-02-01T10:00:00Z")])["Solo"]
    assert single.mean == 42.0
    assert single.std == 1.0
    flat = profiles.profiles_from_runs(
        [Run("Flat", 10.0, f"2026-02-01T10:0{i}:00Z") for i in range(5)]
    )["Flat"]
    assert flat.std == 1.0
    assert profiles.score_to_percentile(10.0, flat) == 50.0


def test_build_profiles_skips_malformed_runs_and_orders_by_time(make_session, base_time) -> None:
    session = Session(
        id="s1",
        start=base_time.isoformat(),
        end=(base_time + timedelta(minutes=10)).isoformat(),
        runs=(
            Run("Tracking", 30.0, (base_time + timedelta(minutes=9)).isoformat()),
            Run("Tracking", float("nan"), (base_time + timedelta(minutes=8)).isoformat()),
            Run("Tracking", 20.0, "not a date"),
            Run("Tracking", 10.0, (base_time + timedelta(minutes=1)).isoformat()),
        ),
    )
    result = profiles.build_scenario_profiles([session])
    tracking = result["Tracking"]
    assert tracking.scores == (10.0, 30.0)
    assert tracking.timestamps[0] < tracking.timestamps[1]
    assert tracking.last_played == base_time + timedelta(minutes=9)


def test_runs_frame_columns(make_session) -> None:
    df = profiles.runs_frame([make_session([("A", 1.0), ("B", 2.0)])])
    assert list(df.columns) == profiles.FRAME_COLUMNS
    assert len(df) == 2
    assert profiles.runs_frame([]).empty


def test_summarise_profiles(make_session) -> None:
    summary = profiles.summarise_profiles(
        profiles.build_scenario_profiles([make_session([("A", 1.0), ("A", 3.0)])])
    )
    assert summary["A"]["samples"] == 2
    assert summary["A"]["mean"] == pytest.approx(2.0)
    assert set(summary["A"]["percentiles"]) == {"p10", "p25", "p50", "p75", "p90"}


def test_profile_cache_reuses_results(make_session, base_time) -> None:
    cache = profiles.ProfileCache(max_entries=1)
    history = [make_session([("A", 1.0), ("A", 2.0)])]
    first = cache.get(history)
    assert cache.get(list(history)) is first
    assert len(cache) == 1

    other = [make_session([("A", 5.0)], start=base_time - timedelta(days=1))]
    cache.get(other)
    assert len(cache) == 1
    assert cache.get(history) is not first
    cache.clear()
    assert len(cache) == 0


def test_profile_cache_hands_out_read_only_maps(make_session) -> None:
    cache = profiles.ProfileCache()
    history = [make_session([("A", 1.0), ("A", 2.0)])]
    shared = cache.get(history)
    with pytest.raises(TypeError):
        shared["A"] = None  # type: ignore[index]
    with pytest.raises(TypeError):
        del shared["A"]  # type: ignore[attr-defined]
    assert set(cache.get(history)) == {"A"}
