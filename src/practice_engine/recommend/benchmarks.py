"""Per-benchmark priority scores.

A benchmark is a ladder of difficulty tiers.  Its raw priority depends on
the state of the first tier that is not maxed yet, plus a small daily
jitter that breaks ties without reshuffling on every recomputation, plus an
optional boost for beginner-friendly benchmarks.  Raw scores are min-max
normalised to 0-100 across all candidates before filtering.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.models import utc_now
from ..schemas import BenchmarkDocument, BenchmarkScoringTuning
from .progress import calculate_progress
from .scenarios import ScenarioBenchmarkData

logger = logging.getLogger(__name__)


class BenchmarkState(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    NEXT_STEP = "next_step"
    MAXED = "maxed"


@dataclass(frozen=True)
class BenchmarkDifficulty:
    name: str
    benchmark_id: int


@dataclass(frozen=True)
class Benchmark:
    id: str
    title: str = ""
    difficulties: Tuple[BenchmarkDifficulty, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ScenarioProgress:
    name: str
    rank: int  # achieved rank index, -1 when unranked
    score: float
    thresholds: Tuple[float, ...] = field(default_factory=tuple)
    category: Optional[str] = None


@dataclass(frozen=True)
class BenchmarkProgress:
    """Progress through one difficulty tier of a benchmark."""

    benchmark_id: int
    overall_rank: int  # 1-based, 0 when unranked
    rank_count: int
    scenarios: Tuple[ScenarioProgress, ...] = field(default_factory=tuple)

    @property
    def is_maxed(self) -> bool:
        return self.overall_rank - 1 >= self.rank_count - 1


@dataclass(frozen=True)
class BenchmarkScore:
    benchmark_id: str
    state: BenchmarkState
    progress: float  # percent of the active tier
    raw: float
    score: float  # normalised 0-100


def difficulty_progress(progress: BenchmarkProgress) -> float:
    """Average scenario progress of one tier, in percent."""

    if not progress.scenarios:
        return 0.0
    total = sum(calculate_progress(s.rank, s.score, s.thresholds) for s in progress.scenarios)
    return total / len(progress.scenarios) * 100.0


def daily_jitter(benchmark_id: str, day: date, max_points: float = 5.0) -> float:
    """Deterministic pseudo-random value in [0, max_points) for one day."""

    digest = hashlib.sha256(f"{benchmark_id}{day.isoformat()}".encode()).digest()
    bucket = int.from_bytes(digest[:4], "big") % 100
    return bucket / 100.0 * max_points


def _active_tier(
    benchmark: Benchmark, progress_map: Mapping[int, BenchmarkProgress]
) -> Tuple[BenchmarkState, float]:
    for idx, difficulty in enumerate(benchmark.difficulties):
        prog = progress_map.get(difficulty.benchmark_id)
        if prog is not None and prog.is_maxed:
            continue
        percent = difficulty_progress(prog) if prog is not None else 0.0
        if idx == 0 and percent == 0:
            return BenchmarkState.NEW, percent
        if percent > 0:
            return BenchmarkState.IN_PROGRESS, percent
        return BenchmarkState.NEXT_STEP, percent
    return BenchmarkState.MAXED, 100.0


def _state_score(state: BenchmarkState, percent: float, tuning: BenchmarkScoringTuning) -> float:
    if state is BenchmarkState.MAXED:
        return tuning.maxed_score
    if state is BenchmarkState.NEW:
        return tuning.new_score
    if state is BenchmarkState.IN_PROGRESS:
        return tuning.in_progress_base + min(percent, 100.0) / 100.0 * tuning.in_progress_span
    return tuning.next_step_score


def score_benchmarks(
    benchmarks: Sequence[Benchmark],
    progress_map: Mapping[int, BenchmarkProgress],
    total_sessions: int = 0,
    *,
    today: date | None = None,
    tuning: BenchmarkScoringTuning | None = None,
) -> List[BenchmarkScore]:
    """Score every benchmark with at least one tier, best first."""

    tuning = tuning or BenchmarkScoringTuning()
    today = today or utc_now().date()
    beginner = total_sessions < tuning.beginner_session_threshold

    raw_scores: List[Tuple[Benchmark, BenchmarkState, float, float]] = []
    for bench in benchmarks:
        if not bench.difficulties:
            continue
        state, percent = _active_tier(bench, progress_map)
        raw = _state_score(state, percent, tuning)
        raw += daily_jitter(bench.id, today, tuning.jitter_max)
        if beginner:
            raw += tuning.beginner_boosts.get(bench.id, 0.0)
        raw_scores.append((bench, state, percent, raw))

    if not raw_scores:
        return []
    highest = max(item[3] for item in raw_scores)
    lowest = min(item[3] for item in raw_scores)
    span = highest - lowest

    scored = [
        BenchmarkScore(
            benchmark_id=bench.id,
            state=state,
            progress=percent,
            raw=raw,
            score=(raw - lowest) / span * 100.0 if span > 0 else 100.0,
        )
        for bench, state, percent, raw in raw_scores
    ]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored


def get_benchmark_recommendations(
    benchmarks: Sequence[Benchmark],
    progress_map: Mapping[int, BenchmarkProgress],
    total_sessions: int = 0,
    *,
    today: date | None = None,
    tuning: BenchmarkScoringTuning | None = None,
) -> List[BenchmarkScore]:
    """Return the few benchmarks most worth playing next."""

    tuning = tuning or BenchmarkScoringTuning()
    scored = score_benchmarks(
        benchmarks, progress_map, total_sessions, today=today, tuning=tuning
    )
    if not scored:
        return []
    if max(item.raw for item in scored) < tuning.low_quality_raw:
        # everything is maxed; still show something
        logger.debug("no benchmark above %.0f raw points", tuning.low_quality_raw)
        return scored[: tuning.fallback_picks]
    selected = [item for item in scored if item.score >= tuning.min_normalized]
    if len(selected) < tuning.min_picks:
        selected = scored[: tuning.min_picks]
    return selected[: tuning.max_picks]


def from_document(
    document: BenchmarkDocument,
) -> Tuple[List[Benchmark], Dict[int, BenchmarkProgress], Dict[str, ScenarioBenchmarkData]]:
    """Convert a parsed benchmark document into the scorer inputs."""

    benchmarks = [
        Benchmark(
            id=entry.id,
            title=entry.title,
            difficulties=tuple(BenchmarkDifficulty(d.name, d.benchmark_id) for d in entry.difficulties),
        )
        for entry in document.benchmarks
    ]
    progress_map = {
        item.benchmark_id: BenchmarkProgress(
            benchmark_id=item.benchmark_id,
            overall_rank=item.overall_rank,
            rank_count=item.rank_count,
            scenarios=tuple(
                ScenarioProgress(s.name, s.rank, s.score, tuple(s.thresholds), s.category)
                for s in item.scenarios
            ),
        )
        for item in document.progress
    }
    scenario_data = {
        s.name: ScenarioBenchmarkData(s.rank, s.score, tuple(s.thresholds), s.category)
        for s in document.scenarios
    }
    return benchmarks, progress_map, scenario_data


__all__ = [
    "BenchmarkState",
    "Benchmark",
    "BenchmarkDifficulty",
    "BenchmarkProgress",
    "ScenarioProgress",
    "BenchmarkScore",
    "difficulty_progress",
    "daily_jitter",
    "score_benchmarks",
    "get_benchmark_recommendations",
    "from_document",
]
