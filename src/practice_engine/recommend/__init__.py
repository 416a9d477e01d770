"""What to practice next: scenario focus scores and benchmark priorities."""
from __future__ import annotations

from .benchmarks import get_benchmark_recommendations, score_benchmarks
from .progress import calculate_progress
from .scenarios import compute_recommendation_scores, select_top_picks

__all__ = [
    "calculate_progress",
    "compute_recommendation_scores",
    "select_top_picks",
    "score_benchmarks",
    "get_benchmark_recommendations",
]
