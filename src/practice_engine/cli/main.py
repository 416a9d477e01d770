"""Command line interface entry points."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..analysis.activity import calculate_daily_activity, compute_findings
from ..analysis.health import analyze_session_health
from ..analysis.session_length import recommend_session_length
from ..analysis.status import build_session_status
from ..config import configure_logging, get_settings, load_tuning
from ..core.dataset import last_session_counts, load_benchmark_document, load_sessions
from ..core.models import Session
from ..io.artifacts import to_serialisable, write_summary
from ..recommend.benchmarks import from_document, get_benchmark_recommendations
from ..recommend.scenarios import compute_recommendation_scores, select_top_picks
from ..schemas import Tuning, dump_tuning
from ..stats.profiles import build_scenario_profiles, summarise_profiles

logger = logging.getLogger(__name__)

app = typer.Typer()
recommend_app = typer.Typer()
app.add_typer(recommend_app, name="recommend")

HISTORY_OPTION = typer.Option(..., "--history", exists=True, file_okay=True, dir_okay=False)
OUT_OPTION = typer.Option(None, "--out", help="Also write the JSON payload to this file")
VERBOSE_OPTION = typer.Option(False, "--verbose", help="Enable debug logging")
GAP_OPTION = typer.Option(None, "--gap-minutes", help="Idle minutes that split two sessions")


def _setup(verbose: bool) -> Tuning:
    configure_logging("DEBUG" if verbose else None)
    try:
        return load_tuning()
    except (OSError, ValueError) as e:
        typer.echo(f"Invalid tuning file: {e}")
        raise typer.Exit(1)


def _sessions(history: Optional[Path], gap_minutes: Optional[int]) -> List[Session]:
    if history is None:
        return []
    if gap_minutes is None:
        gap_minutes = get_settings().session_gap_minutes
    try:
        sessions = load_sessions(history, gap_minutes)
    except (OSError, ValueError) as e:
        typer.echo(f"Could not read history {history}: {e}")
        raise typer.Exit(1)
    logger.info("loaded %d sessions from %s", len(sessions), history)
    return sessions


def _emit(payload: Dict[str, Any], out: Optional[Path]) -> None:
    if out is not None:
        write_summary(out, payload)
    typer.echo(json.dumps(to_serialisable(payload), separators=(",", ":")))


@app.command("profiles")
def profiles(
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Summarise the historical score distribution of every scenario."""

    _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    _emit({"profiles": summarise_profiles(build_scenario_profiles(sessions))}, out)


@app.command("health")
def health(
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Analyse the newest session against the whole history."""

    tuning = _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    current = sessions[0] if sessions else None
    analysis = analyze_session_health(
        current, sessions, tuning=tuning.health, length_tuning=tuning.session_length
    )
    _emit({"session_id": current.id if current else None, "analysis": analysis}, out)


@app.command("session-length")
def session_length(
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Recommend how many runs a session should last."""

    tuning = _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    recommendation = recommend_session_length(sessions, tuning=tuning.session_length)
    _emit({"recommendation": recommendation}, out)


@app.command("status")
def status(
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    target_runs: Optional[int] = typer.Option(None, "--target-runs", min=1),
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Combined status of the newest session."""

    tuning = _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    current = sessions[0] if sessions else None
    profile_map = build_scenario_profiles(sessions)
    analysis = analyze_session_health(
        current,
        sessions,
        profile_map,
        tuning=tuning.health,
        length_tuning=tuning.session_length,
    )
    recommendation = recommend_session_length(sessions, profile_map, tuning=tuning.session_length)
    summary = build_session_status(current, analysis, recommendation, target_runs)
    payload: Dict[str, Any] = {"status": summary}
    if summary is not None:
        payload["is_target_modified"] = summary.is_target_modified
        payload["progress_percent"] = summary.to_percent(summary.current_runs)
    _emit(payload, out)


@app.command("activity")
def activity(
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    top: int = typer.Option(3, "--top", min=1),
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Daily playtime, streak and best/worst runs of the newest session."""

    _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    current = sessions[0] if sessions else None
    findings = compute_findings(list(current.runs) if current else [], top_n=top)
    _emit({"daily": calculate_daily_activity(current, sessions), "findings": findings}, out)


@app.command("tuning")
def tuning_show(out: Optional[Path] = OUT_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Print the effective tuning parameters."""

    tuning = _setup(verbose)
    _emit(dump_tuning(tuning), out)


@recommend_app.command("scenarios")
def recommend_scenarios(
    benchmark: Path = typer.Option(..., "--benchmark", exists=True, file_okay=True, dir_okay=False),
    history: Path = HISTORY_OPTION,
    gap_minutes: Optional[int] = GAP_OPTION,
    max_picks: int = typer.Option(3, "--max-picks", min=1),
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Score candidate scenarios and pick what to practice next."""

    tuning = _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    try:
        document = load_benchmark_document(benchmark)
    except (OSError, ValueError) as e:
        typer.echo(f"Could not read benchmark file {benchmark}: {e}")
        raise typer.Exit(1)
    _, _, scenario_data = from_document(document)
    scores = compute_recommendation_scores(
        list(scenario_data),
        last_session_counts(sessions),
        sessions,
        scenario_data,
        tuning=tuning.scenario_scoring,
    )
    categories = {name: data.category for name, data in scenario_data.items() if data.category}
    picks = select_top_picks(scores, categories, max_picks, tuning=tuning.scenario_scoring)
    _emit({"scores": scores, "top_picks": picks}, out)


@recommend_app.command("benchmarks")
def recommend_benchmarks(
    benchmark: Path = typer.Option(..., "--benchmark", exists=True, file_okay=True, dir_okay=False),
    history: Optional[Path] = typer.Option(
        None, "--history", exists=True, file_okay=True, dir_okay=False
    ),
    gap_minutes: Optional[int] = GAP_OPTION,
    out: Optional[Path] = OUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Rank benchmarks by how worthwhile they are to play next."""

    tuning = _setup(verbose)
    sessions = _sessions(history, gap_minutes)
    try:
        document = load_benchmark_document(benchmark)
    except (OSError, ValueError) as e:
        typer.echo(f"Could not read benchmark file {benchmark}: {e}")
        raise typer.Exit(1)
    benchmarks, progress_map, _ = from_document(document)
    recommended = get_benchmark_recommendations(
        benchmarks, progress_map, len(sessions), tuning=tuning.benchmark_scoring
    )
    _emit({"recommended": recommended}, out)


if __name__ == "__main__":
    app()
