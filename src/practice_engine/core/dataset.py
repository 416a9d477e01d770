"""Run history loading and session grouping.

History files are either JSON (a list of run objects, or a document with a
``runs`` key) or CSV with one row per run.  Column names follow the
``RunRecord`` schema; ``date_played`` is accepted as an alias for
``played_at``.  Grouping runs into sessions uses a plain time-gap rule.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from ..schemas import BenchmarkDocument, HistoryDocument, RunRecord
from .models import Run, Session, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"scenario", "score"}


def _record_to_run(record: RunRecord) -> Run:
    return Run(
        scenario=record.scenario,
        score=record.score if record.score is not None else float("nan"),
        played_at=record.played_at,
        duration=record.duration if record.duration is not None else 0.0,
        accuracy=record.accuracy,
        avg_ttk=record.avg_ttk,
    )


def _read_csv_records(path: Path) -> List[Dict[str, Any]]:
    df = pd.read_csv(path)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing required columns {sorted(missing)}")
    if "played_at" not in df.columns and "date_played" not in df.columns:
        raise ValueError(f"{path}: missing a 'played_at' or 'date_played' column")
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict("records")


def read_history(path: str | Path) -> HistoryDocument:
    """Parse a history file into a :class:`HistoryDocument`."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return HistoryDocument.model_validate({"runs": _read_csv_records(path)})
    if suffix != ".json":
        raise ValueError(f"unsupported history format: {path.suffix or path.name}")
    raw = json.loads(path.read_text())
    if isinstance(raw, list):
        raw = {"runs": raw}
    return HistoryDocument.model_validate(raw)


def load_runs(path: str | Path) -> List[Run]:
    """Load every run from a JSON or CSV history file."""

    return [_record_to_run(record) for record in read_history(path).runs]


def group_sessions(runs: Iterable[Run], gap_minutes: float = 30) -> List[Session]:
    """Cluster runs into sessions, newest session first.

    Consecutive runs (by completion time) belong to the same session while
    the gap between them stays within ``gap_minutes``.  Runs without a
    parsable timestamp cannot be placed and are dropped.
    """

    stamped = []
    dropped = 0
    for run in runs:
        ts = run.timestamp
        if ts is None:
            dropped += 1
            continue
        stamped.append((ts, run))
    if dropped:
        logger.debug("dropped %d runs without a usable timestamp", dropped)
    if not stamped:
        return []
    stamped.sort(key=lambda item: item[0], reverse=True)

    gap = timedelta(minutes=gap_minutes)
    groups: List[List[Run]] = []
    current: List[Run] = []
    last_ts: datetime | None = None
    for ts, run in stamped:
        if current and last_ts is not None and abs(last_ts - ts) <= gap:
            current.append(run)
        else:
            if current:
                groups.append(current)
            current = [run]
        last_ts = ts
    groups.append(current)

    sessions: List[Session] = []
    for group in groups:
        newest, oldest = group[0], group[-1]
        start = oldest.started_at or oldest.timestamp
        end = newest.timestamp
        sessions.append(
            Session(
                id=f"sess-{int(start.timestamp() * 1000)}",
                start=start.isoformat(),
                end=end.isoformat(),
                runs=tuple(group),
            )
        )
    return sessions


def load_sessions(path: str | Path, gap_minutes: float | None = None) -> List[Session]:
    """Load a history file and group it into sessions, newest first.

    ``gap_minutes`` falls back to the document value and then to 30.
    """

    document = read_history(path)
    if gap_minutes is None:
        gap_minutes = document.session_gap_minutes or 30
    runs = [_record_to_run(record) for record in document.runs]
    return group_sessions(runs, gap_minutes)


def is_current_session(
    session: Session, gap_minutes: float = 30, now: datetime | None = None
) -> bool:
    """Return whether ``session`` ended within ``gap_minutes`` of ``now``."""

    end = parse_timestamp(session.end)
    if end is None:
        return False
    now = now or utc_now()
    return (now - end) < timedelta(minutes=gap_minutes)


def current_session(
    sessions: Sequence[Session], gap_minutes: float = 30, now: datetime | None = None
) -> Session | None:
    """Return the newest session when it is still in progress."""

    if not sessions:
        return None
    newest = sessions[0]
    return newest if is_current_session(newest, gap_minutes, now) else None


def last_session_counts(sessions: Sequence[Session]) -> Dict[str, int]:
    """Play counts per scenario in the most recent session."""

    if not sessions:
        return {}
    return dict(Counter(run.scenario for run in sessions[0].runs))


def load_benchmark_document(path: str | Path) -> BenchmarkDocument:
    """Parse a benchmark progress document (JSON)."""

    return BenchmarkDocument.model_validate_json(Path(path).read_text())


__all__ = [
    "read_history",
    "load_runs",
    "load_sessions",
    "group_sessions",
    "is_current_session",
    "current_session",
    "last_session_counts",
    "load_benchmark_document",
]
