from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple

import pytest

from practice_engine.core.models import Run, Session

BASE_TIME = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


def build_session(
    runs: Sequence[Tuple[str, float]],
    start: datetime = BASE_TIME,
    spacing_seconds: float = 120.0,
    duration: float = 60.0,
    session_id: Optional[str] = None,
) -> Session:
    """Build a session from ``(scenario, score)`` pairs given oldest first."""

    played = [
        Run(scenario, score, (start + timedelta(seconds=spacing_seconds * (i + 1))).isoformat(), duration)
        for i, (scenario, score) in enumerate(runs)
    ]
    end = played[-1].played_at if played else start.isoformat()
    return Session(
        id=session_id or f"sess-{int(start.timestamp() * 1000)}",
        start=start.isoformat(),
        end=end,
        runs=tuple(reversed(played)),
    )


@pytest.fixture
def make_session():
    return build_session


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
