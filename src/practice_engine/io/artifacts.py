"""Utilities to persist analysis results as JSON."""
from __future__ import annotations
import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np


def to_serialisable(value: Any) -> Any:
    """Convert result objects into plain JSON-compatible structures."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serialisable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_serialisable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_serialisable(v) for v in value]
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


def write_summary(path: str | Path, summary: Dict[str, Any]) -> None:
    Path(path).write_text(json.dumps(to_serialisable(summary), indent=2))
