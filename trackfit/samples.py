"""
Parse raw JSON track input into typed samples.

Each sample object looks like:

    {"time": "2024-05-01T09:00:00Z", "ele": 12.0, "dist": 0.0, "cad": 85,
     "hr": 120, "lat": 51.5, "lng": -0.12, "speed": 8.2, "cl16": 3,
     "power": 210, "wind": 1.4}

`power` and `wind` are optional; everything else is required.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from trackfit.errors import FieldTypeError, InputFormatError

log = logging.getLogger(__name__)

REQUIRED_NUMERIC_FIELDS = ("ele", "dist", "cad", "hr", "lat", "lng", "speed", "cl16")
OPTIONAL_NUMERIC_FIELDS = ("power", "wind")

_MISSING = object()


@dataclass(frozen=True)
class Sample:
    time: datetime  # timezone-aware
    ele: float
    dist: float
    cad: float
    hr: float
    lat: float
    lng: float
    speed: float
    cl16: float
    power: Optional[float] = None
    wind: Optional[float] = None


def _is_number(v: Any) -> bool:
    # bool is an int subclass but never a valid reading
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _get_time(raw: dict, index: int) -> datetime:
    v = raw.get("time", _MISSING)
    if not isinstance(v, str):
        raise FieldTypeError("time", index, "a timestamp string", v, missing=v is _MISSING)
    try:
        dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise FieldTypeError("time", index, "an ISO-8601 timestamp", v) from None
    if dt.tzinfo is None:
        # naive timestamps are wall-clock time on this machine
        dt = dt.astimezone()
    return dt


def _get_num(raw: dict, name: str, index: int) -> float:
    v = raw.get(name, _MISSING)
    if not _is_number(v):
        raise FieldTypeError(name, index, "a number", v, missing=v is _MISSING)
    return v


def _get_optional_num(raw: dict, name: str, index: int) -> Optional[float]:
    v = raw.get(name)
    if v is None:
        return None
    if not _is_number(v):
        raise FieldTypeError(name, index, "a number or null", v)
    return v


def parse_sample(raw: Any, index: int) -> Sample:
    if not isinstance(raw, dict):
        raise InputFormatError(f"Sample {index} is a {type(raw).__name__}, expected an object")
    values = {name: _get_num(raw, name, index) for name in REQUIRED_NUMERIC_FIELDS}
    for name in OPTIONAL_NUMERIC_FIELDS:
        values[name] = _get_optional_num(raw, name, index)
    return Sample(time=_get_time(raw, index), **values)


def parse_samples(raw: Any) -> list[Sample]:
    """
    Validate decoded JSON and turn it into a list of samples.

    Raises InputFormatError if the top level is not a list, FieldTypeError
    on the first sample with a missing or wrongly typed field.
    """
    if not isinstance(raw, list):
        raise InputFormatError(f"Expected a JSON array of samples, got {type(raw).__name__}")
    return [parse_sample(item, i) for i, item in enumerate(raw)]


def load_samples(path: Path) -> list[Sample]:
    """Read a JSON file of samples from disk."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputFormatError(f"{path} is not valid JSON: {e}") from e
    samples = parse_samples(raw)
    log.info("Loaded %d samples from %s", len(samples), path)
    return samples
