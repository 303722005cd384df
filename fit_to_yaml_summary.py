#!/usr/bin/env python3
"""
Read a FIT activity file back and reduce it to a YAML summary.

- Counts messages by type.
- Pulls session totals, the lap table and the record time/distance range.
- Counts records carrying the "Wind" developer field.
- Outputs YAML to stdout, or alongside the FIT file with --write.

Handy for eyeballing what trackfit produced without a device or a
platform upload.
"""

from __future__ import annotations

import sys
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from fitparse import FitFile

SUMMARY_FIELDS = (
    "start_time",
    "total_elapsed_time",
    "total_timer_time",
    "total_distance",
    "start_position_lat",
    "start_position_long",
    "sport",
)


# ---------- Helper functions ----------

def _round(x: Optional[float], n: int = 1) -> Optional[float]:
    if x is None:
        return None
    try:
        return round(float(x), n)
    except (TypeError, ValueError):
        return None


def _iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat()


def _plain(value: Any) -> Any:
    """Make a fitparse value safe for yaml.safe_dump."""
    if isinstance(value, datetime):
        return _iso(value)
    if isinstance(value, float):
        return _round(value, 3)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def load_fit(path: Path) -> FitFile:
    ff = FitFile(str(path))
    ff.parse()
    return ff


def message_dicts(ff: FitFile, name: str) -> List[dict]:
    """All messages of one type as plain dicts, in file order."""
    out = []
    for msg in ff.get_messages(name):
        out.append({field.name: field.value for field in msg})
    return out


def summarize_block(d: dict) -> Dict[str, Any]:
    return {k: _plain(d.get(k)) for k in SUMMARY_FIELDS}


def summarize_records(records: List[dict]) -> Dict[str, Any]:
    if not records:
        return {"count": 0}
    timestamps = [r["timestamp"] for r in records if r.get("timestamp") is not None]
    distances = [r["distance"] for r in records if r.get("distance") is not None]
    wind = [r["Wind"] for r in records if r.get("Wind") is not None]
    return {
        "count": len(records),
        "first_timestamp": _iso(min(timestamps)) if timestamps else None,
        "last_timestamp": _iso(max(timestamps)) if timestamps else None,
        "max_distance_m": _round(max(distances), 2) if distances else None,
        "with_power": sum(1 for r in records if r.get("power") is not None),
        "with_wind": len(wind),
        "avg_wind_ms": _round(sum(wind) / len(wind), 2) if wind else None,
    }


def build_summary_from_fit(path: Path) -> Dict[str, Any]:
    """
    Main function:
      - loads FIT
      - counts messages by type
      - extracts session / lap / record figures
      - returns a YAML-ready dict
    """
    ff = load_fit(path)

    counts = Counter(msg.name for msg in ff.messages)

    file_ids = message_dicts(ff, "file_id")
    file_id = file_ids[0] if file_ids else {}

    sessions = message_dicts(ff, "session")
    laps = message_dicts(ff, "lap")
    records = message_dicts(ff, "record")

    return {
        "file": str(path),
        "product_name": file_id.get("product_name"),
        "time_created": _iso(file_id.get("time_created")),
        "messages": dict(sorted(counts.items())),
        "session": summarize_block(sessions[0]) if sessions else None,
        "laps": [summarize_block(lap) for lap in laps],
        "records": summarize_records(records),
    }


# ---------- CLI entrypoint ----------

def main(argv: List[str]) -> None:
    if len(argv) < 2:
        print(f"Usage: {argv[0]} ACTIVITY.fit [--write]", file=sys.stderr)
        sys.exit(1)

    fit_path = Path(argv[1])
    if not fit_path.exists():
        print(f"File not found: {fit_path}", file=sys.stderr)
        sys.exit(1)

    summary = build_summary_from_fit(fit_path)

    if "--write" in argv[2:]:
        out_path = fit_path.with_suffix(".yaml")
        with open(out_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(summary, f, sort_keys=False, allow_unicode=True)
        print(f"Wrote {out_path}", file=sys.stderr)
    else:
        yaml.safe_dump(summary, sys.stdout, sort_keys=False, allow_unicode=True)


def cli() -> None:
    main(sys.argv)


if __name__ == "__main__":
    cli()
