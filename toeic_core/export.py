"""Helpers to export graded item rows in JSON/CSV formats."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any
import csv
import io

_FIELDS: tuple[str, ...] = (
    "n",
    "id",
    "part",
    "picked",
    "correctAnswer",
    "isCorrect",
    "timeSec",
    "issue",
)


def _normalize_row(n: int, row: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {"n": n}
    for key in _FIELDS[1:]:
        val = row.get(key)
        if key == "isCorrect":
            out[key] = 1 if val else 0
        elif key == "timeSec":
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = ""
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload of numbered item rows."""

    normalized: List[Dict[str, Any]] = [
        _normalize_row(i, r or {}) for i, r in enumerate(rows, start=1)
    ]
    return {"items": normalized}


def to_csv(rows: Iterable[Dict[str, Any]]) -> str:
    """Render item rows as CSV with a fixed header."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for i, r in enumerate(rows, start=1):
        writer.writerow(_normalize_row(i, r or {}))
    return buf.getvalue()


__all__ = ["to_json", "to_csv"]
