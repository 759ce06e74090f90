"""JSON-file attempt store and learner profiles for the scoring API.

One file per graded attempt, plus a flat index used for per-user history
and a single profiles document.  Writes go through a temp file and a rename.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
ATTEMPTS_DIR = DATA_ROOT / "attempts"
ATTEMPT_INDEX_PATH = DATA_ROOT / "attempts_index.json"
PROFILES_PATH = DATA_ROOT / "profiles.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    ATTEMPTS_DIR.mkdir(parents=True, exist_ok=True)
    DATA_ROOT.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("unreadable store file %s, using default", path)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _submitted_at(row: Dict[str, Any]) -> datetime:
    raw = row.get("submittedAt")
    if not raw:
        return _EPOCH
    try:
        dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        log.warning("attempt %s has unreadable submittedAt %r", row.get("attemptId"), raw)
        return _EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def save_attempt(attempt: Dict[str, Any]) -> bool:
    """Persist an attempt once; returns False when the id is already stored."""

    _ensure_dirs()
    attempt_id = attempt["attemptId"]
    path = ATTEMPTS_DIR / f"{attempt_id}.json"

    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(ATTEMPT_INDEX_PATH, {})
        if attempt_id in index:
            return False
        index[attempt_id] = {
            "userId": attempt.get("userId"),
            "testId": attempt.get("testId"),
            "kind": attempt.get("kind"),
            "acc": attempt.get("acc"),
            "level": attempt.get("level"),
            "submittedAt": attempt.get("submittedAt"),
        }
        _write_json(path, attempt)
        _write_json(ATTEMPT_INDEX_PATH, index)
    return True


def load_attempt(attempt_id: str) -> Optional[Dict[str, Any]]:
    path = ATTEMPTS_DIR / f"{attempt_id}.json"
    if not path.exists():
        return None
    return _read_json(path, None)


def list_attempts_for_user(user_id: str, kind: str | None = None) -> List[Dict[str, Any]]:
    """Index rows for one user, ordered by submittedAt (oldest first)."""

    index: Dict[str, Dict[str, Any]] = _read_json(ATTEMPT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for aid, meta in index.items():
        if meta.get("userId") != user_id:
            continue
        if kind and meta.get("kind") != kind:
            continue
        row = {"attemptId": aid}
        row.update(meta)
        out.append(row)
    out.sort(key=_submitted_at)
    return out


def load_profile(user_id: str) -> Dict[str, Any]:
    profiles: Dict[str, Dict[str, Any]] = _read_json(PROFILES_PATH, {})
    return dict(profiles.get(user_id) or {"userId": user_id})


def update_profile(user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    with _LOCK:
        profiles: Dict[str, Dict[str, Any]] = _read_json(PROFILES_PATH, {})
        cur = dict(profiles.get(user_id) or {"userId": user_id})
        cur.update(updates)
        profiles[user_id] = cur
        _write_json(PROFILES_PATH, profiles)
    return cur
