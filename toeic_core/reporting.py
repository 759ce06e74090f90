# toeic_core/reporting.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from .types import AnswerRow, Attempt, AttemptSummary, EligibilityState, SectionStat


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _section(s: SectionStat) -> Dict[str, Any]:
    return {"total": s.total, "correct": s.correct, "acc": s.acc}


def _row(r: AnswerRow) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": r.item_id,
        "part": f"part.{r.part}" if r.part is not None else None,
        "picked": r.choice or None,
        "correctAnswer": r.correct_answer,
        "isCorrect": r.is_correct,
    }
    if r.time_sec is not None:
        out["timeSec"] = r.time_sec
    if r.issue:
        out["issue"] = r.issue
    return out


def attempt_to_dict(a: Attempt) -> Dict[str, Any]:
    """Public JSON shape of a graded attempt; key names are a stable contract."""

    return {
        "attemptId": a.attempt_id,
        "userId": a.user_id,
        "testId": a.test_id,
        "kind": a.kind,
        "total": a.total,
        "correct": a.correct,
        "acc": a.acc,
        "listening": _section(a.listening),
        "reading": _section(a.reading),
        "level": a.level,
        "items": [_row(r) for r in a.rows],
        "timeSec": a.time_sec,
        "startedAt": _iso(a.started_at),
        "submittedAt": _iso(a.submitted_at),
        "partStats": {
            k: {"total": s.attempts, "correct": s.correct, "acc": s.acc}
            for k, s in a.part_stats.items()
        },
        "tagStats": [
            {"tag": t.tag, "label": t.label or t.tag, "attempts": t.attempts, "correct": t.correct, "accuracy": t.acc}
            for t in a.tag_stats
        ],
        "weakParts": list(a.weak_parts),
        "predicted": {
            "overall": a.predicted.overall,
            "listening": a.predicted.listening,
            "reading": a.predicted.reading,
        },
        "placementAttemptId": a.placement_attempt_id,
        "warnings": [dict(w) for w in a.warnings],
        "blocks": [
            {"key": b.key, "indexStart": b.index_start, "itemIds": list(b.item_ids), "timeSec": b.time_sec}
            for b in a.blocks
        ],
    }


def summary_from_dict(d: Dict[str, Any]) -> AttemptSummary:
    """Rebuild the scheduler's view of a stored attempt record."""

    return AttemptSummary(
        attempt_id=str(d.get("attemptId") or d.get("id")),
        kind=d.get("kind") or "practice",
        finished_at=datetime.fromisoformat(str(d["submittedAt"]).replace("Z", "+00:00")),
        acc=float(d.get("acc") or 0.0),
        test_id=d.get("testId"),
        level=d.get("level"),
    )


def eligibility_to_dict(e: EligibilityState) -> Dict[str, Any]:
    return {
        "eligible": e.eligible,
        "practiceSinceCount": e.practice_since_count,
        "since": _iso(e.since),
        "nextEligibleAt": _iso(e.next_eligible_at),
        "reason": e.reason,
        "remainingSec": e.remaining_sec,
    }


def paper_to_dict(groups: List[Any], item_index: Dict[str, int]) -> List[Dict[str, Any]]:
    out = []
    for g in groups:
        out.append({
            "key": g.key,
            "indexStart": g.index_start,
            "stimulusId": g.stimulus.id if g.stimulus else None,
            "itemIds": [it.id for it in g.items],
            "numbers": [item_index[it.id] + 1 for it in g.items],
        })
    return out
