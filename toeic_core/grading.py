from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Mapping, Tuple
import logging, math

from pydantic import ValidationError

from .config import LISTENING, allowed_choices, section_for_part
from .errors import INVALID_CHOICE, UNKNOWN_ITEM, MalformedSubmission
from .schemas import SubmissionIn, to_timestamp
from .types import (
    AnswerKeyEntry,
    AnswerRow,
    SectionStat,
    Submission,
    SubmittedAnswer,
)

log = logging.getLogger(__name__)


def _field_path(loc: Tuple[Any, ...]) -> str | None:
    # ("answers", 0, "itemId") -> "answers[0].itemId"
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or None


def _malformed(exc: ValidationError) -> MalformedSubmission:
    err = exc.errors()[0]
    field = _field_path(tuple(err.get("loc") or ()))
    msg = err.get("msg") or "invalid value"
    return MalformedSubmission(f"{field}: {msg}" if field else msg, field=field)


def parse_timestamp(raw: Any, field: str) -> datetime:
    try:
        return to_timestamp(raw)
    except ValidationError:
        raise MalformedSubmission(f"{field} is not an ISO timestamp", field=field) from None


def parse_submission(payload: Any) -> Submission:
    """Validate a raw request body into a Submission.

    Raises MalformedSubmission before any grading happens; there is no
    partially-built result on failure.
    """

    try:
        body = SubmissionIn.model_validate(payload)
    except ValidationError as exc:
        raise _malformed(exc) from None

    return Submission(
        user_id=body.userId,
        test_id=body.testId,
        started_at=body.startedAt,
        answers=[
            SubmittedAnswer(item_id=a.itemId, choice=a.choice or "", time_sec=a.timeSec)
            for a in body.answers
        ],
        kind=body.kind,
        finished_at=body.finishedAt,
        placement_attempt_id=body.placementAttemptId,
    )


def normalize_choice(choice: str) -> str:
    return (choice or "").strip().upper()


def grade_rows(
    submission: Submission,
    answer_key: Mapping[str, AnswerKeyEntry],
    at: datetime,
) -> Tuple[List[AnswerRow], List[Dict[str, str]]]:
    """Grade every submitted answer against the authoritative key.

    Unknown items stay in the output flagged UNKNOWN_ITEM; they are excluded
    from scoring but never dropped.
    """

    rows: List[AnswerRow] = []
    warnings: List[Dict[str, str]] = []
    for ans in submission.answers:
        picked = normalize_choice(ans.choice)
        key = answer_key.get(ans.item_id)
        if key is None:
            log.warning("unknown item %s in submission for test %s", ans.item_id, submission.test_id)
            rows.append(
                AnswerRow(
                    item_id=ans.item_id,
                    choice=picked,
                    is_correct=False,
                    at=at,
                    time_sec=ans.time_sec,
                    issue=UNKNOWN_ITEM,
                )
            )
            warnings.append({"itemId": ans.item_id, "code": UNKNOWN_ITEM})
            continue

        alphabet = tuple(c.upper() for c in (key.choices or allowed_choices(key.part)))
        issue = None
        if picked and picked not in alphabet:
            log.warning("invalid choice %r for item %s", picked, ans.item_id)
            issue = INVALID_CHOICE
            warnings.append({"itemId": ans.item_id, "code": INVALID_CHOICE})
        canonical = normalize_choice(key.choice)
        rows.append(
            AnswerRow(
                item_id=ans.item_id,
                choice=picked,
                is_correct=issue is None and bool(picked) and picked == canonical,
                at=at,
                part=int(key.part),
                correct_answer=canonical,
                time_sec=ans.time_sec,
                issue=issue,
            )
        )
    return rows, warnings


def _acc(correct: int, total: int) -> float:
    return correct / total if total > 0 else 0.0


def section_totals(rows: List[AnswerRow]) -> Tuple[SectionStat, SectionStat, SectionStat]:
    """Return (overall, listening, reading) over scored rows."""

    overall, listening, reading = SectionStat(), SectionStat(), SectionStat()
    for r in rows:
        if not r.scored:
            continue
        sec = listening if section_for_part(r.part) == LISTENING else reading
        for s in (overall, sec):
            s.total += 1
            if r.is_correct:
                s.correct += 1
    for s in (overall, listening, reading):
        s.acc = _acc(s.correct, s.total)
    return overall, listening, reading


def elapsed_seconds(started_at: datetime, finished_at: datetime) -> int:
    delta = (finished_at - started_at).total_seconds()
    return max(0, int(math.floor(delta)))
