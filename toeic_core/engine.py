# toeic_core/engine.py
from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Mapping
import json, logging, uuid

from .types import AnswerKeyEntry, AnswerRow, Attempt, Item, Submission
from .config import DEFAULT_SETTINGS, DEBUG_TRACE, ScoringSettings
from .grading import elapsed_seconds, grade_rows, section_totals
from .grouping import block_time, group_by_stimulus
from .aggregate import aggregate, attach_tag_labels
from .predict import predict
from .leveling import assign_level

log = logging.getLogger(__name__)

_ATTEMPT_NS = uuid.UUID("6f1c2a4e-3b7d-4c55-9a0e-2d8b1f6e7c90")


def attempt_id_for(sub: Submission) -> str:
    """Stable id: the same submission always maps to the same attempt id."""

    canon = {
        "userId": sub.user_id,
        "testId": sub.test_id,
        "kind": sub.kind,
        "startedAt": sub.started_at.isoformat(),
        "finishedAt": sub.finished_at.isoformat() if sub.finished_at else None,
        "placementAttemptId": sub.placement_attempt_id,
        "answers": [[a.item_id, a.choice, a.time_sec] for a in sub.answers],
    }
    return str(uuid.uuid5(_ATTEMPT_NS, json.dumps(canon, sort_keys=True)))


def _answered_items(rows: List[AnswerRow], answer_key: Mapping[str, AnswerKeyEntry], test_id: str) -> List[Item]:
    out: List[Item] = []
    for r in rows:
        if not r.scored:
            continue
        k = answer_key[r.item_id]
        out.append(
            Item(
                id=r.item_id,
                test_id=test_id,
                part=int(k.part),
                choices=list(k.choices),
                answer=k.choice,
                stimulus_id=k.stimulus_id,
                tags=list(k.tags),
            )
        )
    return out


def grade(
    submission: Submission,
    answer_key: Mapping[str, AnswerKeyEntry],
    now: datetime,
    settings: ScoringSettings = DEFAULT_SETTINGS,
) -> Attempt:
    """Grade one submission end to end.

    `now` is the grading timestamp; it is also the finish time when the
    submission does not carry one. Nothing else reads the clock, so the
    same inputs always yield the same Attempt.
    """

    finished_at = submission.finished_at or now
    rows, warnings = grade_rows(submission, answer_key, finished_at)

    items = _answered_items(rows, answer_key, submission.test_id)
    groups, _ = group_by_stimulus(items)
    blocks = block_time(groups, rows)

    overall, listening, reading = section_totals(rows)
    by_id: Dict[str, Item] = {it.id: it for it in items}
    parts, tags, weak = aggregate(rows, by_id, settings)
    attach_tag_labels(tags)
    predicted = predict(listening.acc, reading.acc)
    level = assign_level(predicted.overall, settings)

    if DEBUG_TRACE:
        log.info(
            "trace user=%s test=%s total=%d correct=%d blocks=%d predicted=%s level=%d",
            submission.user_id, submission.test_id, overall.total, overall.correct,
            len(groups), predicted, level,
        )
    if warnings:
        log.warning("attempt for user %s graded with %d warning(s)", submission.user_id, len(warnings))

    return Attempt(
        attempt_id=attempt_id_for(submission),
        user_id=submission.user_id,
        test_id=submission.test_id,
        kind=submission.kind,
        started_at=submission.started_at,
        submitted_at=finished_at,
        rows=rows,
        total=overall.total,
        correct=overall.correct,
        acc=overall.acc,
        listening=listening,
        reading=reading,
        part_stats=parts,
        tag_stats=tags,
        weak_parts=weak,
        predicted=predicted,
        level=level,
        time_sec=elapsed_seconds(submission.started_at, finished_at),
        placement_attempt_id=submission.placement_attempt_id,
        warnings=warnings,
        blocks=blocks,
    )
