from __future__ import annotations

import json
from datetime import timedelta

import pytest

from toeic_core.engine import grade
from toeic_core.errors import INVALID_CHOICE, UNKNOWN_ITEM, MalformedSubmission
from toeic_core.grading import elapsed_seconds, parse_submission
from toeic_core.reporting import attempt_to_dict

from tests.conftest import T0, payload


def _grade(bank, answers, **extra):
    sub = parse_submission(payload(answers, **extra))
    return grade(sub, bank.answer_key(), T0 + timedelta(hours=1))


def test_five_item_scenario(synthetic_bank):
    attempt = _grade(synthetic_bank, {
        "t1_p1_0": "A",
        "t1_p1_1": "A",
        "t1_p5_0": "A",
        "t1_p5_1": "B",
        "t1_p7_0": "C",
    })

    assert (attempt.total, attempt.correct) == (5, 3)
    assert attempt.acc == pytest.approx(0.6)
    assert (attempt.listening.total, attempt.listening.correct) == (2, 2)
    assert attempt.listening.acc == pytest.approx(1.0)
    assert (attempt.reading.total, attempt.reading.correct) == (3, 1)
    assert attempt.reading.acc == pytest.approx(0.333, abs=1e-3)
    assert attempt.total == attempt.listening.total + attempt.reading.total
    assert attempt.correct == attempt.listening.correct + attempt.reading.correct
    assert attempt.predicted.listening == 495
    assert attempt.predicted.reading == 170
    assert attempt.predicted.overall == 665
    assert attempt.level == 2
    assert attempt.time_sec == 2430


def test_choice_comparison_ignores_case_and_whitespace(synthetic_bank):
    attempt = _grade(synthetic_bank, {"t1_p5_0": " a ", "t1_p5_1": "a\n"})
    assert attempt.correct == 2
    assert [r.choice for r in attempt.rows] == ["A", "A"]


def test_unknown_item_is_flagged_and_not_scored(synthetic_bank):
    attempt = _grade(synthetic_bank, {"t1_p5_0": "A", "ghost": "A", "t1_p6_0": "B"})

    assert attempt.total == 2
    assert attempt.correct == 1
    assert [r.item_id for r in attempt.rows] == ["t1_p5_0", "ghost", "t1_p6_0"]
    ghost = attempt.rows[1]
    assert ghost.issue == UNKNOWN_ITEM and ghost.is_correct is False
    assert {"itemId": "ghost", "code": UNKNOWN_ITEM} in attempt.warnings
    assert "part.None" not in attempt.part_stats


def test_invalid_choice_counts_as_wrong_but_is_scored(synthetic_bank):
    attempt = _grade(synthetic_bank, {"t1_p2_0": "D", "t1_p5_0": "Z", "t1_p5_1": "A"})

    assert attempt.total == 3
    assert attempt.correct == 1
    issues = {r.item_id: r.issue for r in attempt.rows}
    assert issues == {"t1_p2_0": INVALID_CHOICE, "t1_p5_0": INVALID_CHOICE, "t1_p5_1": None}


def test_skipped_answer_is_wrong_without_warning(synthetic_bank):
    sub = parse_submission({
        **payload({}),
        "answers": [{"itemId": "t1_p5_0"}, {"itemId": "t1_p5_1", "choice": "A"}],
    })
    attempt = grade(sub, synthetic_bank.answer_key(), T0)
    assert attempt.correct == 1 and attempt.total == 2
    assert attempt.warnings == []


def test_zero_scored_items_gives_zero_accuracy(synthetic_bank):
    attempt = _grade(synthetic_bank, {"nope": "A"})
    assert attempt.total == 0
    assert attempt.acc == 0.0
    assert attempt.predicted.overall == 10
    assert attempt.level == 1


def test_regrading_is_byte_identical(synthetic_bank):
    answers = {"t1_p3_0": "A", "t1_p3_1": "B", "t1_p6_0": "A", "t1_p7_1": "C", "x": "A"}
    first = json.dumps(attempt_to_dict(_grade(synthetic_bank, answers)), sort_keys=True)
    second = json.dumps(attempt_to_dict(_grade(synthetic_bank, answers)), sort_keys=True)
    assert first == second


def test_finished_at_defaults_to_grading_time(synthetic_bank):
    body = payload({"t1_p5_0": "A"})
    body.pop("finishedAt")
    attempt = grade(parse_submission(body), synthetic_bank.answer_key(), T0 + timedelta(seconds=95.7))
    assert attempt.submitted_at == T0 + timedelta(seconds=95.7)
    assert attempt.time_sec == 95


def test_elapsed_is_never_negative():
    assert elapsed_seconds(T0, T0 - timedelta(seconds=10)) == 0


def test_blocks_follow_stimulus_groups(synthetic_bank):
    sub = parse_submission({
        **payload({}),
        "answers": [
            {"itemId": "t1_p3_0", "choice": "A", "timeSec": 20},
            {"itemId": "t1_p3_1", "choice": "A", "timeSec": 15.5},
            {"itemId": "t1_p5_0", "choice": "A", "timeSec": 9},
        ],
    })
    attempt = grade(sub, synthetic_bank.answer_key(), T0)
    assert [(b.key, b.time_sec) for b in attempt.blocks] == [
        ("t1_s_p3_0", 35.5),
        ("__single__:t1_p5_0", 9.0),
    ]


@pytest.mark.parametrize(
    "mutate, field",
    [
        (lambda b: b.pop("userId"), "userId"),
        (lambda b: b.update(testId="  "), "testId"),
        (lambda b: b.pop("startedAt"), "startedAt"),
        (lambda b: b.update(startedAt="yesterday"), "startedAt"),
        (lambda b: b.update(answers=[]), "answers"),
        (lambda b: b.update(answers="A,B"), "answers"),
        (lambda b: b.update(kind="exam"), "kind"),
        (lambda b: b.update(answers=[{"choice": "A"}]), "answers[0].itemId"),
        (lambda b: b.update(answers=[{"itemId": "q", "timeSec": -1}]), "answers[0].timeSec"),
        (lambda b: b.update(userId=123), "userId"),
        (lambda b: b.update(testId=1), "testId"),
        (lambda b: b.update(startedAt=1772355600), "startedAt"),
        (lambda b: b.update(finishedAt="later"), "finishedAt"),
        (lambda b: b.update(placementAttemptId=7), "placementAttemptId"),
        (lambda b: b.update(answers=[{"itemId": "q", "choice": 1}]), "answers[0].choice"),
        (lambda b: b.update(answers=[{"itemId": "q", "timeSec": "30"}]), "answers[0].timeSec"),
        (lambda b: b.update(answers=[{"itemId": " ", "choice": "A"}]), "answers[0].itemId"),
        (lambda b: b.update(answers=[{"itemId": "q", "choice": "A", "correct": True}]), "answers[0].correct"),
        (lambda b: b.update(score=990), "score"),
    ],
)
def test_malformed_submissions_are_rejected(mutate, field):
    body = payload({"t1_p5_0": "A"})
    mutate(body)
    with pytest.raises(MalformedSubmission) as exc:
        parse_submission(body)
    assert exc.value.field == field


def test_duplicate_answers_are_rejected():
    body = payload({"t1_p5_0": "A"})
    body["answers"].append({"itemId": "t1_p5_0", "choice": "B"})
    with pytest.raises(MalformedSubmission) as exc:
        parse_submission(body)
    assert exc.value.field == "answers"


def test_non_object_body_is_rejected():
    with pytest.raises(MalformedSubmission) as exc:
        parse_submission(["t1_p5_0", "A"])
    assert exc.value.field is None
    assert exc.value.to_dict()["error"] == "MalformedSubmission"


def test_naive_timestamps_are_read_as_utc():
    sub = parse_submission(payload({"t1_p5_0": "A"}, startedAt="2026-03-01T09:00:00"))
    assert sub.started_at == T0
    assert sub.started_at.utcoffset() == timedelta(0)


def test_ids_are_trimmed_and_z_suffix_accepted():
    sub = parse_submission(payload(
        {"t1_p5_0": "A"}, userId="  u1 ", startedAt="2026-03-01T09:00:00Z", placementAttemptId="p-1",
    ))
    assert sub.user_id == "u1"
    assert sub.started_at == T0
    assert sub.placement_attempt_id == "p-1"
    assert sub.answers[0].time_sec is None
