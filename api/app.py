from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AwareDatetime, BaseModel, Field
import logging, os, typing as t

# ---- Engine imports ----
from toeic_core.bank import load_bank
from toeic_core.config import load_settings
from toeic_core.engine import grade
from toeic_core.errors import MalformedSubmission
from toeic_core.export import to_csv as items_to_csv, to_json as items_to_json
from toeic_core.grading import parse_submission
from toeic_core.grouping import group_by_stimulus
from toeic_core.leveling import decide_practice_level, eligibility_from_history
from toeic_core.reporting import (
    attempt_to_dict,
    eligibility_to_dict,
    paper_to_dict,
    summary_from_dict,
)
from toeic_core.types import AttemptSummary
from .storage import (
    list_attempts_for_user,
    load_attempt,
    load_profile,
    save_attempt,
    update_profile,
    utcnow,
)

log = logging.getLogger(__name__)

BANK = load_bank(os.getenv("BANK_PATH") or None)
SETTINGS = load_settings(os.getenv("SCORING_CONFIG", "config.json"))

app = FastAPI(title="TOEIC Scoring API")


@app.get("/")
def root():
    return {"status": "ok", "service": "toeic-scoring-api"}


ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class PracticeAttemptIn(BaseModel):
    testId: str | None = None
    acc: float = Field(ge=0, le=1)
    level: int = Field(ge=1, le=3)
    finishedAt: AwareDatetime
    isRetake: bool = False

class PracticeLevelReq(BaseModel):
    current: int
    attempts: list[PracticeAttemptIn]
    since: AwareDatetime | None = None

# ---- Helpers ----
def _serialize_item(it) -> dict[str, t.Any]:
    return {
        "id": it.id,
        "testId": it.test_id,
        "part": it.part_key,
        "stimulusId": it.stimulus_id,
        "choices": list(it.choices),
        "tags": list(it.tags),
    }


def _serialize_stimulus(s) -> dict[str, t.Any]:
    return {k: v for k, v in {
        "id": s.id,
        "part": f"part.{s.part}",
        "audio": s.audio,
        "image": s.image,
        "passage": s.passage,
        "script": s.script,
    }.items() if v is not None}


def _grade_payload(payload: t.Any) -> dict[str, t.Any]:
    try:
        sub = parse_submission(payload)
    except MalformedSubmission as exc:
        log.info("rejected submission: %s", exc)
        raise HTTPException(400, exc.to_dict())
    attempt = grade(sub, BANK.answer_key(), utcnow(), SETTINGS)
    return attempt_to_dict(attempt)


def _eligibility_for(user_id: str):
    history = [summary_from_dict(r) for r in list_attempts_for_user(user_id)]
    return eligibility_from_history(history, utcnow(), SETTINGS)

# ---- Health ----
@app.get("/health")
def health():
    return {
        "items": len(BANK.items),
        "tests": BANK.test_ids(),
        "weak_threshold": SETTINGS.weak_threshold,
        "eligibility_window_days": SETTINGS.eligibility_window_days,
    }

# ---- Paper ----
@app.get("/paper")
def paper(test: str | None = Query(None, description="Test id; defaults to the first test")):
    test_id = test or (BANK.test_ids() or [None])[0]
    items = BANK.paper(test_id) if test_id is not None else []
    if not items:
        raise HTTPException(404, "test not found")
    stimuli = BANK.stimuli_for(items)
    groups, item_index = group_by_stimulus(items, stimuli)
    return {
        "test": test_id,
        "items": [_serialize_item(it) for it in items],
        "stimulusMap": {sid: _serialize_stimulus(s) for sid, s in stimuli.items()},
        "groups": paper_to_dict(groups, item_index),
    }

# ---- Grading ----
@app.post("/grade")
def grade_preview(payload: t.Any = Body(...)):
    """Score without saving anything."""
    return _grade_payload(payload)


@app.post("/attempts")
def submit_attempt(payload: t.Any = Body(...)):
    attempt = _grade_payload(payload)
    if not save_attempt(attempt):
        # resubmission of an already stored attempt
        stored = load_attempt(attempt["attemptId"])
        return stored or attempt

    user_id = attempt["userId"]
    updates: dict[str, t.Any] = {"lastAttemptAt": attempt["submittedAt"]}
    if attempt["kind"] in ("placement", "progress"):
        updates.update({
            "level": attempt["level"],
            "toeicPred": attempt["predicted"],
            "lastPlacementAt": attempt["submittedAt"],
            "lastPlacementAttemptId": attempt["attemptId"],
        })
    elig = _eligibility_for(user_id)
    updates["nextEligibleAt"] = eligibility_to_dict(elig)["nextEligibleAt"]
    update_profile(user_id, updates)
    return attempt


@app.get("/attempts/{attempt_id}")
def get_attempt(attempt_id: str):
    attempt = load_attempt(attempt_id)
    if not attempt:
        raise HTTPException(404, "attempt not found")
    return attempt


@app.get("/attempts/{attempt_id}/items.json")
def get_attempt_items_json(attempt_id: str):
    attempt = load_attempt(attempt_id)
    if not attempt:
        raise HTTPException(404, "attempt not found")
    return items_to_json(attempt.get("items") or [])


@app.get("/attempts/{attempt_id}/items.csv")
def get_attempt_csv(attempt_id: str):
    attempt = load_attempt(attempt_id)
    if not attempt:
        raise HTTPException(404, "attempt not found")
    body = items_to_csv(attempt.get("items") or [])
    filename = f"{attempt_id}_items.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )

# ---- Learner views ----
@app.get("/users/{user_id}/attempts")
def list_attempts(user_id: str, kind: str | None = None):
    rows = list_attempts_for_user(user_id, kind)
    rows.reverse()
    return {"attempts": rows}


@app.get("/users/{user_id}/eligibility")
def get_eligibility(user_id: str):
    return eligibility_to_dict(_eligibility_for(user_id))


@app.get("/users/{user_id}/profile")
def get_profile(user_id: str):
    return load_profile(user_id)


@app.post("/users/{user_id}/practice-level")
def practice_level(user_id: str, req: PracticeLevelReq):
    if req.current not in (1, 2, 3):
        raise HTTPException(400, "current level must be 1..3")
    recent = [
        AttemptSummary(
            attempt_id=f"{user_id}:{i}",
            kind="practice",
            finished_at=a.finishedAt,
            acc=a.acc,
            test_id=a.testId,
            level=a.level,
            is_retake=a.isRetake,
        )
        for i, a in enumerate(req.attempts)
    ]
    decision = decide_practice_level(req.current, recent, SETTINGS, since=req.since)
    return {"userId": user_id, "level": decision.level, "rule": decision.rule, "detail": decision.detail}
