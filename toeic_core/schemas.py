"""Request-body models for graded submissions.

String and number fields are strict: `userId: 123` or `choice: 1` is an
error, not a value. Timestamps accept ISO-8601 text (a trailing `Z` is
fine); naive values are read as UTC.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, List, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    Strict,
    StringConstraints,
    TypeAdapter,
    field_validator,
)


def _iso_text_only(v: Any) -> Any:
    # numbers would otherwise be read as unix timestamps
    if v is None or isinstance(v, (str, datetime)):
        return v
    raise ValueError("must be an ISO-8601 timestamp")


def _utc_if_naive(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


Ident = Annotated[str, Strict(), StringConstraints(strip_whitespace=True, min_length=1)]
Seconds = Annotated[float, Strict(), Field(ge=0, allow_inf_nan=False)]
Timestamp = Annotated[datetime, BeforeValidator(_iso_text_only), AfterValidator(_utc_if_naive)]

_TIMESTAMP = TypeAdapter(Timestamp)


def to_timestamp(raw: Any) -> datetime:
    """Validate one ISO-8601 value the same way submission fields are."""

    return _TIMESTAMP.validate_python(raw)


class AnswerIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    itemId: Ident
    choice: Optional[Annotated[str, Strict()]] = None
    timeSec: Optional[Seconds] = None


class SubmissionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    userId: Ident
    testId: Ident
    kind: Literal["placement", "progress", "practice"] = "practice"
    startedAt: Timestamp
    finishedAt: Optional[Timestamp] = None
    placementAttemptId: Optional[Ident] = None
    answers: List[AnswerIn] = Field(min_length=1)

    @field_validator("answers")
    @classmethod
    def one_answer_per_item(cls, answers: List[AnswerIn]) -> List[AnswerIn]:
        seen: set[str] = set()
        for a in answers:
            if a.itemId in seen:
                raise ValueError(f"item {a.itemId!r} answered twice")
            seen.add(a.itemId)
        return answers
