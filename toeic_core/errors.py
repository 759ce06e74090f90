from __future__ import annotations

UNKNOWN_ITEM = "UNKNOWN_ITEM"
INVALID_CHOICE = "INVALID_CHOICE"


class ScoringError(Exception):
    """Base class for errors raised by the scoring engine."""


class MalformedSubmission(ScoringError):
    """The submission is structurally invalid; nothing was graded."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        out = {"error": "MalformedSubmission", "message": str(self)}
        if self.field:
            out["field"] = self.field
        return out
