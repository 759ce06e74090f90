"""Proficiency levels and retest eligibility."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .config import DEFAULT_SETTINGS, TOTAL_MAX, TOTAL_MIN, ScoringSettings
from .types import AttemptSummary, EligibilityState, LevelDecision

log = logging.getLogger(__name__)

TEST_KINDS = ("placement", "progress")


def assign_level(overall: int, settings: ScoringSettings = DEFAULT_SETTINGS) -> int:
    score = int(overall)
    if score < TOTAL_MIN or score > TOTAL_MAX:
        raise ValueError(f"overall score must be within {TOTAL_MIN}..{TOTAL_MAX}, got {overall!r}")
    for lo, hi, level in settings.level_bands:
        if lo <= score < hi:
            return level
    # bands are validated to tile the whole range
    raise AssertionError(f"no level band covers {score}")


def eligibility(
    last_placement_at: Optional[datetime],
    practice_attempts_since: int,
    now: datetime,
    settings: ScoringSettings = DEFAULT_SETTINGS,
) -> EligibilityState:
    """Either enough elapsed time or enough practice makes a learner eligible.

    `next_eligible_at` is the time threshold and is reported even when the
    practice count already qualifies.
    """

    if practice_attempts_since < 0:
        raise ValueError("practice_attempts_since must be non-negative")
    if last_placement_at is None:
        return EligibilityState(
            eligible=True,
            practice_since_count=practice_attempts_since,
            since=None,
            next_eligible_at=None,
            reason="no_placement_yet",
        )

    next_at = last_placement_at + timedelta(days=settings.eligibility_window_days)
    if now >= next_at:
        reason = "window_elapsed"
    elif practice_attempts_since >= settings.eligibility_min_practice:
        reason = "practice_volume"
    else:
        reason = "waiting_window"
    eligible = reason != "waiting_window"
    remaining = 0 if eligible else int(math.ceil((next_at - now).total_seconds()))
    return EligibilityState(
        eligible=eligible,
        practice_since_count=practice_attempts_since,
        since=last_placement_at,
        next_eligible_at=next_at,
        reason=reason,
        remaining_sec=remaining,
    )


def eligibility_from_history(
    history: Sequence[AttemptSummary],
    now: datetime,
    settings: ScoringSettings = DEFAULT_SETTINGS,
) -> EligibilityState:
    """Derive eligibility from a learner's attempts, oldest first."""

    ordered = sorted(history, key=lambda a: a.finished_at)
    anchor: Optional[datetime] = None
    for a in ordered:
        if a.kind in TEST_KINDS:
            anchor = a.finished_at
    practice = sum(
        1 for a in ordered
        if a.kind == "practice" and (anchor is None or a.finished_at > anchor)
    )
    log.debug("eligibility anchor=%s practice_since=%d", anchor, practice)
    return eligibility(anchor, practice, now, settings)


def decide_practice_level(
    current: int,
    recent: Sequence[AttemptSummary],
    settings: ScoringSettings = DEFAULT_SETTINGS,
    since: Optional[datetime] = None,
) -> LevelDecision:
    """Per-part practice level rule.

    Demote when the latest attempts on `window` distinct tests at the
    current level are all below the demote accuracy. Promote when the last
    `window` non-retake attempts at the current level average at least the
    promote accuracy. Otherwise keep.
    """

    if current not in (1, 2, 3):
        raise ValueError(f"level must be 1..3, got {current!r}")
    window = settings.practice_rule_window
    pool = [
        a for a in sorted(recent, key=lambda a: a.finished_at, reverse=True)
        if a.level == current and (since is None or a.finished_at > since)
    ]

    latest_per_test: Dict[str, AttemptSummary] = {}
    for a in pool:
        if a.test_id is not None and a.test_id not in latest_per_test:
            latest_per_test[a.test_id] = a
    by_test: List[AttemptSummary] = list(latest_per_test.values())[:window]
    if (
        current > 1
        and len(by_test) == window
        and all(a.acc < settings.practice_demote_acc for a in by_test)
    ):
        detail = ", ".join(f"test {a.test_id}: {round(a.acc * 100)}%" for a in by_test)
        return LevelDecision(
            level=current - 1,
            rule="demote",
            detail=f"last {window} distinct tests at level {current} all below "
                   f"{round(settings.practice_demote_acc * 100)}% ({detail})",
        )

    fresh = [a for a in pool if not a.is_retake][:window]
    if current < 3 and len(fresh) == window:
        avg = sum(a.acc for a in fresh) / window
        if avg >= settings.practice_promote_avg:
            return LevelDecision(
                level=current + 1,
                rule="promote",
                detail=f"last {window} attempts average {round(avg * 100)}%",
            )

    return LevelDecision(level=current, rule="keep", detail="thresholds not met")
