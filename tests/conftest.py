from __future__ import annotations

from datetime import datetime, timezone

import pytest

from toeic_core.bank import ItemBank
from toeic_core.config import ScoringSettings
from toeic_core.types import Item, Stimulus

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def build_synthetic_bank(*, test_id: str = "1", per_part: int = 4) -> ItemBank:
    """Create a deterministic synthetic bank for tests.

    Parts 3, 4, 6 and 7 come in blocks of two items sharing a stimulus; the
    canonical answer is always "A".
    """

    items: list[Item] = []
    stimuli: list[Stimulus] = []
    order = 0
    for part in range(1, 8):
        shared = part in (3, 4, 6, 7)
        for idx in range(per_part):
            order += 1
            sid = None
            if shared:
                sid = f"t{test_id}_s_p{part}_{idx // 2}"
                if idx % 2 == 0:
                    stimuli.append(Stimulus(id=sid, part=part, passage=f"passage {sid}"))
            items.append(
                Item(
                    id=f"t{test_id}_p{part}_{idx}",
                    test_id=test_id,
                    part=part,
                    choices=["A", "B", "C"] if part == 2 else ["A", "B", "C", "D"],
                    answer="A",
                    stimulus_id=sid,
                    tags=[f"tag_p{part}", "all"],
                    order=order,
                )
            )
    return ItemBank(items, stimuli)


def payload(answers: dict[str, str], **extra) -> dict:
    body = {
        "userId": "u1",
        "testId": "1",
        "kind": "placement",
        "startedAt": T0.isoformat(),
        "finishedAt": "2026-03-01T09:40:30+00:00",
        "answers": [{"itemId": k, "choice": v} for k, v in answers.items()],
    }
    body.update(extra)
    return body


@pytest.fixture
def synthetic_bank() -> ItemBank:
    return build_synthetic_bank()


@pytest.fixture
def settings() -> ScoringSettings:
    return ScoringSettings.from_cfg({
        "WEAK_THRESHOLD": 0.6,
        "WEAK_MIN_ATTEMPTS": 3,
        "LEVEL_BAND_LOW": 550,
        "LEVEL_BAND_HIGH": 695,
        "ELIGIBILITY_WINDOW_DAYS": 30,
        "ELIGIBILITY_MIN_PRACTICE": 10,
    })
