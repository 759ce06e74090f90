from __future__ import annotations
import json, importlib.resources as ir
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import allowed_choices
from .types import AnswerKeyEntry, Item, Stimulus


def parse_part(raw: Any) -> int:
    """Accept 3, "3" or "part.3"."""

    txt = str(raw).strip().lower()
    if txt.startswith("part."):
        txt = txt[5:]
    part = int(txt)
    if not 1 <= part <= 7:
        raise ValueError(f"part must be 1..7, got {raw!r}")
    return part


def item_from_dict(r: Dict[str, Any]) -> Item:
    part = parse_part(r["part"])
    choices = r.get("choices") or list(allowed_choices(part))
    # choice objects {"id": "A", "text": ...} or bare keys
    keys = [str(c.get("id") if isinstance(c, dict) else c).strip().upper() for c in choices]
    return Item(
        id=str(r["id"]),
        test_id=str(r.get("testId", r.get("test", ""))),
        part=part,
        choices=keys,
        answer=str(r["answer"]).strip().upper(),
        stimulus_id=r.get("stimulusId") or None,
        explanation=r.get("explanation"),
        tags=[str(t) for t in r.get("tags") or []],
        order=r.get("order"),
    )


def stimulus_from_dict(r: Dict[str, Any]) -> Stimulus:
    return Stimulus(
        id=str(r["id"]),
        part=parse_part(r["part"]),
        audio=r.get("audio"),
        image=r.get("image"),
        passage=r.get("passage"),
        script=r.get("script"),
    )


class ItemBank:
    """Read-only item/stimulus lookup."""

    def __init__(self, items: Iterable[Item], stimuli: Iterable[Stimulus] = ()):
        self.items: Dict[str, Item] = {}
        for it in items:
            if it.id in self.items:
                raise ValueError(f"duplicate item id {it.id!r} in bank")
            self.items[it.id] = it
        self.stimuli: Dict[str, Stimulus] = {s.id: s for s in stimuli}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ItemBank":
        return cls(
            [item_from_dict(r) for r in raw.get("items", [])],
            [stimulus_from_dict(r) for r in raw.get("stimuli", [])],
        )

    def get(self, item_id: str) -> Optional[Item]:
        return self.items.get(item_id)

    def answer_key(self) -> Dict[str, AnswerKeyEntry]:
        return {
            it.id: AnswerKeyEntry(
                choice=it.answer,
                part=it.part,
                choices=tuple(it.choices),
                tags=tuple(it.tags),
                stimulus_id=it.stimulus_id,
            )
            for it in self.items.values()
        }

    def test_ids(self) -> List[str]:
        return sorted({it.test_id for it in self.items.values()})

    def paper(self, test_id: str) -> List[Item]:
        """Items of one test ordered by `order`, then id."""

        picked = [it for it in self.items.values() if it.test_id == str(test_id)]
        picked.sort(key=lambda it: (it.order is None, it.order or 0, it.id))
        return picked

    def stimuli_for(self, items: Iterable[Item]) -> Dict[str, Stimulus]:
        out: Dict[str, Stimulus] = {}
        for it in items:
            if it.stimulus_id and it.stimulus_id in self.stimuli:
                out[it.stimulus_id] = self.stimuli[it.stimulus_id]
        return out


def load_bank(path: str | None = None) -> ItemBank:
    """Load a bank from `path`, or the packaged sample bank."""

    if path:
        data = Path(path).read_text(encoding="utf-8")
    else:
        data = ir.files(__package__).joinpath("data/bank.json").read_text(encoding="utf-8")
    return ItemBank.from_dict(json.loads(data))
