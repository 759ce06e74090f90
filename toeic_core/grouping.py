"""Group a flat item sequence into blocks that share one stimulus.

Group order is the order in which each key first appears; it is never
re-sorted, so numbering shown to the learner is reproducible from the same
item list.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import MalformedSubmission
from .types import AnswerRow, BlockTime, Item, Stimulus, StimulusGroup

SINGLE_PREFIX = "__single__:"


def group_key(item: Item) -> str:
    sid = (item.stimulus_id or "").strip()
    return sid if sid else f"{SINGLE_PREFIX}{item.id}"


def group_by_stimulus(
    items: Sequence[Item],
    stimuli: Optional[Mapping[str, Stimulus]] = None,
) -> Tuple[List[StimulusGroup], Dict[str, int]]:
    """Return (groups, item_id -> global index)."""

    groups: List[StimulusGroup] = []
    by_key: Dict[str, StimulusGroup] = {}
    item_index: Dict[str, int] = {}
    stimuli = stimuli or {}

    for idx, it in enumerate(items):
        if it.id in item_index:
            raise MalformedSubmission(f"item {it.id!r} appears more than once", field="items")
        item_index[it.id] = idx
        key = group_key(it)
        grp = by_key.get(key)
        if grp is None:
            grp = StimulusGroup(key=key, index_start=idx, stimulus=stimuli.get(key))
            by_key[key] = grp
            groups.append(grp)
        grp.items.append(it)

    return groups, item_index


def block_time(groups: Iterable[StimulusGroup], rows: Iterable[AnswerRow]) -> List[BlockTime]:
    """Sum time-on-item per block; rows without timing count as zero."""

    spent: Dict[str, float] = {}
    for r in rows:
        if r.time_sec is not None:
            spent[r.item_id] = spent.get(r.item_id, 0.0) + float(r.time_sec)
    out: List[BlockTime] = []
    for g in groups:
        ids = [it.id for it in g.items]
        out.append(
            BlockTime(
                key=g.key,
                index_start=g.index_start,
                item_ids=ids,
                time_sec=round(sum(spent.get(i, 0.0) for i in ids), 3),
            )
        )
    return out
