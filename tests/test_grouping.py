from __future__ import annotations

import pytest

from toeic_core.errors import MalformedSubmission
from toeic_core.grouping import SINGLE_PREFIX, block_time, group_by_stimulus
from toeic_core.types import AnswerRow, Item

from tests.conftest import T0, build_synthetic_bank


def _item(iid: str, sid: str | None, part: int = 3) -> Item:
    return Item(id=iid, test_id="1", part=part, stimulus_id=sid)


def test_every_item_lands_in_exactly_one_group_in_first_seen_order():
    items = [
        _item("q1", "s1"),
        _item("q2", None, part=5),
        _item("q3", "s2"),
        _item("q4", "s1"),
        _item("q5", None, part=5),
        _item("q6", "s2"),
    ]
    groups, index = group_by_stimulus(items)

    assert [g.key for g in groups] == ["s1", f"{SINGLE_PREFIX}q2", "s2", f"{SINGLE_PREFIX}q5"]
    assert [g.index_start for g in groups] == [0, 1, 2, 4]
    assert [it.id for it in groups[0].items] == ["q1", "q4"]

    member_ids = [it.id for g in groups for it in g.items]
    assert sorted(member_ids) == sorted(it.id for it in items)
    assert len(member_ids) == len(set(member_ids))
    assert index == {it.id: i for i, it in enumerate(items)}


def test_items_without_stimulus_never_merge():
    items = [_item(f"q{i}", None, part=5) for i in range(4)]
    groups, _ = group_by_stimulus(items)
    assert len(groups) == 4
    assert all(len(g.items) == 1 for g in groups)


def test_grouping_is_reproducible_and_attaches_stimulus():
    bank = build_synthetic_bank()
    items = bank.paper("1")
    stimuli = bank.stimuli_for(items)

    first, _ = group_by_stimulus(items, stimuli)
    second, _ = group_by_stimulus(items, stimuli)

    assert [(g.key, g.index_start, [i.id for i in g.items]) for g in first] == [
        (g.key, g.index_start, [i.id for i in g.items]) for g in second
    ]
    shared = [g for g in first if not g.key.startswith(SINGLE_PREFIX)]
    assert shared and all(g.stimulus is not None and g.stimulus.id == g.key for g in shared)
    assert all(len(g.items) == 2 for g in shared)


def test_duplicate_item_is_rejected():
    with pytest.raises(MalformedSubmission):
        group_by_stimulus([_item("q1", "s1"), _item("q1", "s1")])


def test_block_time_sums_member_rows():
    items = [_item("q1", "s1"), _item("q2", "s1"), _item("q3", None, part=5)]
    groups, _ = group_by_stimulus(items)
    rows = [
        AnswerRow(item_id="q1", choice="A", is_correct=True, at=T0, part=3, time_sec=12.5),
        AnswerRow(item_id="q2", choice="B", is_correct=False, at=T0, part=3, time_sec=7.5),
        AnswerRow(item_id="q3", choice="A", is_correct=True, at=T0, part=5),
    ]
    blocks = block_time(groups, rows)
    assert [(b.key, b.time_sec) for b in blocks] == [("s1", 20.0), (f"{SINGLE_PREFIX}q3", 0.0)]
    assert blocks[0].item_ids == ["q1", "q2"]
