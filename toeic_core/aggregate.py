# toeic_core/aggregate.py
from __future__ import annotations
import json, importlib.resources as ir
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import DEFAULT_SETTINGS, ScoringSettings
from .types import AnswerRow, PartStat, TagStat


def _finish(stat) -> None:
    stat.acc = stat.correct / stat.attempts if stat.attempts else 0.0


def part_stats(rows: Iterable[AnswerRow]) -> Dict[str, PartStat]:
    agg: Dict[str, PartStat] = {}
    for r in rows:
        if not r.scored or r.part is None:
            continue
        key = f"part.{r.part}"
        st = agg.get(key)
        if st is None:
            st = agg[key] = PartStat(part=key)
        st.attempts += 1
        if r.is_correct:
            st.correct += 1
    for st in agg.values():
        _finish(st)
    return dict(sorted(agg.items()))


def tag_stats(rows: Iterable[AnswerRow], item_index: Mapping[str, object]) -> List[TagStat]:
    """Per-tag accuracy; most practiced first, then weakest first."""

    agg: Dict[str, TagStat] = {}
    for r in rows:
        if not r.scored:
            continue
        it = item_index.get(r.item_id)
        for tag in getattr(it, "tags", None) or ():
            st = agg.get(tag)
            if st is None:
                st = agg[tag] = TagStat(tag=tag)
            st.attempts += 1
            if r.is_correct:
                st.correct += 1
    out = list(agg.values())
    for st in out:
        _finish(st)
    out.sort(key=lambda s: (-s.attempts, s.acc, s.tag))
    return out


def weak_parts(stats: Mapping[str, PartStat], settings: ScoringSettings = DEFAULT_SETTINGS) -> List[str]:
    # a part needs enough attempts before a low accuracy counts as weak
    weak = [
        st for st in stats.values()
        if st.attempts >= settings.weak_min_attempts and st.acc < settings.weak_threshold
    ]
    weak.sort(key=lambda s: (s.acc, s.part))
    return [s.part for s in weak]


def aggregate(
    rows: List[AnswerRow],
    item_index: Mapping[str, object],
    settings: ScoringSettings = DEFAULT_SETTINGS,
) -> Tuple[Dict[str, PartStat], List[TagStat], List[str]]:
    parts = part_stats(rows)
    return parts, tag_stats(rows, item_index), weak_parts(parts, settings)


def load_tag_labels() -> Dict[str, str]:
    """Slug -> display label from the packaged tag dictionary."""

    raw = json.loads(ir.files(__package__).joinpath("data/tags.json").read_text(encoding="utf-8"))
    labels: Dict[str, str] = {}
    for p in raw.get("part", []):
        labels[p] = p
    for group in ("format", "qtype", "topic", "grammar", "structure"):
        for slug, label in (raw.get(group) or {}).items():
            labels[slug] = str(label)
    return labels


def attach_tag_labels(stats: List[TagStat], labels: Optional[Mapping[str, str]] = None) -> List[TagStat]:
    labels = load_tag_labels() if labels is None else labels
    for st in stats:
        st.label = labels.get(st.tag, st.tag)
    return stats
