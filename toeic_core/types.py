from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Optional, Literal

AttemptKind = Literal["placement", "progress", "practice"]
ATTEMPT_KINDS = ("placement", "progress", "practice")
IssueCode = Literal["UNKNOWN_ITEM", "INVALID_CHOICE"]


@dataclass(frozen=True)
class Item:
    id: str; test_id: str; part: int
    choices: List[str] = field(default_factory=lambda: ["A", "B", "C", "D"])
    answer: str = "A"
    stimulus_id: Optional[str] = None
    explanation: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    order: Optional[int] = None

    @property
    def part_key(self) -> str:
        return f"part.{self.part}"


@dataclass(frozen=True)
class Stimulus:
    id: str; part: int
    audio: Optional[str] = None
    image: Optional[str] = None
    passage: Optional[str] = None
    script: Optional[str] = None


@dataclass(frozen=True)
class AnswerKeyEntry:
    choice: str; part: int
    choices: tuple = ("A", "B", "C", "D")
    tags: tuple = ()
    stimulus_id: Optional[str] = None


@dataclass(frozen=True)
class SubmittedAnswer:
    item_id: str; choice: str; time_sec: Optional[float] = None


@dataclass(frozen=True)
class Submission:
    user_id: str
    test_id: str
    started_at: datetime
    answers: List[SubmittedAnswer]
    kind: AttemptKind = "practice"
    finished_at: Optional[datetime] = None
    placement_attempt_id: Optional[str] = None


@dataclass
class AnswerRow:
    item_id: str
    choice: str
    is_correct: bool
    at: datetime
    part: Optional[int] = None
    correct_answer: Optional[str] = None
    time_sec: Optional[float] = None
    issue: Optional[IssueCode] = None

    @property
    def scored(self) -> bool:
        return self.issue != "UNKNOWN_ITEM"


@dataclass
class SectionStat:
    total: int = 0
    correct: int = 0
    acc: float = 0.0


@dataclass
class PartStat:
    part: str
    attempts: int = 0
    correct: int = 0
    acc: float = 0.0


@dataclass
class TagStat:
    tag: str
    attempts: int = 0
    correct: int = 0
    acc: float = 0.0
    label: Optional[str] = None


@dataclass(frozen=True)
class PredictedScore:
    overall: int; listening: int; reading: int


@dataclass
class StimulusGroup:
    key: str
    index_start: int
    items: List[Item] = field(default_factory=list)
    stimulus: Optional[Stimulus] = None


@dataclass
class BlockTime:
    key: str
    index_start: int
    item_ids: List[str]
    time_sec: float = 0.0


@dataclass
class Attempt:
    attempt_id: str
    user_id: str
    test_id: str
    kind: AttemptKind
    started_at: datetime
    submitted_at: datetime
    rows: List[AnswerRow]
    total: int
    correct: int
    acc: float
    listening: SectionStat
    reading: SectionStat
    part_stats: Dict[str, PartStat]
    tag_stats: List[TagStat]
    weak_parts: List[str]
    predicted: PredictedScore
    level: int
    time_sec: int
    placement_attempt_id: Optional[str] = None
    warnings: List[Dict[str, str]] = field(default_factory=list)
    blocks: List[BlockTime] = field(default_factory=list)


@dataclass(frozen=True)
class AttemptSummary:
    attempt_id: str; kind: AttemptKind; finished_at: datetime
    acc: float = 0.0
    test_id: Optional[str] = None
    part_key: Optional[str] = None
    level: Optional[int] = None
    is_retake: bool = False


@dataclass(frozen=True)
class EligibilityState:
    eligible: bool
    practice_since_count: int
    since: Optional[datetime]
    next_eligible_at: Optional[datetime]
    reason: str = "ok"
    remaining_sec: int = 0


@dataclass(frozen=True)
class LevelDecision:
    level: int
    rule: Literal["promote", "demote", "keep"]
    detail: str
