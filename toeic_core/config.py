from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


LISTENING: str = "listening"
READING: str = "reading"

# part number -> section; shared by the grader, aggregator and scheduler
PART_SECTIONS: Dict[int, str] = {
    1: LISTENING,
    2: LISTENING,
    3: LISTENING,
    4: LISTENING,
    5: READING,
    6: READING,
    7: READING,
}

DEFAULT_CHOICES: Tuple[str, ...] = ("A", "B", "C", "D")
PART_CHOICES: Dict[int, Tuple[str, ...]] = {2: ("A", "B", "C")}

SECTION_MIN: int = 5
SECTION_MAX: int = 495
TOTAL_MIN: int = 10
TOTAL_MAX: int = 990
SCALE_STEP: int = 5

WEAK_THRESHOLD: float = 0.6
WEAK_MIN_ATTEMPTS: int = 3

# [low, high) bands over the total scale; the last band is closed at TOTAL_MAX
LEVEL_BAND_LOW: int = 550
LEVEL_BAND_HIGH: int = 695

ELIGIBILITY_WINDOW_DAYS: float = 30.0
ELIGIBILITY_MIN_PRACTICE: int = 10

PRACTICE_PROMOTE_AVG: float = 0.70
PRACTICE_DEMOTE_ACC: float = 0.50
PRACTICE_RULE_WINDOW: int = 3

# // env overrides for staging/ops; defaults follow the product thresholds.
WEAK_THRESHOLD = _env_float("WEAK_THRESHOLD", WEAK_THRESHOLD)
WEAK_MIN_ATTEMPTS = _env_int("WEAK_MIN_ATTEMPTS", WEAK_MIN_ATTEMPTS)
LEVEL_BAND_LOW = _env_int("LEVEL_BAND_LOW", LEVEL_BAND_LOW)
LEVEL_BAND_HIGH = _env_int("LEVEL_BAND_HIGH", LEVEL_BAND_HIGH)
ELIGIBILITY_WINDOW_DAYS = _env_float("ELIGIBILITY_WINDOW_DAYS", ELIGIBILITY_WINDOW_DAYS)
ELIGIBILITY_MIN_PRACTICE = _env_int("ELIGIBILITY_MIN_PRACTICE", ELIGIBILITY_MIN_PRACTICE)
DEBUG_TRACE: bool = _env_bool("DEBUG_TRACE", False)


def section_for_part(part: int) -> str:
    try:
        return PART_SECTIONS[int(part)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"part must be 1..7, got {part!r}") from None


def allowed_choices(part: int) -> Tuple[str, ...]:
    return PART_CHOICES.get(int(part), DEFAULT_CHOICES)


def validate_bands(bands: Tuple[Tuple[int, int, int], ...]) -> None:
    """Bands must tile TOTAL_MIN..TOTAL_MAX with no gap and no overlap."""

    if not bands:
        raise ValueError("level bands are empty")
    ordered = sorted(bands, key=lambda b: b[0])
    if ordered[0][0] != TOTAL_MIN:
        raise ValueError(f"level bands must start at {TOTAL_MIN}")
    for (lo, hi, _), (nxt_lo, _, _) in zip(ordered, ordered[1:]):
        if hi != nxt_lo:
            raise ValueError(f"level bands leave a gap or overlap at {hi}..{nxt_lo}")
    for lo, hi, _ in ordered:
        if lo >= hi:
            raise ValueError(f"level band {lo}..{hi} is empty")
    if ordered[-1][1] <= TOTAL_MAX:
        raise ValueError(f"level bands must cover {TOTAL_MAX}")


@dataclass(frozen=True)
class ScoringSettings:
    weak_threshold: float
    weak_min_attempts: int
    # (low inclusive, high exclusive, level)
    level_bands: Tuple[Tuple[int, int, int], ...]
    eligibility_window_days: float
    eligibility_min_practice: int
    practice_promote_avg: float
    practice_demote_acc: float
    practice_rule_window: int

    def __post_init__(self) -> None:
        validate_bands(self.level_bands)
        if self.weak_min_attempts < 0 or self.eligibility_min_practice < 0:
            raise ValueError("minimum counts must be non-negative")
        if self.eligibility_window_days < 0:
            raise ValueError("eligibility window must be non-negative")

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "ScoringSettings":
        def _cfg_value(name: str, default: Any) -> Any:
            if cfg is None:
                return default
            return cfg.get(name, default)

        low = int(_cfg_value("LEVEL_BAND_LOW", LEVEL_BAND_LOW))
        high = int(_cfg_value("LEVEL_BAND_HIGH", LEVEL_BAND_HIGH))
        return ScoringSettings(
            weak_threshold=float(_cfg_value("WEAK_THRESHOLD", WEAK_THRESHOLD)),
            weak_min_attempts=int(_cfg_value("WEAK_MIN_ATTEMPTS", WEAK_MIN_ATTEMPTS)),
            level_bands=(
                (TOTAL_MIN, low, 1),
                (low, high, 2),
                (high, TOTAL_MAX + 1, 3),
            ),
            eligibility_window_days=float(
                _cfg_value("ELIGIBILITY_WINDOW_DAYS", ELIGIBILITY_WINDOW_DAYS)
            ),
            eligibility_min_practice=int(
                _cfg_value("ELIGIBILITY_MIN_PRACTICE", ELIGIBILITY_MIN_PRACTICE)
            ),
            practice_promote_avg=float(_cfg_value("PRACTICE_PROMOTE_AVG", PRACTICE_PROMOTE_AVG)),
            practice_demote_acc=float(_cfg_value("PRACTICE_DEMOTE_ACC", PRACTICE_DEMOTE_ACC)),
            practice_rule_window=int(_cfg_value("PRACTICE_RULE_WINDOW", PRACTICE_RULE_WINDOW)),
        )


DEFAULT_SETTINGS = ScoringSettings.from_cfg(None)


def load_config(path: str = "config.json") -> dict:
    """Read optional overrides from a JSON file; unreadable files are ignored."""

    cfg: dict = {}
    p = pathlib.Path(path)
    if p.exists():
        try:
            cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            cfg = {}
    return cfg if isinstance(cfg, dict) else {}


def load_settings(path: str = "config.json") -> ScoringSettings:
    return ScoringSettings.from_cfg(load_config(path))
