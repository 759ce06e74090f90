# toeic_core/predict.py
from __future__ import annotations
import math

from .config import SCALE_STEP, SECTION_MAX, SECTION_MIN, TOTAL_MAX, TOTAL_MIN
from .types import PredictedScore


def _check_acc(name: str, acc: float) -> float:
    a = float(acc)
    if math.isnan(a) or a < 0.0 or a > 1.0:
        raise ValueError(f"{name} accuracy must be within 0..1, got {acc!r}")
    return a


def round_to_step(x: float, lo: int, hi: int, step: int = SCALE_STEP) -> int:
    """Round half-up to the nearest multiple of `step`, then clamp to [lo, hi]."""

    n = int(math.floor(x / step + 0.5)) * step
    return max(lo, min(hi, n))


def section_raw(acc: float) -> float:
    # the scale has no zero: accuracy 0 sits on the section minimum
    return SECTION_MIN + acc * (SECTION_MAX - SECTION_MIN)


def predict(listening_acc: float, reading_acc: float) -> PredictedScore:
    """Map section accuracy onto the 5..495 / 10..990 reporting scale.

    Overall is rounded once, from the unrounded section sum.
    """

    l_raw = section_raw(_check_acc("listening", listening_acc))
    r_raw = section_raw(_check_acc("reading", reading_acc))
    return PredictedScore(
        overall=round_to_step(l_raw + r_raw, TOTAL_MIN, TOTAL_MAX),
        listening=round_to_step(l_raw, SECTION_MIN, SECTION_MAX),
        reading=round_to_step(r_raw, SECTION_MIN, SECTION_MAX),
    )
