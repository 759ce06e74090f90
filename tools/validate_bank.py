from __future__ import annotations
from collections import defaultdict, Counter
import argparse, logging, os, sys

from toeic_core.bank import load_bank
from toeic_core.config import allowed_choices, section_for_part
from toeic_core.grouping import group_by_stimulus

log = logging.getLogger("validate_bank")

# Configurable targets; defaults match a short diagnostic paper
TARGETS = {
    "LISTENING_min": int(os.getenv("TARGET_LISTENING_MIN", 4)),
    "READING_min": int(os.getenv("TARGET_READING_MIN", 4)),
}


def check_bank(bank) -> list[str]:
    """Return a list of problems; empty when the bank is usable."""

    problems: list[str] = []
    for it in bank.items.values():
        if it.answer not in it.choices:
            problems.append(f"{it.id}: answer {it.answer} not among choices {it.choices}")
        if it.part == 2 and set(it.choices) - set(allowed_choices(2)):
            problems.append(f"{it.id}: part 2 items take A-C only")
        if it.stimulus_id and it.stimulus_id not in bank.stimuli:
            problems.append(f"{it.id}: stimulus {it.stimulus_id} missing")
    for test_id in bank.test_ids():
        items = bank.paper(test_id)
        groups, _ = group_by_stimulus(items, bank.stimuli_for(items))
        for g in groups:
            parts = {it.part for it in g.items}
            if len(parts) > 1:
                problems.append(f"test {test_id}: block {g.key} mixes parts {sorted(parts)}")
    return problems


def main(argv=None):
    ap = argparse.ArgumentParser(description="Check an item bank for structural problems.")
    ap.add_argument("--bank", default=os.getenv("BANK_PATH"), help="bank JSON (default: packaged sample)")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    bank = load_bank(args.bank)
    print(f"Targets per test: ≥{TARGETS['LISTENING_min']} listening, ≥{TARGETS['READING_min']} reading.\n")

    for test_id in bank.test_ids():
        items = bank.paper(test_id)
        by_sec = Counter(section_for_part(it.part) for it in items)
        by_part = defaultdict(int)
        for it in items:
            by_part[it.part] += 1
        print(f"test {test_id}: {len(items)} items  listening={by_sec['listening']} reading={by_sec['reading']}")
        for p in range(1, 8):
            print(f"  part.{p}: {by_part[p]:3d}")
        need_l = max(0, TARGETS["LISTENING_min"] - by_sec["listening"])
        need_r = max(0, TARGETS["READING_min"] - by_sec["reading"])
        if need_l or need_r:
            print(f"  → Add: listening {need_l}, reading {need_r}\n")
        else:
            print("  ✓ Meets targets\n")

    problems = check_bank(bank)
    for p in problems:
        log.error(p)
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
