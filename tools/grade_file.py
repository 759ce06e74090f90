from __future__ import annotations
import argparse, json, logging, sys
from datetime import datetime, timezone

from toeic_core.bank import load_bank
from toeic_core.config import load_settings
from toeic_core.engine import grade
from toeic_core.errors import MalformedSubmission
from toeic_core.grading import parse_submission, parse_timestamp
from toeic_core.reporting import attempt_to_dict


def main(argv=None):
    ap = argparse.ArgumentParser(description="Grade a submission JSON file offline.")
    ap.add_argument("submission", help="path to submission JSON")
    ap.add_argument("--bank", default=None, help="bank JSON (default: packaged sample)")
    ap.add_argument("--config", default="config.json")
    ap.add_argument("--now", default=None, help="grading timestamp, ISO-8601 (default: current time)")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    with open(args.submission, "r", encoding="utf-8") as f:
        payload = json.load(f)
    now = parse_timestamp(args.now, "now") if args.now else datetime.now(timezone.utc)
    try:
        sub = parse_submission(payload)
    except MalformedSubmission as exc:
        logging.error("malformed submission: %s", exc)
        return 2
    attempt = grade(sub, load_bank(args.bank).answer_key(), now, load_settings(args.config))
    json.dump(attempt_to_dict(attempt), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
