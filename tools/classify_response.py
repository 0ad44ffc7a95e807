#!/usr/bin/env python3
"""Debug helper: run a saved attendance response through the classifier.

When the attendance endpoint starts answering with a new shape, save the body
(from the daemon log or a browser) and check what the classifier makes of it
before touching the rules.

Usage:
  python -m tools.classify_response --status 200 --body-file response.txt
  python -m tools.classify_response --status 403 --body '{"message": "..."}'
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from nodeseek.checkin import JSON_RULES, TEXT_RULES, classify_response, parse_body


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser()
    p.add_argument("--status", type=int, required=True)
    p.add_argument("--body", default=None)
    p.add_argument("--body-file", default=None)
    return p.parse_args()


def main() -> int:
    args = _parse_args()
    if args.body_file:
        body = Path(args.body_file).read_text(encoding="utf-8")
    else:
        body = args.body or ""

    parsed, data = parse_body(body)
    print(f"status: {args.status}")
    print(f"parsed as JSON: {parsed}")
    if parsed:
        print("Top-level keys:", sorted(data.keys()))

    # Show every rule's verdict, not just the first match.
    rules = JSON_RULES if parsed else TEXT_RULES
    subject = data if parsed else body
    for rule in rules:
        print(f"- {rule.__name__}: {rule(subject)}")

    outcome = classify_response(args.status, body)
    print("outcome:")
    print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
