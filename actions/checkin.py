#!/usr/bin/env python3
"""Check in on NodeSeek once.

This is a small, generic "action" script intended to be:
- runnable as a standalone CLI (manual check-in)
- importable by the daemon (shared check-in behavior)

Unlike the daemon it does not validate the cookie first and never touches the
stored cookie; it just reports what the attendance endpoint answered.

Env vars (loaded from `.env` if present):
- NODESEEK_COOKIE (optional, otherwise the stored cookie is used)
- NODESEEK_STATE_FILE (optional)
- NODESEEK_TIMEOUT_S (optional, default: 15)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List

from dotenv import load_dotenv

from nodeseek.checkin import CheckinInvoker, CheckinOutcome
from nodeseek.nodeseek_client import NodeSeekClient
from nodeseek.state_store import COOKIE_KEY, StateStore, default_state_path


def perform_checkin(client: NodeSeekClient, cookie: str) -> CheckinOutcome:
    """Reusable helper for one attendance POST + classification."""
    return CheckinInvoker(client).invoke(cookie)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Check in on NodeSeek once")
    p.add_argument(
        "--cookie",
        default=None,
        help="Cookie to use (default: env NODESEEK_COOKIE or the stored one)",
    )
    p.add_argument(
        "--state-file",
        default=None,
        help="State JSON path (default: env NODESEEK_STATE_FILE)",
    )
    p.add_argument(
        "--timeout-s",
        type=float,
        default=None,
        help="HTTP timeout seconds (default: env NODESEEK_TIMEOUT_S or 15)",
    )
    p.add_argument(
        "--json",
        action="store_true",
        help="Print the outcome as JSON",
    )
    return p.parse_args(argv)


def main(argv: List[str]) -> int:
    load_dotenv()

    args = _parse_args(argv)

    timeout_s = (
        float(args.timeout_s)
        if args.timeout_s is not None
        else float(os.getenv("NODESEEK_TIMEOUT_S", "15"))
    )

    store = StateStore(args.state_file or default_state_path())
    cookie = args.cookie or os.getenv("NODESEEK_COOKIE") or store.read(COOKIE_KEY)
    if not cookie:
        print(
            "ERROR: no cookie (pass --cookie, set NODESEEK_COOKIE, "
            "or run: python -m actions.capture_cookie)",
            file=sys.stderr,
        )
        return 2

    outcome = perform_checkin(NodeSeekClient(timeout_s=timeout_s), cookie)

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    else:
        status = "OK" if outcome.success else "FAILED"
        print(f"{status}: {outcome.message}")
        if outcome.needs_reauth:
            print("The session has expired; capture a new cookie.")

    return 0 if outcome.success else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
