#!/usr/bin/env python3
"""Capture a NodeSeek session cookie by hand.

Copy the `Cookie` request header from a logged-in browser session (DevTools >
Network > any www.nodeseek.com request) and hand it to this script. The cookie
is validated, saved together with its timestamps, and the profile is cached.

This bypasses the 30-minute freshness window on purpose: a manual capture is
always an explicit request.

Usage:
  python -m actions.capture_cookie --cookie "session=...; ..."
  python -m actions.capture_cookie --from-file cookie.txt
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from nodeseek.credential import CredentialCapture
from nodeseek.nodeseek_client import NodeSeekClient
from nodeseek.notifier import build_notifier
from nodeseek.state_store import StateStore, default_state_path


def capture_cookie(
    client: NodeSeekClient,
    store: StateStore,
    cookie: str,
    *,
    silent: bool = False,
) -> bool:
    """Reusable helper: validate + commit a cookie."""
    return CredentialCapture(client, store, build_notifier()).capture(
        cookie, silent=silent
    )


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Capture a NodeSeek session cookie")
    p.add_argument("--cookie", default=None, help="Cookie header value")
    p.add_argument(
        "--from-file",
        default=None,
        help="Read the cookie header value from a file",
    )
    p.add_argument(
        "--silent",
        action="store_true",
        help="Do not send notifications",
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
    return p.parse_args(argv)


def _read_cookie(args: argparse.Namespace) -> Optional[str]:
    if args.cookie:
        return args.cookie.strip()
    if args.from_file:
        return Path(args.from_file).read_text(encoding="utf-8").strip()
    return None


def main(argv: List[str]) -> int:
    load_dotenv()

    args = _parse_args(argv)

    try:
        cookie = _read_cookie(args)
    except OSError as e:
        print(f"ERROR: failed to read cookie file: {e}", file=sys.stderr)
        return 2

    if not cookie:
        print("ERROR: pass --cookie or --from-file", file=sys.stderr)
        return 2

    timeout_s = (
        float(args.timeout_s)
        if args.timeout_s is not None
        else float(os.getenv("NODESEEK_TIMEOUT_S", "15"))
    )
    store = StateStore(args.state_file or default_state_path())

    if capture_cookie(
        NodeSeekClient(timeout_s=timeout_s), store, cookie, silent=args.silent
    ):
        print(f"Cookie saved: {store.path}")
        return 0

    print("ERROR: cookie rejected (missing NodeSeek marker, or invalid)", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
