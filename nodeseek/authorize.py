#!/usr/bin/env python3
"""Authorize / validate the NodeSeek cookie.

This is a small helper intended for quick troubleshooting:
- verifies the cookie works (GET /api/user/info)
- prints the authenticated username
- refreshes the cached profile in the state file

Recommended invocation:
- python -m nodeseek.authorize

Env vars (loaded from `.env`):
- NODESEEK_COOKIE (optional, otherwise the stored cookie is used)
- NODESEEK_TIMEOUT_S (optional, default: 15)
- NODESEEK_STATE_FILE (optional)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from typing import List

from dotenv import load_dotenv

from nodeseek.credential import CredentialValidator, fetch_profile
from nodeseek.nodeseek_client import NodeSeekClient
from nodeseek.state_store import (
    USER_INFO_KEY,
    CredentialRecord,
    StateStore,
    default_state_path,
)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Validate the NodeSeek cookie")
    p.add_argument(
        "--cookie",
        default=None,
        help="Cookie to check (default: env NODESEEK_COOKIE or the stored one)",
    )
    p.add_argument(
        "--timeout-s",
        type=float,
        default=None,
        help="HTTP timeout seconds (default: env NODESEEK_TIMEOUT_S or 15)",
    )
    p.add_argument(
        "--no-proxy",
        action="store_true",
        help=(
            "Ignore proxy env vars for requests "
            "(sets session.trust_env=false)"
        ),
    )
    p.add_argument(
        "--json",
        action="store_true",
        help="Print the profile as JSON",
    )
    p.add_argument(
        "--state-file",
        default=None,
        help=(
            "State JSON path to update (default: env NODESEEK_STATE_FILE or "
            ".nodeseek_checkin_state.json in repo root)"
        ),
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
    record = CredentialRecord.load(store)
    cookie = args.cookie or os.getenv("NODESEEK_COOKIE") or record.cookie
    if not cookie:
        print(
            "ERROR: no cookie found. Run: python -m actions.capture_cookie",
            file=sys.stderr,
        )
        return 2

    client = NodeSeekClient(timeout_s=timeout_s)
    if args.no_proxy:
        client.session.trust_env = False

    if not CredentialValidator(client).validate(cookie):
        print("ERROR: cookie is invalid or expired", file=sys.stderr)
        return 1

    profile = fetch_profile(client, cookie)
    if profile is None:
        print("Authorized, but could not parse the user info response")
        return 0

    # Only cache the profile for the cookie the store actually holds.
    if cookie == record.cookie:
        store.write(USER_INFO_KEY, profile.to_json())

    if args.json:
        print(json.dumps(asdict(profile), indent=2, sort_keys=True, ensure_ascii=False))
    else:
        print(f"Authorized as: {profile.display_name}")
        if record.last_validated_at and cookie == record.cookie:
            print(f"Stored cookie last validated at (epoch ms): {record.last_validated_at}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
