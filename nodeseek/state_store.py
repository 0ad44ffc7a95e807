#!/usr/bin/env python3
"""Small JSON key/value store for the session credential and its timestamps.

Every value is stored as a string, like the persistent store scripting proxies
expose. Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


logger = logging.getLogger("nodeseek-checkin")

COOKIE_KEY = "nodeseek_cookie"
LAST_VALIDATED_KEY = "nodeseek_cookie_time"
LAST_CHECK_KEY = "nodeseek_last_check"
USER_INFO_KEY = "nodeseek_userinfo"
LAST_CHECKIN_KEY = "nodeseek_last_checkin"

DEFAULT_STATE_FILE = (
    Path(__file__).resolve().parents[1] / ".nodeseek_checkin_state.json"
)


def default_state_path() -> Path:
    return Path(os.getenv("NODESEEK_STATE_FILE") or DEFAULT_STATE_FILE)


def parse_timestamp(value: Optional[str]) -> Optional[int]:
    """Epoch-ms string to int; empty, zero or garbage means "never"."""
    if not value:
        return None
    try:
        ts = int(float(value))
    except (TypeError, ValueError):
        return None
    return ts if ts > 0 else None


class StateStore:
    """JSON-file backed key/value store.

    The whole document is re-read on every access so that separate processes
    (daemon, actions, authorize) always see each other's writes.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _empty(self) -> Dict[str, Any]:
        return {"version": 1, "values": {}}

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return self._empty()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read state file {self.path}: {e}")
            return self._empty()
        if not isinstance(data, dict) or not isinstance(data.get("values"), dict):
            logger.warning(f"Ignoring malformed state file {self.path}")
            return self._empty()
        return data

    def save(self, state: Dict[str, Any]) -> bool:
        try:
            self.path.write_text(
                json.dumps(state, indent=2, sort_keys=True, ensure_ascii=False),
                encoding="utf-8",
            )
            return True
        except OSError as e:
            logger.warning(f"Failed to write state file {self.path}: {e}")
            return False

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            value = self.load()["values"].get(key)
        if value is None:
            return None
        return str(value)

    def write(self, key: str, value: str) -> bool:
        return self.write_many({key: value})

    def write_many(self, values: Dict[str, Optional[str]]) -> bool:
        """Apply several keys with a single load and a single save.

        Either every key lands on disk or none does.
        """
        with self._lock:
            state = self.load()
            for key, value in values.items():
                state["values"][key] = "" if value is None else str(value)
            return self.save(state)

    @contextmanager
    def transaction(self) -> Iterator["StateStore"]:
        """Hold the store lock across a read-modify-write sequence."""
        with self._lock:
            yield self


@dataclass
class CredentialRecord:
    """Typed view of the stored credential."""

    cookie: Optional[str] = None
    last_validated_at: Optional[int] = None
    last_checked_at: Optional[int] = None

    @classmethod
    def load(cls, store: StateStore) -> "CredentialRecord":
        return cls(
            cookie=store.read(COOKIE_KEY) or None,
            last_validated_at=parse_timestamp(store.read(LAST_VALIDATED_KEY)),
            last_checked_at=parse_timestamp(store.read(LAST_CHECK_KEY)),
        )


def clear_credential(store: StateStore) -> bool:
    """Purge the stored credential and its validation timestamp."""
    if not store.write_many({COOKIE_KEY: "", LAST_VALIDATED_KEY: ""}):
        logger.error("Failed to clear stored NodeSeek cookie")
        return False
    logger.info("Cleared stored NodeSeek cookie")
    return True


__all__ = [
    "COOKIE_KEY",
    "CredentialRecord",
    "LAST_CHECKIN_KEY",
    "LAST_CHECK_KEY",
    "LAST_VALIDATED_KEY",
    "StateStore",
    "USER_INFO_KEY",
    "clear_credential",
    "default_state_path",
    "parse_timestamp",
]
