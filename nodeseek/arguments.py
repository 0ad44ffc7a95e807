#!/usr/bin/env python3
"""Decode the host-style argument string into typed invocation settings.

Proxy apps pass script arguments as one string, e.g.

    cookie=session%3Dabc&auto_refresh=true&silent_mode=false&cron=0 9 * * *

Values the host failed to substitute come through as the literal template
token (`{{{cookie}}}` and friends). Those are treated exactly like a missing
value.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, Optional
from urllib.parse import unquote


logger = logging.getLogger("nodeseek-checkin")

RECOGNIZED_KEYS = ("cookie", "auto_refresh", "silent_mode", "cron")

_PLACEHOLDER_RES = (
    re.compile(r"^\{\{\{?\s*[\w.\-]*\s*\}?\}\}$"),
    re.compile(r"^\$\{\s*[\w.\-]*\s*\}$"),
    re.compile(r"^%[\w.\-]+%$"),
)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def is_placeholder(value: Optional[str]) -> bool:
    """True for unset values: None, blank, or an unexpanded template token."""
    if value is None:
        return True
    v = value.strip()
    if not v:
        return True
    return any(r.match(v) for r in _PLACEHOLDER_RES)


def parse_argument_string(raw: Optional[str]) -> Dict[str, str]:
    """Split `k=v&k2=v2` into a dict with percent-decoded values."""
    out: Dict[str, str] = {}
    if not raw:
        return out
    for pair in raw.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        key = key.strip()
        if not key:
            continue
        out[key] = unquote(value)
    return out


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if is_placeholder(value):
        return default
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    logger.warning("Unrecognized boolean argument value %r; using %s", value, default)
    return default


@dataclass(frozen=True)
class InvocationArgs:
    """Per-run settings, resolved once at startup."""

    credential: Optional[str] = None
    auto_refresh: bool = True
    silent: bool = False
    # Consumed by whatever schedules us; never interpreted here.
    cron: Optional[str] = None

    @classmethod
    def from_argument(cls, raw: Optional[str]) -> "InvocationArgs":
        pairs = parse_argument_string(raw)
        for key in pairs:
            if key not in RECOGNIZED_KEYS:
                logger.debug("Ignoring unrecognized argument key %r", key)

        cookie = pairs.get("cookie")
        cron = pairs.get("cron")
        return cls(
            credential=None if is_placeholder(cookie) else cookie.strip(),
            auto_refresh=_parse_bool(pairs.get("auto_refresh"), True),
            silent=_parse_bool(pairs.get("silent_mode"), False),
            cron=None if is_placeholder(cron) else cron.strip(),
        )

    def with_overrides(
        self,
        *,
        credential: Optional[str] = None,
        auto_refresh: Optional[bool] = None,
        silent: Optional[bool] = None,
    ) -> "InvocationArgs":
        """Return a copy with the given (non-None, non-placeholder) values applied."""
        changes = {}
        if not is_placeholder(credential):
            changes["credential"] = credential.strip()
        if auto_refresh is not None:
            changes["auto_refresh"] = auto_refresh
        if silent is not None:
            changes["silent"] = silent
        return replace(self, **changes)


__all__ = [
    "InvocationArgs",
    "RECOGNIZED_KEYS",
    "is_placeholder",
    "parse_argument_string",
]
