#!/usr/bin/env python3
"""Decide whether an observed contact with NodeSeek should trigger a capture.

The capture trigger fires on every request the host sees for the site, i.e.
on every page load. Without a rate limit each of those would cost an identity
identity check, so checks are spaced at least `window_minutes` apart.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from nodeseek.arguments import InvocationArgs
from nodeseek.credential import CredentialValidator, now_ms
from nodeseek.state_store import (
    COOKIE_KEY,
    LAST_CHECK_KEY,
    StateStore,
    parse_timestamp,
)


logger = logging.getLogger("nodeseek-checkin")

CHECK_WINDOW_MINUTES = 30


class FreshnessPolicy:
    def __init__(
        self,
        store: StateStore,
        validator: CredentialValidator,
        window_minutes: float = CHECK_WINDOW_MINUTES,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.validator = validator
        self.window_minutes = window_minutes
        self.clock = clock or now_ms

    def _within_window(self) -> bool:
        """Rate limit. Stamps the check time when the window has passed."""
        with self.store.transaction():
            now = self.clock()
            last = parse_timestamp(self.store.read(LAST_CHECK_KEY))
            if last is not None:
                elapsed_min = (now - last) / 60000.0
                if elapsed_min < 0:
                    # Stored check time is in the future: clock stepped back
                    # or the state file came from another host.
                    logger.warning(
                        "Last check time is %.1f min in the future; ignoring it",
                        -elapsed_min,
                    )
                elif elapsed_min < self.window_minutes:
                    logger.info(
                        "Last check %.1f min ago (< %s min); skipping",
                        elapsed_min,
                        self.window_minutes,
                    )
                    return True
            self.store.write(LAST_CHECK_KEY, str(now))
        return False

    def should_capture(self, args: InvocationArgs) -> bool:
        if self._within_window():
            return False

        try:
            if args.credential:
                cookie, source = args.credential, "argument"
            else:
                cookie, source = self.store.read(COOKIE_KEY), "store"

            if not cookie:
                logger.info("No cookie available; capture required")
                return True

            if self.validator.validate(cookie):
                logger.info("Cookie from %s is still valid", source)
                return False

            logger.info(
                "Cookie from %s is invalid; auto_refresh=%s",
                source,
                args.auto_refresh,
            )
            return args.auto_refresh
        except Exception:
            logger.exception("Freshness check failed; falling back to auto_refresh")
            return args.auto_refresh


__all__ = ["CHECK_WINDOW_MINUTES", "FreshnessPolicy"]
