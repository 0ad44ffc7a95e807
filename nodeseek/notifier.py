#!/usr/bin/env python3
"""User-visible notifications.

Notifications are best-effort: `post()` never raises and never blocks the
check-in pipeline for longer than one short HTTP call.

Env vars:
- PUSHOVER_TOKEN / PUSHOVER_USER (optional): enable Pushover delivery
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import requests


logger = logging.getLogger("nodeseek-checkin")

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


class Notifier:
    """Base notifier: writes the notification to the log."""

    def post(self, title: str, subtitle: str, message: str) -> None:
        logger.info("[notify] %s | %s | %s", title, subtitle, message)


class LogNotifier(Notifier):
    pass


class PushoverNotifier(Notifier):
    """Deliver notifications through the Pushover messages API."""

    def __init__(self, token: str, user: str, timeout_s: float = 10):
        self.token = token
        self.user = user
        self.timeout_s = timeout_s

    def post(self, title: str, subtitle: str, message: str) -> None:
        super().post(title, subtitle, message)
        data = {
            "token": self.token,
            "user": self.user,
            "title": title,
            "message": f"{subtitle}\n{message}" if subtitle else message,
        }
        try:
            resp = requests.post(PUSHOVER_URL, data=data, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.warning("Pushover notification failed: %s", e)
            return
        if resp.status_code != 200:
            logger.warning(
                "Pushover notification rejected: HTTP %s %s",
                resp.status_code,
                (resp.text or "")[:200],
            )


def build_notifier(
    token: Optional[str] = None,
    user: Optional[str] = None,
) -> Notifier:
    """Pushover when credentials are configured, otherwise log only."""
    token = token or os.getenv("PUSHOVER_TOKEN")
    user = user or os.getenv("PUSHOVER_USER")
    if token and user:
        return PushoverNotifier(token, user)
    logger.debug("Pushover disabled (missing token/user); logging notifications")
    return LogNotifier()


__all__ = ["LogNotifier", "Notifier", "PushoverNotifier", "build_notifier"]
