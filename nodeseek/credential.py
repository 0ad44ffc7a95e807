#!/usr/bin/env python3
"""Session credential validation and capture.

Flow for a newly observed cookie:
1) it must look like a NodeSeek session (marker substring)
2) it must pass the identity check (GET /api/user/info == 200)
3) cookie + timestamps are committed together
4) the profile is fetched and cached, best-effort

A profile failure never rolls back step 3.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from nodeseek.nodeseek_client import NodeSeekClient, mask_cookie
from nodeseek.notifier import Notifier
from nodeseek.state_store import (
    COOKIE_KEY,
    LAST_CHECK_KEY,
    LAST_VALIDATED_KEY,
    USER_INFO_KEY,
    StateStore,
)


logger = logging.getLogger("nodeseek-checkin")

SESSION_MARKER = "nodeseek"
MIN_COOKIE_LENGTH = 10

NOTIFY_TITLE = "NodeSeek Cookie"


def now_ms() -> int:
    return int(time.time() * 1000)


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup for plain dict-like headers."""

    name_l = name.lower()
    for k, v in headers.items():
        if k.lower() == name_l:
            return v
    return None


def extract_cookie(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """Return the request's Cookie header, or None if missing/empty."""
    if not headers:
        return None
    cookie = _get_header(headers, "Cookie")
    if cookie is None:
        return None
    cookie_s = str(cookie).strip()
    return cookie_s or None


class CredentialValidator:
    """Reduce a cookie to valid/invalid with one identity check.

    A transport failure counts as invalid; there is no "unknown".
    """

    def __init__(self, client: NodeSeekClient, min_length: int = MIN_COOKIE_LENGTH):
        self.client = client
        self.min_length = min_length

    def validate(self, cookie: Optional[str]) -> bool:
        if not cookie or len(cookie) < self.min_length:
            logger.info("Cookie rejected without a request (too short)")
            return False
        try:
            response = self.client.get_user_info(cookie)
        except requests.RequestException as e:
            logger.warning("Cookie validation failed: %s", e)
            return False
        logger.info("Cookie validation response status: %s", response.status)
        return response.status == 200


@dataclass
class ProfileInfo:
    username: Optional[str] = None
    id: Optional[Any] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ProfileInfo":
        user = data.get("user")
        if not isinstance(user, dict):
            user = {}
        return cls(
            username=data.get("username") or data.get("name") or user.get("name"),
            id=data.get("id") or user.get("id"),
            email=data.get("email") or user.get("email"),
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @property
    def display_name(self) -> str:
        return self.username or "Unknown"


def fetch_profile(client: NodeSeekClient, cookie: str) -> Optional[ProfileInfo]:
    """Best-effort profile lookup; None on any failure."""
    try:
        response = client.get_user_info(cookie)
    except requests.RequestException as e:
        logger.warning("Failed to fetch user info: %s", e)
        return None

    if response.status != 200:
        return None

    try:
        data = json.loads(response.body)
    except ValueError:
        logger.warning("Failed to parse user info response")
        return None
    if not isinstance(data, dict):
        return None
    return ProfileInfo.from_payload(data)


class CredentialCapture:
    """Validate and commit a newly observed cookie."""

    def __init__(
        self,
        client: NodeSeekClient,
        store: StateStore,
        notifier: Notifier,
        validator: Optional[CredentialValidator] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.client = client
        self.store = store
        self.notifier = notifier
        self.validator = validator or CredentialValidator(client)
        self.clock = clock or now_ms

    def capture(self, candidate: Optional[str], silent: bool = False) -> bool:
        if not candidate or SESSION_MARKER not in candidate:
            logger.info("Ignoring cookie without %r marker", SESSION_MARKER)
            return False

        logger.info("Validating captured cookie %s", mask_cookie(candidate))
        if not self.validator.validate(candidate):
            logger.warning("Captured cookie is invalid or expired")
            self.notifier.post(NOTIFY_TITLE, "获取失败", "Cookie 无效，请重新登录")
            return False

        now = str(self.clock())
        committed = self.store.write_many({
            COOKIE_KEY: candidate,
            LAST_VALIDATED_KEY: now,
            LAST_CHECK_KEY: now,
        })
        if not committed:
            logger.error("Failed to save captured cookie to %s", self.store.path)
            self.notifier.post(NOTIFY_TITLE, "保存失败", "无法写入状态文件")
            return False
        logger.info("Cookie saved")

        profile = fetch_profile(self.client, candidate)
        if profile is not None:
            self.store.write(USER_INFO_KEY, profile.to_json())
            logger.info("User info saved: %s", profile.display_name)
            if not silent:
                self.notifier.post(
                    NOTIFY_TITLE, "获取成功", f"用户: {profile.display_name}"
                )
        elif not silent:
            self.notifier.post(NOTIFY_TITLE, "获取成功", "已保存登录状态")

        return True


__all__ = [
    "CredentialCapture",
    "CredentialValidator",
    "MIN_COOKIE_LENGTH",
    "ProfileInfo",
    "SESSION_MARKER",
    "extract_cookie",
    "fetch_profile",
    "now_ms",
]
