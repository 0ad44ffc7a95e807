#!/usr/bin/env python3
"""Perform the daily attendance POST and classify whatever comes back.

The attendance endpoint is not consistent about its answer. Observed shapes:
- JSON with `success: true`, or `code: 0`, or `status: "success"`
- JSON whose message says the user already checked in today
- JSON carrying an error in `message` / `msg` / `error`
- an HTML page (Cloudflare, maintenance, or the site itself)

Classification is an ordered list of small rules, first match wins:

    200 + JSON     -> JSON_RULES (success beats "already checked in")
    200 + non-JSON -> TEXT_RULES, else "响应解析失败"
    401 / 403      -> expired session, needs_reauth
    anything else  -> "HTTP {status}: 请求失败"
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from nodeseek.nodeseek_client import NodeSeekClient


logger = logging.getLogger("nodeseek-checkin")

SUCCESS_MESSAGE = "签到成功"
ALREADY_MESSAGE = "今日已签到"
FAILURE_MESSAGE = "签到失败"
UNPARSEABLE_MESSAGE = "响应解析失败"
REAUTH_MESSAGE = "登录状态已过期"

ALREADY_MARKERS = ("已签到", "already")
TEXT_SUCCESS_MARKERS = ("签到成功", "check-in successful")
TEXT_ALREADY_MARKERS = ("已签到", "already checked")


@dataclass(frozen=True)
class CheckinOutcome:
    success: bool
    message: str
    needs_reauth: bool = False
    # Folded into success; kept apart only so callers can log it.
    already_checked_in: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Rule = Callable[[Any], Optional[CheckinOutcome]]


def _first_text(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def rule_success_flag(data: Dict[str, Any]) -> Optional[CheckinOutcome]:
    code = data.get("code")
    code_is_zero = isinstance(code, int) and not isinstance(code, bool) and code == 0
    if data.get("success") is True or code_is_zero or data.get("status") == "success":
        return CheckinOutcome(
            success=True,
            message=_first_text(data, "message", "msg") or SUCCESS_MESSAGE,
        )
    return None


def rule_already_checked_in(data: Dict[str, Any]) -> Optional[CheckinOutcome]:
    message = _first_text(data, "message", "msg")
    if message and any(marker in message for marker in ALREADY_MARKERS):
        return CheckinOutcome(
            success=True,
            message=ALREADY_MESSAGE,
            already_checked_in=True,
        )
    return None


def rule_json_failure(data: Dict[str, Any]) -> Optional[CheckinOutcome]:
    return CheckinOutcome(
        success=False,
        message=_first_text(data, "message", "msg", "error") or FAILURE_MESSAGE,
    )


def rule_text_success(body: str) -> Optional[CheckinOutcome]:
    if any(marker in body for marker in TEXT_SUCCESS_MARKERS):
        return CheckinOutcome(success=True, message=SUCCESS_MESSAGE)
    return None


def rule_text_already(body: str) -> Optional[CheckinOutcome]:
    if any(marker in body for marker in TEXT_ALREADY_MARKERS):
        return CheckinOutcome(
            success=True,
            message=ALREADY_MESSAGE,
            already_checked_in=True,
        )
    return None


JSON_RULES: List[Rule] = [
    rule_success_flag,
    rule_already_checked_in,
    rule_json_failure,
]

TEXT_RULES: List[Rule] = [
    rule_text_success,
    rule_text_already,
]


def parse_body(body: Optional[str]) -> Tuple[bool, Dict[str, Any]]:
    """Return (parsed, view). Non-object JSON parses to an empty view."""
    try:
        data = json.loads(body or "")
    except ValueError:
        return False, {}
    return True, data if isinstance(data, dict) else {}


def _apply(rules: List[Rule], value: Any) -> Optional[CheckinOutcome]:
    for rule in rules:
        outcome = rule(value)
        if outcome is not None:
            return outcome
    return None


def classify_response(status: int, body: Optional[str]) -> CheckinOutcome:
    """Map (HTTP status, raw body) to a definitive outcome. Pure."""
    body = body or ""
    parsed, data = parse_body(body)

    if status == 200:
        if parsed:
            outcome = _apply(JSON_RULES, data)
        else:
            outcome = _apply(TEXT_RULES, body)
            if outcome is None:
                outcome = CheckinOutcome(success=False, message=UNPARSEABLE_MESSAGE)
        return outcome

    if status in (401, 403):
        return CheckinOutcome(success=False, message=REAUTH_MESSAGE, needs_reauth=True)

    return CheckinOutcome(success=False, message=f"HTTP {status}: 请求失败")


class CheckinInvoker:
    """Issue one attendance POST; never retries."""

    def __init__(self, client: NodeSeekClient):
        self.client = client

    def invoke(self, cookie: str) -> CheckinOutcome:
        try:
            response = self.client.attend(cookie)
        except requests.RequestException as e:
            return CheckinOutcome(success=False, message=f"网络请求失败: {e}")

        logger.info("Check-in response status: %s", response.status)
        logger.info("Check-in response body: %s", response.body[:500])
        return classify_response(response.status, response.body)


__all__ = [
    "CheckinInvoker",
    "CheckinOutcome",
    "JSON_RULES",
    "TEXT_RULES",
    "classify_response",
    "parse_body",
]
