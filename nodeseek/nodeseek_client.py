#!/usr/bin/env python3
"""NodeSeek HTTP client.

This module intentionally contains only the HTTP plumbing so it can be reused
by the daemon, the actions under `actions/` and the troubleshooting tools.

Important:
- Authenticated calls carry the session as a `Cookie` header.
- Redirects are never followed on authenticated calls. An expired session is
  usually answered with a redirect to the login page, which must surface as a
  non-200 status rather than as the login page's 200.
- Nothing here retries. A failed call is reported to the caller as-is.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger("nodeseek-checkin")

DEFAULT_BASE_URL = "https://www.nodeseek.com"
USER_INFO_PATH = "/api/user/info"
ATTENDANCE_PATH = "/api/attendance"

USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/15.0 "
    "Mobile/15E148 Safari/604.1"
)


@dataclass
class HttpResponse:
    """Status, headers and decoded body of a completed request."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


def mask_cookie(cookie: Optional[str], keep: int = 8) -> str:
    """Shorten a credential for log output."""
    if not cookie:
        return "<empty>"
    if len(cookie) <= keep:
        return "*" * len(cookie)
    return f"{cookie[:keep]}...({len(cookie)} chars)"


class NodeSeekClient:
    """Client for issuing requests against NodeSeek."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: float = 15,
        user_agent: Optional[str] = None,
    ):
        """Initialize the NodeSeek client.

        Args:
            base_url: Site root, e.g. https://www.nodeseek.com
            timeout_s: Per-request timeout in seconds
            user_agent: Override for the User-Agent header
        """
        self.base_url = (
            base_url
            or os.getenv("NODESEEK_BASE_URL")
            or DEFAULT_BASE_URL
        ).rstrip("/")
        self.timeout_s = timeout_s
        self.user_agent = user_agent or USER_AGENT

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    def identity_headers(self, cookie: str) -> Dict[str, str]:
        """Headers for the identity check (validation and profile fetch)."""
        return {
            "Cookie": cookie,
            "User-Agent": self.user_agent,
            "Accept": "application/json, text/plain, */*",
            "Referer": f"{self.base_url}/",
        }

    def checkin_headers(self, cookie: str) -> Dict[str, str]:
        """Headers for the attendance POST.

        The endpoint expects a same-origin XHR: Referer/Origin pointing at the
        site and the X-Requested-With marker.
        """
        return {
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
            "Accept": "application/json, text/plain, */*",
            "Cookie": cookie,
            "Referer": f"{self.base_url}/",
            "Origin": self.base_url,
            "X-Requested-With": "XMLHttpRequest",
        }

    def _request(
        self,
        method: str,
        path_or_url: str,
        **kwargs: Any,
    ) -> HttpResponse:
        """Internal request helper.

        Raises:
            requests.RequestException: on connection errors and timeouts.
        """
        method_u = method.upper()
        url = self.url_for(path_or_url)
        kwargs.setdefault("timeout", self.timeout_s)
        kwargs.setdefault("allow_redirects", False)

        try:
            response = self.session.request(method_u, url, **kwargs)
        except requests.RequestException as e:
            logger.error("Request failed (%s %s): %s", method_u, url, e)
            raise

        return HttpResponse(
            status=int(response.status_code),
            headers=dict(response.headers),
            body=response.text or "",
        )

    def get(
        self,
        path_or_url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        return self._request("GET", path_or_url, headers=headers)

    def post(
        self,
        path_or_url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> HttpResponse:
        return self._request("POST", path_or_url, headers=headers, json=json)

    def get_user_info(self, cookie: str) -> HttpResponse:
        """GET the identity endpoint with the given session."""
        return self.get(USER_INFO_PATH, headers=self.identity_headers(cookie))

    def attend(self, cookie: str) -> HttpResponse:
        """POST the daily attendance (check-in) with an empty JSON body."""
        return self.post(
            ATTENDANCE_PATH,
            headers=self.checkin_headers(cookie),
            json={},
        )


__all__ = [
    "ATTENDANCE_PATH",
    "DEFAULT_BASE_URL",
    "HttpResponse",
    "NodeSeekClient",
    "USER_AGENT",
    "USER_INFO_PATH",
    "mask_cookie",
]
