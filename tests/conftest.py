"""Shared fixtures: a file-backed store, a scripted client and a recording notifier."""

import pytest
import requests

from nodeseek.nodeseek_client import HttpResponse
from nodeseek.notifier import Notifier
from nodeseek.state_store import StateStore

VALID_COOKIE = "session=abcdef123456; nodeseek_sid=xyz"


class FakeClient:
    """Stands in for NodeSeekClient; answers come from queues or defaults."""

    def __init__(self, user_info=None, attend=None):
        self.user_info = user_info if user_info is not None else HttpResponse(
            200, {}, '{"username": "alice", "id": 42, "email": "a@example.com"}'
        )
        self.attend_response = attend if attend is not None else HttpResponse(
            200, {}, '{"success": true, "message": "签到成功，获得鸡腿 5 个"}'
        )
        self.user_info_calls = []
        self.attend_calls = []

    @staticmethod
    def _answer(answer):
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get_user_info(self, cookie):
        self.user_info_calls.append(cookie)
        return self._answer(self.user_info)

    def attend(self, cookie):
        self.attend_calls.append(cookie)
        return self._answer(self.attend_response)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.posts = []

    def post(self, title, subtitle, message):
        self.posts.append((title, subtitle, message))


class FakeClock:
    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance_minutes(self, minutes):
        self.now += int(minutes * 60_000)


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "state.json")


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def offline_error():
    return requests.ConnectionError("connection refused")
