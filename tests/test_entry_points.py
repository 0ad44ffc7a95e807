"""Smoke tests for the command-line entry points."""

import json
import sys
from unittest import mock

from conftest import VALID_COOKIE, FakeClient, RecordingNotifier
from nodeseek.nodeseek_client import HttpResponse
from nodeseek.state_store import COOKIE_KEY, USER_INFO_KEY, StateStore


def test_checkin_action(tmp_path, capsys):
    from actions import checkin

    client = FakeClient()
    with mock.patch.object(checkin, "NodeSeekClient", return_value=client):
        code = checkin.main(["--cookie", VALID_COOKIE, "--state-file", str(tmp_path / "s.json")])
    assert code == 0
    assert client.attend_calls == [VALID_COOKIE]
    assert "OK: " in capsys.readouterr().out


def test_checkin_action_without_cookie(tmp_path, monkeypatch):
    from actions import checkin

    monkeypatch.delenv("NODESEEK_COOKIE", raising=False)
    assert checkin.main(["--state-file", str(tmp_path / "s.json")]) == 2


def test_capture_cookie_action(tmp_path):
    from actions import capture_cookie

    state = tmp_path / "s.json"
    with mock.patch.object(capture_cookie, "NodeSeekClient", return_value=FakeClient()), \
            mock.patch.object(capture_cookie, "build_notifier", return_value=RecordingNotifier()):
        code = capture_cookie.main(["--cookie", VALID_COOKIE, "--state-file", str(state)])
    assert code == 0
    assert StateStore(state).read(COOKIE_KEY) == VALID_COOKIE


def test_capture_cookie_action_rejects_foreign_cookie(tmp_path):
    from actions import capture_cookie

    with mock.patch.object(capture_cookie, "NodeSeekClient", return_value=FakeClient()), \
            mock.patch.object(capture_cookie, "build_notifier", return_value=RecordingNotifier()):
        code = capture_cookie.main(["--cookie", "other_site=1234567890", "--state-file", str(tmp_path / "s.json")])
    assert code == 1


def test_authorize_refreshes_cached_profile(tmp_path, capsys, monkeypatch):
    from nodeseek import authorize

    monkeypatch.delenv("NODESEEK_COOKIE", raising=False)
    state = tmp_path / "s.json"
    StateStore(state).write(COOKIE_KEY, VALID_COOKIE)
    with mock.patch.object(authorize, "NodeSeekClient", return_value=FakeClient()):
        code = authorize.main(["--state-file", str(state)])
    assert code == 0
    assert "Authorized as: alice" in capsys.readouterr().out
    assert json.loads(StateStore(state).read(USER_INFO_KEY))["id"] == 42


def test_authorize_invalid_cookie(tmp_path, monkeypatch):
    from nodeseek import authorize

    monkeypatch.delenv("NODESEEK_COOKIE", raising=False)
    client = FakeClient(user_info=HttpResponse(401, {}, ""))
    with mock.patch.object(authorize, "NodeSeekClient", return_value=client):
        code = authorize.main(["--cookie", VALID_COOKIE, "--state-file", str(tmp_path / "s.json")])
    assert code == 1


def test_classify_response_tool(monkeypatch, capsys):
    from tools import classify_response

    monkeypatch.setattr(sys, "argv", ["classify_response", "--status", "200", "--body", "<p>已签到</p>"])
    assert classify_response.main() == 0
    out = capsys.readouterr().out
    assert "parsed as JSON: False" in out
    assert "今日已签到" in out
