"""Tests for cookie validation, profile parsing and capture."""

import json

import pytest

from conftest import VALID_COOKIE, FakeClient
from nodeseek.credential import (
    CredentialCapture,
    CredentialValidator,
    ProfileInfo,
    extract_cookie,
    fetch_profile,
)
from nodeseek.nodeseek_client import HttpResponse
from nodeseek.state_store import (
    COOKIE_KEY,
    LAST_CHECK_KEY,
    LAST_VALIDATED_KEY,
    USER_INFO_KEY,
    CredentialRecord,
    StateStore,
)


class UnsavableStore(StateStore):
    """State store on a read-only disk."""

    def save(self, state):
        return False


class CountingStore(StateStore):
    def __init__(self, path):
        super().__init__(path)
        self.saves = 0

    def save(self, state):
        self.saves += 1
        return super().save(state)


class TestValidator:
    def test_short_cookie_rejected_without_request(self):
        client = FakeClient()
        assert CredentialValidator(client).validate("a=b") is False
        assert client.user_info_calls == []

    def test_empty_cookie_rejected(self):
        assert CredentialValidator(FakeClient()).validate("") is False

    def test_200_is_valid(self):
        assert CredentialValidator(FakeClient()).validate(VALID_COOKIE) is True

    @pytest.mark.parametrize("status", [301, 302, 401, 403, 500])
    def test_non_200_is_invalid(self, status):
        client = FakeClient(user_info=HttpResponse(status, {}, ""))
        assert CredentialValidator(client).validate(VALID_COOKIE) is False

    def test_transport_error_is_invalid(self, offline_error):
        client = FakeClient(user_info=offline_error)
        assert CredentialValidator(client).validate(VALID_COOKIE) is False
        assert len(client.user_info_calls) == 1


class TestProfile:
    def test_flat_payload(self):
        p = ProfileInfo.from_payload({"username": "alice", "id": 1, "email": "a@x"})
        assert p == ProfileInfo("alice", 1, "a@x")

    def test_nested_payload(self):
        p = ProfileInfo.from_payload({"user": {"name": "bob", "id": 7, "email": "b@x"}})
        assert p == ProfileInfo("bob", 7, "b@x")

    def test_name_alias(self):
        assert ProfileInfo.from_payload({"name": "carol"}).username == "carol"

    def test_display_name_fallback(self):
        assert ProfileInfo().display_name == "Unknown"

    def test_fetch_profile_unparseable(self):
        client = FakeClient(user_info=HttpResponse(200, {}, "<html>"))
        assert fetch_profile(client, VALID_COOKIE) is None

    def test_fetch_profile_non_200(self):
        client = FakeClient(user_info=HttpResponse(500, {}, "{}"))
        assert fetch_profile(client, VALID_COOKIE) is None

    def test_fetch_profile_transport_error(self, offline_error):
        assert fetch_profile(FakeClient(user_info=offline_error), VALID_COOKIE) is None


def test_extract_cookie_is_case_insensitive():
    assert extract_cookie({"cookie": " a=b "}) == "a=b"
    assert extract_cookie({"Cookie": "x"}) == "x"
    assert extract_cookie({"Host": "www.nodeseek.com"}) is None
    assert extract_cookie({"Cookie": "  "}) is None
    assert extract_cookie(None) is None


class TestCapture:
    def _capture(self, client, store, notifier, clock):
        return CredentialCapture(client, store, notifier, clock=clock)

    def test_missing_marker_fails_without_side_effects(self, store, notifier, clock):
        client = FakeClient()
        ok = self._capture(client, store, notifier, clock).capture("session=abcdefghijkl")
        assert ok is False
        assert not store.path.exists()
        assert client.user_info_calls == []
        assert notifier.posts == []

    def test_success_commits_cookie_and_timestamps(self, store, notifier, clock):
        ok = self._capture(FakeClient(), store, notifier, clock).capture(VALID_COOKIE)
        assert ok is True
        assert store.read(COOKIE_KEY) == VALID_COOKIE
        assert store.read(LAST_VALIDATED_KEY) == str(clock())
        assert store.read(LAST_CHECK_KEY) == str(clock())
        assert json.loads(store.read(USER_INFO_KEY))["username"] == "alice"
        assert notifier.posts == [("NodeSeek Cookie", "获取成功", "用户: alice")]

    def test_profile_failure_keeps_cookie(self, store, notifier, clock):
        client = FakeClient(user_info=HttpResponse(200, {}, "<html>ok</html>"))
        ok = self._capture(client, store, notifier, clock).capture(VALID_COOKIE)
        assert ok is True
        assert store.read(COOKIE_KEY) == VALID_COOKIE
        assert store.read(USER_INFO_KEY) is None
        assert notifier.posts == [("NodeSeek Cookie", "获取成功", "已保存登录状态")]

    def test_invalid_cookie_notifies_and_keeps_store(self, store, notifier, clock):
        store.write(COOKIE_KEY, "nodeseek_old_cookie")
        client = FakeClient(user_info=HttpResponse(403, {}, ""))
        ok = self._capture(client, store, notifier, clock).capture(VALID_COOKIE)
        assert ok is False
        assert store.read(COOKIE_KEY) == "nodeseek_old_cookie"
        assert notifier.posts == [("NodeSeek Cookie", "获取失败", "Cookie 无效，请重新登录")]

    def test_silent_success_sends_nothing(self, store, notifier, clock):
        capture = self._capture(FakeClient(), store, notifier, clock)
        assert capture.capture(VALID_COOKIE, silent=True) is True
        assert notifier.posts == []

    def test_silent_invalid_cookie_still_notifies(self, store, notifier, clock):
        client = FakeClient(user_info=HttpResponse(401, {}, ""))
        capture = self._capture(client, store, notifier, clock)
        assert capture.capture(VALID_COOKIE, silent=True) is False
        assert notifier.posts == [("NodeSeek Cookie", "获取失败", "Cookie 无效，请重新登录")]

    def test_failed_save_persists_nothing(self, tmp_path, notifier, clock):
        store = UnsavableStore(tmp_path / "state.json")
        capture = self._capture(FakeClient(), store, notifier, clock)

        assert capture.capture(VALID_COOKIE, silent=True) is False
        record = CredentialRecord.load(store)
        assert record.cookie is None
        assert record.last_validated_at is None
        assert notifier.posts == [("NodeSeek Cookie", "保存失败", "无法写入状态文件")]

    def test_commit_is_a_single_save(self, tmp_path, notifier, clock):
        store = CountingStore(tmp_path / "state.json")
        client = FakeClient(user_info=HttpResponse(200, {}, "<html>ok</html>"))
        assert self._capture(client, store, notifier, clock).capture(VALID_COOKIE) is True
        assert store.saves == 1
        record = CredentialRecord.load(store)
        assert record.cookie == VALID_COOKIE
        assert record.last_validated_at == clock()
        assert record.last_checked_at == clock()
