"""
Tests for the FCM multicast client.
"""
from types import SimpleNamespace

from firebase_admin import exceptions, messaging

from app.push.fcm import (
    ERROR_INVALID_TOKEN,
    ERROR_NOT_REGISTERED,
    FCMClient,
    _build_message,
    _error_code,
)


def fake_send(calls, failing=()):
    def send_each_for_multicast(message, app=None):
        calls.append(message)
        responses = [
            SimpleNamespace(success=False, exception=messaging.UnregisteredError("gone"))
            if token in failing
            else SimpleNamespace(success=True, exception=None)
            for token in message.tokens
        ]
        failures = sum(1 for r in responses if not r.success)
        return SimpleNamespace(
            responses=responses,
            success_count=len(responses) - failures,
            failure_count=failures,
        )

    return send_each_for_multicast


class TestErrorCodes:
    def test_unregistered(self):
        assert _error_code(messaging.UnregisteredError("gone")) == ERROR_NOT_REGISTERED

    def test_invalid_argument(self):
        assert _error_code(exceptions.InvalidArgumentError("bad token")) == ERROR_INVALID_TOKEN

    def test_other_firebase_errors_keep_their_code(self):
        assert _error_code(exceptions.UnavailableError("try later")) == "messaging/unavailable"

    def test_non_firebase_error(self):
        assert _error_code(None) == "messaging/unknown-error"
        assert _error_code(RuntimeError("boom")) == "messaging/unknown-error"


class TestFCMClient:
    def test_splits_large_sends_into_chunks_of_500(self, monkeypatch):
        calls = []
        monkeypatch.setattr(messaging, "send_each_for_multicast", fake_send(calls))
        tokens = [f"t{i}" for i in range(1200)]

        results = FCMClient().send_multicast(tokens, "Room", "hi", {"roomId": "r1"})

        assert [len(m.tokens) for m in calls] == [500, 500, 200]
        assert len(results) == 1200
        assert all(r.success for r in results)

    def test_results_line_up_with_tokens(self, monkeypatch):
        calls = []
        monkeypatch.setattr(messaging, "send_each_for_multicast", fake_send(calls, failing={"b"}))

        results = FCMClient().send_multicast(["a", "b", "c"], "Room", "hi", {})

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error_code == ERROR_NOT_REGISTERED


class TestBuildMessage:
    def test_payload_shape(self):
        message = _build_message(["t1"], "Room", "hello", {"roomId": "r1", "count": 3})

        assert message.tokens == ["t1"]
        assert message.notification.title == "Room"
        assert message.notification.body == "hello"
        assert message.data == {"roomId": "r1", "count": "3"}
        assert message.apns.payload.aps.badge == 1
        assert message.apns.payload.aps.sound == "default"
        assert message.android.priority == "high"
        assert message.android.notification.click_action == "FLUTTER_NOTIFICATION_CLICK"
