"""
Tests for account provisioning and purge.
"""
import pytest

from app.model.device import Device
from app.model.notification import Notification
from app.model.processed_event import ProcessedEvent
from app.model.rate_limit import RateLimitRecord
from app.model.room import Room
from app.model.room_member import RoomMember, UserRoomMembership
from app.model.typing_indicator import TypingIndicator
from app.model.user import SubscriptionStatus, User
from app.schema.webhook import AuthEvent, WebhookStatus
from app.service.account_service import AccountService
from tests import make_device, make_room, make_user


@pytest.fixture
def revoked(monkeypatch):
    calls = []

    def fake_revoke(uid):
        calls.append(uid)
        return 2

    monkeypatch.setattr("app.service.account_service.revoke_user_sessions", fake_revoke)
    return calls


class TestCreateProfile:
    def test_creates_free_profile_with_notifications_on(self, db):
        user = AccountService(db).create_profile("new-uid", email="n@example.com", display_name="Nia")
        assert user.subscription_status == SubscriptionStatus.FREE
        assert user.notifications_enabled is True
        assert user.quiet_hours_start is None
        assert user.email == "n@example.com"

    def test_is_idempotent(self, db):
        service = AccountService(db)
        service.create_profile("new-uid", email="first@example.com")
        service.create_profile("new-uid", email="second@example.com")
        db.expire_all()
        assert db.query(User).count() == 1
        assert db.get(User, "new-uid").email == "first@example.com"


class TestPurgeUser:
    def test_removes_user_data_and_decrements_rooms(self, db, revoked):
        make_user(db, "leaver")
        make_user(db, "stayer")
        room_a = make_room(db, ["stayer", "leaver"], name="A")
        room_b = make_room(db, ["leaver", "stayer"], name="B")
        make_device(db, "leaver", "phone")
        make_device(db, "stayer", "phone")
        db.add_all([
            Notification(user_id="leaver", title="t", body="b", data={}),
            RateLimitRecord(id="leaver_message_send", user_id="leaver", action="message_send", timestamps=[1]),
            TypingIndicator(room_id=room_a.id, user_id="leaver"),
        ])
        db.commit()

        counts = AccountService(db).purge_user("leaver")

        db.expire_all()
        assert counts["rooms"] == 2
        assert counts["sessions"] == 2
        assert revoked == ["leaver"]
        assert db.get(User, "leaver") is None
        assert db.get(Room, room_a.id).member_count == 1
        assert db.get(Room, room_b.id).member_count == 1
        assert db.query(RoomMember).filter_by(user_id="leaver").count() == 0
        assert db.query(UserRoomMembership).filter_by(user_id="leaver").count() == 0
        assert db.query(Device).filter_by(user_id="leaver").count() == 0
        assert db.query(Notification).filter_by(user_id="leaver").count() == 0
        assert db.query(RateLimitRecord).filter_by(user_id="leaver").count() == 0
        assert db.query(TypingIndicator).filter_by(user_id="leaver").count() == 0
        # Other users are untouched
        assert db.get(User, "stayer") is not None
        assert db.query(Device).filter_by(user_id="stayer").count() == 1

    def test_second_purge_is_a_noop(self, db, revoked):
        make_user(db, "leaver")
        service = AccountService(db)
        service.purge_user("leaver")
        counts = service.purge_user("leaver")
        assert counts["user"] == 0
        assert counts["rooms"] == 0

    def test_session_store_failure_does_not_stop_purge(self, db, monkeypatch):
        def broken(uid):
            raise RuntimeError("Redis not initialized")

        monkeypatch.setattr("app.service.account_service.revoke_user_sessions", broken)
        make_user(db, "leaver")
        counts = AccountService(db).purge_user("leaver")
        assert counts["sessions"] == 0
        assert db.get(User, "leaver") is None


class TestHandleEvent:
    def test_events_are_applied_once(self, db, revoked):
        created = AuthEvent(event_id="e-1", type="account.created", user={"uid": "abc", "email": "a@b.c"})
        service = AccountService(db)

        assert service.handle_event(created) == WebhookStatus.OK
        assert service.handle_event(created) == WebhookStatus.ALREADY_PROCESSED
        assert db.get(ProcessedEvent, "e-1").function_name == "on_user_create"

        deleted = AuthEvent(event_id="e-2", type="account.deleted", user={"uid": "abc"})
        assert service.handle_event(deleted) == WebhookStatus.OK
        db.expire_all()
        assert db.get(User, "abc") is None
