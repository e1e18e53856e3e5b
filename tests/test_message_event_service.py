"""
Tests for message-created event handling.
"""
from datetime import datetime, timezone

import pytest

from app.core.exceptions import AlreadyProcessed, RoomNotFound
from app.model.notification_retry import NotificationRetry
from app.model.processed_event import ProcessedEvent
from app.model.room import Room
from app.model.user import User
from app.schema.notification import MessageCreatedEvent, MessageEventStatus, MessageSnapshot
from app.service.message_event_service import MessageCreatedHandler
from app.service.notification_service import NotificationDispatcher
from tests import concurrent_writer, make_device, make_room, make_user

NOON = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def room(db):
    make_user(db, "sender")
    make_user(db, "reader")
    make_device(db, "reader", "phone", token="reader-phone")
    return make_room(db, ["sender", "reader"], name="Climbers")


def event_for(room_id: str, event_id: str = "evt-1", text: str = "see you at 6") -> MessageCreatedEvent:
    return MessageCreatedEvent(
        event_id=event_id,
        room_id=room_id,
        message_id="msg-1",
        message=MessageSnapshot(text=text, sender_id="sender", timestamp=NOON),
    )


def handler(db, push) -> MessageCreatedHandler:
    return MessageCreatedHandler(db, NotificationDispatcher(db, push))


class TestMessageCreatedHandler:
    def test_commits_room_summary_and_notifies(self, db, push, room):
        status = handler(db, push).handle(event_for(room.id), now=NOON)

        assert status == MessageEventStatus.NOTIFIED
        db.expire_all()
        saved = db.get(Room, room.id)
        assert saved.last_message_text == "see you at 6"
        assert saved.last_message_sender_id == "sender"
        assert db.get(User, "sender").last_seen is not None
        marker = db.get(ProcessedEvent, "evt-1")
        assert marker.function_name == "on_message_created"
        assert push.sent_tokens == ["reader-phone"]

    def test_same_event_twice_is_applied_once(self, db, push, room):
        first = handler(db, push).handle(event_for(room.id, text="first"), now=NOON)
        second = handler(db, push).handle(event_for(room.id, text="second"), now=NOON)

        assert first == MessageEventStatus.NOTIFIED
        assert second == MessageEventStatus.ALREADY_PROCESSED
        assert len(push.calls) == 1
        db.expire_all()
        assert db.get(Room, room.id).last_message_text == "first"
        assert db.query(ProcessedEvent).count() == 1

    def test_marker_written_concurrently_is_detected_inside_transaction(self, db, push, room):
        db.add(ProcessedEvent(id="evt-1", function_name="on_message_created", processed_at=NOON))
        db.commit()
        with pytest.raises(AlreadyProcessed):
            handler(db, push)._commit_state(db, event_for(room.id), NOON)

    def test_marker_committed_before_flush_makes_retry_skip(self, db, push, room):
        room_id = room.id

        def handled_elsewhere(other):
            other.add(ProcessedEvent(id="evt-1", function_name="on_message_created", processed_at=NOON))
            other.get(Room, room_id).last_message_text = "applied elsewhere"

        with concurrent_writer(db, handled_elsewhere):
            status = handler(db, push).handle(event_for(room_id), now=NOON)

        assert status == MessageEventStatus.ALREADY_PROCESSED
        assert push.calls == []
        db.expire_all()
        assert db.get(Room, room_id).last_message_text == "applied elsewhere"
        assert db.query(ProcessedEvent).count() == 1
        assert db.query(NotificationRetry).count() == 0

    def test_dispatch_failure_is_queued_for_retry(self, db, push, room):
        push.raise_error = RuntimeError("fcm unavailable")

        status = handler(db, push).handle(event_for(room.id), now=NOON)

        assert status == MessageEventStatus.QUEUED_FOR_RETRY
        retry = db.query(NotificationRetry).one()
        assert retry.room_id == room.id
        assert retry.message_id == "msg-1"
        assert retry.retry_count == 0
        assert retry.error == "fcm unavailable"
        assert retry.message["text"] == "see you at 6"
        assert retry.message["sender_id"] == "sender"
        # State commit is kept even though delivery failed
        assert db.get(ProcessedEvent, "evt-1") is not None

    def test_missing_room_aborts_without_marker(self, db, push):
        make_user(db, "sender")
        with pytest.raises(RoomNotFound):
            handler(db, push).handle(event_for("ghost-room"), now=NOON)
        assert db.get(ProcessedEvent, "evt-1") is None
        assert db.query(NotificationRetry).count() == 0
