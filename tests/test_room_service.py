"""
Tests for room membership, typing indicators and read cursors.
"""
import pytest

from app.core.exceptions import InvalidArgument, NotFound, PermissionDenied, RateLimited, RoomNotFound
from app.model.message import Message, ReadReceipt
from app.model.room import Room
from app.model.room_member import RoomMember, UserRoomMembership
from app.model.typing_indicator import TypingIndicator
from app.service.room_service import RoomService
from tests import make_room, make_user


def mirrors(db, room_id: str, user_id: str):
    room_side = db.query(RoomMember).filter_by(room_id=room_id, user_id=user_id).first()
    user_side = db.query(UserRoomMembership).filter_by(room_id=room_id, user_id=user_id).first()
    return room_side, user_side


class TestMembership:
    def test_create_room_makes_creator_admin_in_both_mirrors(self, db):
        make_user(db, "owner")
        room = RoomService(db).create_room("owner", "  Runners  ")

        assert room.name == "Runners"
        assert room.member_count == 1
        room_side, user_side = mirrors(db, room.id, "owner")
        assert room_side.role == "admin"
        assert user_side is not None

    def test_create_room_is_rate_limited(self, db):
        make_user(db, "owner")
        service = RoomService(db)
        for i in range(10):
            service.create_room("owner", f"room {i}")
        with pytest.raises(RateLimited):
            service.create_room("owner", "one too many")
        assert db.query(Room).count() == 10

    def test_join_and_leave_keep_count_and_mirrors_in_step(self, db):
        make_user(db, "owner")
        make_user(db, "guest")
        room = make_room(db, ["owner"])
        service = RoomService(db)

        joined_room, joined = service.join_room(room.id, "guest")
        assert joined is True
        assert joined_room.member_count == 2
        assert all(mirrors(db, room.id, "guest"))

        _, joined_again = service.join_room(room.id, "guest")
        assert joined_again is False
        db.expire_all()
        assert db.get(Room, room.id).member_count == 2

        left_room = service.leave_room(room.id, "guest")
        assert left_room.member_count == 1
        assert mirrors(db, room.id, "guest") == (None, None)

    def test_leave_by_non_member_is_denied(self, db):
        make_user(db, "owner")
        room = make_room(db, ["owner"])
        with pytest.raises(PermissionDenied):
            RoomService(db).leave_room(room.id, "stranger")
        db.expire_all()
        assert db.get(Room, room.id).member_count == 1

    def test_join_unknown_room(self, db):
        make_user(db, "guest")
        with pytest.raises(RoomNotFound):
            RoomService(db).join_room("nope", "guest")


class TestTyping:
    def test_start_and_stop_typing(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        service = RoomService(db)

        service.set_typing(room.id, "u1", True)
        indicator = db.query(TypingIndicator).filter_by(room_id=room.id, user_id="u1").one()
        assert indicator.is_typing is True

        service.set_typing(room.id, "u1", False)
        assert db.query(TypingIndicator).count() == 0

    def test_non_member_cannot_type(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        with pytest.raises(PermissionDenied):
            RoomService(db).set_typing(room.id, "outsider", True)

    def test_eleventh_update_in_window_is_rate_limited(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        service = RoomService(db)
        for i in range(10):
            service.set_typing(room.id, "u1", i % 2 == 0)
        with pytest.raises(RateLimited):
            service.set_typing(room.id, "u1", True)


class TestMarkRead:
    def test_updates_both_cursors_and_records_receipt(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        msg = Message(room_id=room.id, sender_id="u1", text="hi")
        db.add(msg)
        db.commit()

        timestamp = RoomService(db).mark_read(room.id, "u1", message_id=msg.id)

        db.expire_all()
        room_side, user_side = mirrors(db, room.id, "u1")
        assert room_side.last_read_at is not None
        assert user_side.last_read_at is not None
        receipt = db.query(ReadReceipt).filter_by(message_id=msg.id, user_id="u1").one()
        assert receipt.timestamp is not None
        assert timestamp is not None

    def test_without_message_id_only_moves_cursor(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        RoomService(db).mark_read(room.id, "u1")
        assert db.query(ReadReceipt).count() == 0

    def test_requires_membership(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        with pytest.raises(PermissionDenied):
            RoomService(db).mark_read(room.id, "outsider")

    def test_leaving_before_the_cursor_moves_is_permission_denied(self, db, monkeypatch):
        make_user(db, "u1")
        make_user(db, "u2")
        room = make_room(db, ["u1", "u2"])
        service = RoomService(db)
        check = service.require_member

        def check_then_leave(room_id, user_id):
            member = check(room_id, user_id)
            RoomService(db).leave_room(room_id, user_id)
            return member

        monkeypatch.setattr(service, "require_member", check_then_leave)

        with pytest.raises(PermissionDenied):
            service.mark_read(room.id, "u1")
        db.expire_all()
        assert mirrors(db, room.id, "u1") == (None, None)

    def test_message_from_other_room_is_rejected(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        other = make_room(db, ["u1"], name="Other")
        msg = Message(room_id=other.id, sender_id="u1", text="elsewhere")
        db.add(msg)
        db.commit()
        with pytest.raises(NotFound):
            RoomService(db).mark_read(room.id, "u1", message_id=msg.id)


class TestPostMessage:
    def test_blank_text_is_rejected(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        with pytest.raises(InvalidArgument):
            RoomService(db).post_message(room.id, "u1", "   ")

    def test_member_can_post(self, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        msg = RoomService(db).post_message(room.id, "u1", " hello ")
        assert msg.text == "hello"
        assert msg.sender_id == "u1"
