"""
API tests for chat, devices and user profile endpoints.
"""
from sqlalchemy.exc import OperationalError

from app.crud import room_crud
from app.model.device import Device
from app.model.processed_event import ProcessedEvent
from app.model.room import Room
from app.model.room_member import RoomMember
from tests import make_device, make_room, make_user


class TestAuthentication:
    def test_protected_routes_require_login(self, client):
        response = client.get("/api/v1/chat/rooms")
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHENTICATED"

    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_store_error_is_service_unavailable(self, client, db, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(room_crud, "list_rooms_for_user", broken)
        make_user(db, "u1")
        client.login("u1")
        response = client.get("/api/v1/chat/rooms")
        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "SERVICE_ERROR"


class TestRooms:
    def test_create_list_and_join(self, client, db):
        make_user(db, "owner")
        make_user(db, "guest")

        client.login("owner")
        created = client.post("/api/v1/chat/rooms", json={"name": "Trail crew"})
        assert created.status_code == 201
        room = created.json()
        assert room["role"] == "admin"
        assert room["member_count"] == 1

        client.login("guest")
        joined = client.post(f"/api/v1/chat/rooms/{room['id']}/join")
        assert joined.json() == {"room_id": room["id"], "member_count": 2, "joined": True}

        listing = client.get("/api/v1/chat/rooms").json()
        assert listing["total"] == 1
        assert listing["items"][0]["role"] == "member"

    def test_joining_twice_reports_existing_membership(self, client, db):
        make_user(db, "owner")
        make_user(db, "guest")
        room = make_room(db, ["owner", "guest"])
        client.login("guest")

        again = client.post(f"/api/v1/chat/rooms/{room.id}/join")

        assert again.status_code == 200
        assert again.json() == {"room_id": room.id, "member_count": 2, "joined": False}

    def test_non_member_cannot_view_room(self, client, db):
        make_user(db, "owner")
        make_user(db, "outsider")
        room = make_room(db, ["owner"])
        client.login("outsider")
        response = client.get(f"/api/v1/chat/rooms/{room.id}")
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "PERMISSION_DENIED"

    def test_unknown_room_is_not_found(self, client, db):
        make_user(db, "owner")
        client.login("owner")
        assert client.get("/api/v1/chat/rooms/missing").status_code == 404

    def test_leave(self, client, db):
        make_user(db, "owner")
        make_user(db, "guest")
        room = make_room(db, ["owner", "guest"])
        client.login("guest")
        response = client.post(f"/api/v1/chat/rooms/{room.id}/leave")
        assert response.json()["member_count"] == 1
        assert db.query(RoomMember).filter_by(room_id=room.id, user_id="guest").count() == 0


class TestMessages:
    def test_post_message_updates_room_and_notifies_members(self, client, db, push):
        make_user(db, "sender")
        make_user(db, "reader")
        make_device(db, "reader", "phone", token="reader-phone")
        room = make_room(db, ["sender", "reader"], name="Trail crew")

        client.login("sender")
        response = client.post(f"/api/v1/chat/rooms/{room.id}/messages", json={"text": "summit at noon"})

        assert response.status_code == 201
        message = response.json()
        assert message["text"] == "summit at noon"
        assert message["sender_id"] == "sender"

        # Background task has run by the time the response is returned
        db.expire_all()
        saved = db.get(Room, room.id)
        assert saved.last_message_text == "summit at noon"
        assert saved.last_message_sender_id == "sender"
        assert db.get(ProcessedEvent, f"message_created_{message['id']}") is not None
        assert push.sent_tokens == ["reader-phone"]
        assert push.calls[0]["title"] == "Trail crew"
        assert push.calls[0]["data"] == {"roomId": room.id, "senderId": "sender", "type": "new_message"}

    def test_blank_message_is_rejected(self, client, db):
        make_user(db, "sender")
        room = make_room(db, ["sender"])
        client.login("sender")
        response = client.post(f"/api/v1/chat/rooms/{room.id}/messages", json={"text": "   "})
        assert response.status_code == 400

    def test_list_messages_newest_first(self, client, db):
        make_user(db, "sender")
        room = make_room(db, ["sender"])
        client.login("sender")
        for text in ("one", "two", "three"):
            client.post(f"/api/v1/chat/rooms/{room.id}/messages", json={"text": text})

        page = client.get(f"/api/v1/chat/rooms/{room.id}/messages", params={"limit": 2}).json()
        assert page["total"] == 3
        assert page["total_pages"] == 2
        assert len(page["items"]) == 2


class TestTypingAndRead:
    def test_typing_is_rate_limited(self, client, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        client.login("u1")
        url = f"/api/v1/chat/rooms/{room.id}/typing"

        for _ in range(10):
            assert client.put(url, json={"is_typing": True}).status_code == 200
        limited = client.put(url, json={"is_typing": False})

        assert limited.status_code == 429
        assert limited.json()["detail"]["code"] == "RATE_LIMITED"
        assert "Retry-After" in limited.headers

    def test_mark_read(self, client, db):
        make_user(db, "u1")
        room = make_room(db, ["u1"])
        client.login("u1")
        response = client.post(f"/api/v1/chat/rooms/{room.id}/read", json={})
        assert response.status_code == 200
        assert response.json()["success"] is True
        db.expire_all()
        assert db.query(RoomMember).filter_by(room_id=room.id, user_id="u1").one().last_read_at is not None


class TestDevices:
    def test_register_and_refresh_token(self, client, db):
        make_user(db, "u1")
        client.login("u1")

        first = client.post("/api/v1/devices", json={"token": "tok-1", "device_id": "pixel", "platform": "android"})
        assert first.json() == {"success": True, "device_id": "pixel"}
        client.post("/api/v1/devices", json={"token": "tok-2", "device_id": "pixel", "platform": "android"})

        db.expire_all()
        device = db.query(Device).filter_by(user_id="u1").one()
        assert device.fcm_token == "tok-2"
        assert device.platform == "android"

    def test_device_id_is_generated_when_missing(self, client, db):
        make_user(db, "u1")
        client.login("u1")
        response = client.post("/api/v1/devices", json={"token": "tok-1"})
        assert response.status_code == 200
        assert response.json()["device_id"]

    def test_blank_token_is_rejected(self, client, db):
        make_user(db, "u1")
        client.login("u1")
        assert client.post("/api/v1/devices", json={"token": "  "}).status_code == 422


class TestUsers:
    def test_me(self, client, db):
        make_user(db, "u1")
        client.login("u1")
        profile = client.get("/api/v1/users/me").json()
        assert profile["id"] == "u1"
        assert profile["subscription_status"] == "free"
        assert profile["notification_preferences"]["enabled"] is True

    def test_set_and_clear_quiet_hours(self, client, db):
        make_user(db, "u1")
        client.login("u1")
        url = "/api/v1/users/me/notification-preferences"

        updated = client.patch(url, json={"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"}).json()
        assert updated["notification_preferences"]["quiet_hours_start"] == "22:00"

        cleared = client.patch(url, json={"clear_quiet_hours": True, "enabled": False}).json()
        assert cleared["notification_preferences"] == {
            "enabled": False,
            "quiet_hours_start": None,
            "quiet_hours_end": None,
        }

    def test_half_quiet_hours_is_rejected(self, client, db):
        make_user(db, "u1")
        client.login("u1")
        response = client.patch("/api/v1/users/me/notification-preferences", json={"quiet_hours_start": "22:00"})
        assert response.status_code == 422
