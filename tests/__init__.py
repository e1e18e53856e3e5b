"""
Test utilities: row factories and a recording push client.

Fixtures live in tests/conftest.py. Settings are pinned here, before any app
import, because this package is imported ahead of conftest.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REVENUECAT_WEBHOOK_SECRET"] = "rc-test-secret"
os.environ["AUTH_EVENTS_SECRET"] = "auth-test-secret"

from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.database import SessionLocal

from app.model.device import Device
from app.model.room import Room
from app.model.room_member import ROLE_ADMIN, ROLE_MEMBER, RoomMember, UserRoomMembership
from app.model.user import User
from app.push.fcm import SendResult
from app.utils.time_utils import utc_now


class FakePushClient:
    """Records multicast calls. Tokens listed in error_codes fail with that code."""

    def __init__(self):
        self.calls: List[Dict] = []
        self.error_codes: Dict[str, str] = {}
        self.raise_error: Optional[Exception] = None

    def send_multicast(self, tokens, title, body, data):
        if self.raise_error is not None:
            raise self.raise_error
        self.calls.append({"tokens": list(tokens), "title": title, "body": body, "data": dict(data)})
        return [
            SendResult(success=False, error_code=self.error_codes[t]) if t in self.error_codes
            else SendResult(success=True)
            for t in tokens
        ]

    @property
    def sent_tokens(self) -> List[str]:
        return [t for call in self.calls for t in call["tokens"]]


def make_user(db: Session, uid: str, **fields) -> User:
    user = User(id=uid, email=f"{uid}@example.com", display_name=uid.title(), **fields)
    db.add(user)
    db.commit()
    return user


def make_room(db: Session, member_ids: Iterable[str], name: str = "Book Club", room_id: Optional[str] = None) -> Room:
    """Room with both membership mirrors; the first member is admin."""
    member_ids = list(member_ids)
    room = Room(name=name, member_count=len(member_ids))
    if room_id:
        room.id = room_id
    db.add(room)
    db.flush()
    for i, uid in enumerate(member_ids):
        db.add(RoomMember(room_id=room.id, user_id=uid, role=ROLE_ADMIN if i == 0 else ROLE_MEMBER))
        db.add(UserRoomMembership(user_id=uid, room_id=room.id))
    db.commit()
    return room


def make_device(
    db: Session,
    user_id: str,
    device_id: str,
    token: Optional[str] = None,
    last_active: Optional[datetime] = None,
    platform: str = "ios",
) -> Device:
    device = Device(
        user_id=user_id,
        device_id=device_id,
        fcm_token=token or f"token-{user_id}-{device_id}",
        platform=platform,
        last_active=last_active or utc_now(),
    )
    db.add(device)
    db.commit()
    return device


@contextmanager
def concurrent_writer(db: Session, write: Callable[[Session], None]):
    """
    Commit write(other_session) just before db's next flush, once.

    Simulates another request winning the race between db's reads and its
    writes, so the flush collides with the committed rows.
    """
    state = {"done": False}

    def before_flush(session, flush_context, instances):
        if state["done"]:
            return
        state["done"] = True
        other = SessionLocal()
        try:
            write(other)
            other.commit()
        finally:
            other.close()

    event.listen(db, "before_flush", before_flush)
    try:
        yield
    finally:
        event.remove(db, "before_flush", before_flush)
