"""
Room service: membership, typing indicators, read cursors and message posting.

Membership is stored room-side and user-side; both mirrors and the room's
member_count change in the same transaction.
"""
from datetime import datetime
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.database import run_transaction
from app.core.exceptions import InvalidArgument, NotFound, PermissionDenied, RoomNotFound
from app.crud import message_crud, room_crud, room_member_crud, user_crud
from app.model.message import Message, ReadReceipt
from app.model.room import Room
from app.model.room_member import ROLE_ADMIN, ROLE_MEMBER, RoomMember, UserRoomMembership
from app.model.typing_indicator import TypingIndicator
from app.service.rate_limit_service import RateLimiter
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, db: Session, rate_limiter: Optional[RateLimiter] = None):
        self.db = db
        self.rate_limiter = rate_limiter or RateLimiter(db)

    def require_member(self, room_id: str, user_id: str) -> RoomMember:
        member = room_member_crud.get_by_room_and_user(self.db, room_id=room_id, user_id=user_id)
        if not member:
            raise PermissionDenied("Not a member of this room")
        return member

    # --- Membership ---

    def create_room(self, creator_id: str, name: str, photo_url: Optional[str] = None) -> Room:
        """Create a room with the creator as its only (admin) member. Rate limited."""
        if not user_crud.get(self.db, creator_id):
            raise NotFound("User")

        def create() -> Room:
            now = utc_now()

            def work(db: Session) -> Room:
                room = Room(
                    name=name.strip(),
                    photo_url=photo_url,
                    member_count=1,
                    created_at=now,
                    updated_at=now,
                )
                db.add(room)
                db.flush()
                room_member_crud.add_pair(db, room_id=room.id, user_id=creator_id, role=ROLE_ADMIN)
                return room

            room = run_transaction(self.db, work)
            self.db.refresh(room)
            logger.info(f"Room created: room={room.id} creator={creator_id}")
            return room

        return self.rate_limiter.run_if_allowed(creator_id, "room_create", create)

    def join_room(self, room_id: str, user_id: str) -> Tuple[Room, bool]:
        """Add user to room. Returns (room, joined); joined is False if already a member."""
        if not user_crud.get(self.db, user_id):
            raise NotFound("User")

        def work(db: Session) -> Tuple[Room, bool]:
            room = room_crud.get_for_update(db, room_id)
            if not room:
                raise RoomNotFound(room_id)
            if room_member_crud.get_by_room_and_user(db, room_id=room_id, user_id=user_id):
                return room, False
            room_member_crud.add_pair(db, room_id=room_id, user_id=user_id, role=ROLE_MEMBER)
            room.member_count = (room.member_count or 0) + 1
            room.updated_at = utc_now()
            return room, True

        room, joined = run_transaction(self.db, work)
        self.db.refresh(room)
        if joined:
            logger.info(f"User joined room: room={room_id} user={user_id} members={room.member_count}")
        return room, joined

    def leave_room(self, room_id: str, user_id: str) -> Room:
        def work(db: Session) -> Room:
            room = room_crud.get_for_update(db, room_id)
            if not room:
                raise RoomNotFound(room_id)
            if not room_member_crud.remove_pair(db, room_id=room_id, user_id=user_id):
                raise PermissionDenied("Not a member of this room")
            room.member_count = max(0, (room.member_count or 0) - 1)
            room.updated_at = utc_now()
            return room

        room = run_transaction(self.db, work)
        self.db.refresh(room)
        logger.info(f"User left room: room={room_id} user={user_id} members={room.member_count}")
        return room

    # --- Typing / read ---

    def set_typing(self, room_id: str, user_id: str, is_typing: bool) -> None:
        """Start (upsert) or stop (delete) the caller's typing indicator. Rate limited."""

        def update() -> None:
            self.require_member(room_id, user_id)

            def work(db: Session) -> None:
                indicator = (
                    db.query(TypingIndicator)
                    .filter(TypingIndicator.room_id == room_id, TypingIndicator.user_id == user_id)
                    .first()
                )
                if is_typing:
                    if indicator is None:
                        indicator = TypingIndicator(room_id=room_id, user_id=user_id)
                        db.add(indicator)
                    indicator.is_typing = True
                    indicator.updated_at = utc_now()
                elif indicator is not None:
                    db.delete(indicator)

            run_transaction(self.db, work)
            logger.info(f"Typing status updated: room={room_id} user={user_id} typing={is_typing}")

        self.rate_limiter.run_if_allowed(user_id, "typing_status", update)

    def mark_read(
        self,
        room_id: str,
        user_id: str,
        message_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> datetime:
        """Move the caller's read cursor to now, optionally recording a per-message receipt."""
        self.require_member(room_id, user_id)
        now = now or utc_now()

        def work(db: Session) -> None:
            if message_id:
                message = message_crud.get(db, message_id)
                if not message or message.room_id != room_id:
                    raise NotFound("Message")
                receipt = (
                    db.query(ReadReceipt)
                    .filter(ReadReceipt.message_id == message_id, ReadReceipt.user_id == user_id)
                    .first()
                )
                if receipt is None:
                    db.add(ReadReceipt(message_id=message_id, user_id=user_id, timestamp=now))
                else:
                    receipt.timestamp = now

            member = room_member_crud.get_by_room_and_user(db, room_id=room_id, user_id=user_id)
            if member is None:
                raise PermissionDenied("Not a member of this room")
            member.last_read_at = now
            mirror = room_member_crud.get_mirror(db, room_id=room_id, user_id=user_id)
            if mirror is None:
                mirror = UserRoomMembership(user_id=user_id, room_id=room_id)
                db.add(mirror)
            mirror.last_read_at = now

        run_transaction(self.db, work)
        logger.info(f"Messages marked as read: room={room_id} user={user_id}")
        return now

    # --- Messages ---

    def post_message(self, room_id: str, sender_id: str, text: str) -> Message:
        """Persist a message from a member. Rate limited."""
        text = text.strip()
        if not text:
            raise InvalidArgument("Message text cannot be empty or whitespace only.")

        def post() -> Message:
            self.require_member(room_id, sender_id)
            message = message_crud.create_from_dict(
                self.db,
                obj_in={
                    "room_id": room_id,
                    "sender_id": sender_id,
                    "text": text,
                    "timestamp": utc_now(),
                },
            )
            return message

        return self.rate_limiter.run_if_allowed(sender_id, "message_send", post)
