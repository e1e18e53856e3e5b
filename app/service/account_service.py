"""
Account lifecycle: profile provisioning on sign-up and data purge on deletion.
"""
from typing import Dict, Optional
import logging

from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from app.core.database import run_transaction
from app.crud import room_crud, room_member_crud, user_crud
from app.crud.base import CRUDBase
from app.model.device import Device
from app.model.notification import Notification
from app.model.processed_event import ProcessedEvent
from app.model.rate_limit import RateLimitRecord
from app.model.room_member import UserRoomMembership
from app.model.typing_indicator import TypingIndicator
from app.model.user import SubscriptionStatus, User
from app.schema.webhook import AuthEvent, AuthEventType, WebhookStatus
from app.session import revoke_user_sessions
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

FUNCTION_NAMES = {
    AuthEventType.ACCOUNT_CREATED: "on_user_create",
    AuthEventType.ACCOUNT_DELETED: "on_user_delete",
}


class AccountService:
    def __init__(self, db: Session):
        self.db = db

    def handle_event(self, event: AuthEvent) -> WebhookStatus:
        """Apply an identity provider event once per event_id."""
        if self.db.get(ProcessedEvent, event.event_id) is not None:
            logger.info(f"Auth event already processed: {event.event_id}")
            return WebhookStatus.ALREADY_PROCESSED

        if event.type == AuthEventType.ACCOUNT_CREATED:
            self.create_profile(
                event.user.uid,
                email=event.user.email,
                display_name=event.user.display_name,
                photo_url=event.user.photo_url,
            )
        else:
            self.purge_user(event.user.uid)

        def mark(db: Session) -> None:
            if db.get(ProcessedEvent, event.event_id) is None:
                db.add(ProcessedEvent(
                    id=event.event_id,
                    function_name=FUNCTION_NAMES[event.type],
                    processed_at=utc_now(),
                ))

        run_transaction(self.db, mark)
        return WebhookStatus.OK

    def create_profile(
        self,
        uid: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> User:
        """Create the user's profile row. An existing profile is returned untouched."""
        logger.info(f"New user created: user={uid} email={email}")

        def work(db: Session) -> User:
            existing = user_crud.get(db, uid)
            if existing:
                return existing
            now = utc_now()
            user = User(
                id=uid,
                email=email or "",
                display_name=display_name or "",
                photo_url=photo_url or None,
                subscription_status=SubscriptionStatus.FREE,
                notifications_enabled=True,
                quiet_hours_start=None,
                quiet_hours_end=None,
                created_at=now,
                last_seen=now,
            )
            db.add(user)
            db.flush()
            return user

        user = run_transaction(self.db, work)
        logger.info(f"User profile created: {uid}")
        return user

    def purge_user(self, uid: str) -> Dict[str, int]:
        """Remove everything stored for uid. Safe to run again for an already purged user."""
        logger.info(f"User deletion started: {uid}")
        counts: Dict[str, int] = {}

        counts["devices"] = self._delete_where(Device, Device.user_id == uid)
        counts["user_room_memberships"] = self._delete_where(
            UserRoomMembership, UserRoomMembership.user_id == uid
        )

        removed_from_rooms = 0
        for member in room_member_crud.list_by_user(self.db, user_id=uid):
            room_id = member.room_id
            if run_transaction(self.db, lambda db: self._leave_room(db, room_id, uid)):
                removed_from_rooms += 1
                logger.info(f"Removed user from room: user={uid} room={room_id}")
        counts["rooms"] = removed_from_rooms

        counts["notifications"] = self._delete_where(Notification, Notification.user_id == uid)
        counts["rate_limits"] = self._delete_where(RateLimitRecord, RateLimitRecord.user_id == uid)
        counts["typing_indicators"] = self._delete_where(TypingIndicator, TypingIndicator.user_id == uid)

        try:
            counts["sessions"] = revoke_user_sessions(uid)
        except (RedisError, RuntimeError) as e:
            logger.error(f"Failed to revoke sessions for {uid}: {e}")
            counts["sessions"] = 0

        def delete_user(db: Session) -> int:
            return db.query(User).filter(User.id == uid).delete(synchronize_session=False)

        counts["user"] = run_transaction(self.db, delete_user)
        logger.info(f"User deletion completed: user={uid} counts={counts}")
        return counts

    def _leave_room(self, db: Session, room_id: str, uid: str) -> bool:
        room = room_crud.get_for_update(db, room_id)
        removed = room_member_crud.remove_pair(db, room_id=room_id, user_id=uid)
        if removed and room is not None:
            room.member_count = max(0, (room.member_count or 1) - 1)
        return removed

    def _delete_where(self, model, criterion) -> int:
        ids = [row[0] for row in self.db.query(model.id).filter(criterion).all()]
        if not ids:
            return 0
        return CRUDBase(model).delete_many(self.db, ids)
