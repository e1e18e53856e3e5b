"""
Notification dispatcher: room fan-out with preference filtering and stale-token pruning,
plus direct notifications to a single user (in-app record + push).
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import MAX_BATCH_SIZE
from app.core.exceptions import RoomNotFound
from app.crud import device_crud, room_crud, room_member_crud, user_crud
from app.crud.base import chunked
from app.model.device import Device
from app.model.notification import Notification, TYPE_SYSTEM
from app.model.user import User
from app.push.fcm import INVALID_TOKEN_ERRORS, PushTarget, SendResult
from app.schema.notification import DispatchOutcome, MessageSnapshot
from app.schema.user import NotificationPreferences
from app.utils.time_utils import parse_hhmm, utc_now

logger = logging.getLogger(__name__)

MAX_BODY_LENGTH = 100
DEFAULT_TITLE = "New Message"
NEW_MESSAGE_TYPE = "new_message"


def truncate_message(text: str, max_length: int = MAX_BODY_LENGTH) -> str:
    """Cut text to max_length characters, ending in "..." when shortened."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def is_in_quiet_hours(prefs: NotificationPreferences, now: Optional[datetime] = None) -> bool:
    """
    True when now (UTC) falls inside the quiet-hours window.

    start <= end is a same-day window; start > end wraps past midnight.
    The start minute is inside the window, the end minute is not. Missing or
    malformed bounds mean no quiet hours.
    """
    if not prefs.quiet_hours_start or not prefs.quiet_hours_end:
        return False
    try:
        start = parse_hhmm(prefs.quiet_hours_start)
        end = parse_hhmm(prefs.quiet_hours_end)
    except ValueError:
        logger.warning(f"Ignoring malformed quiet hours {prefs.quiet_hours_start}-{prefs.quiet_hours_end}")
        return False

    now = now or utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    current = now.hour * 60 + now.minute

    if start <= end:
        return start <= current < end
    return current >= start or current < end


def preferences_for(user: User) -> NotificationPreferences:
    return NotificationPreferences(
        enabled=bool(user.notifications_enabled),
        quiet_hours_start=user.quiet_hours_start,
        quiet_hours_end=user.quiet_hours_end,
    )


class NotificationDispatcher:
    """Sends push notifications through a push client (FCMClient or a test double)."""

    def __init__(self, db: Session, push_client):
        self.db = db
        self.push_client = push_client

    # --- Room fan-out ---

    def dispatch(
        self, room_id: str, message: MessageSnapshot, now: Optional[datetime] = None
    ) -> DispatchOutcome:
        """
        Notify every room member except the sender.

        Raises RoomNotFound for an unknown room. A failure of the push call as a
        whole propagates; per-token failures are counted in the outcome.
        """
        room = room_crud.get(self.db, room_id)
        if not room:
            raise RoomNotFound(room_id)

        targets = self.collect_targets(room_id, message.sender_id, now=now)
        if not targets:
            logger.info(f"No push targets for room {room_id}")
            return DispatchOutcome()

        data = {"roomId": room_id, "senderId": message.sender_id, "type": NEW_MESSAGE_TYPE}
        results = self.push_client.send_multicast(
            [t.token for t in targets],
            room.name or DEFAULT_TITLE,
            truncate_message(message.text),
            data,
        )
        outcome = self._apply_results(targets, results)
        logger.info(
            f"Room {room_id} notified: {outcome.attempted} attempted, {outcome.succeeded} succeeded, "
            f"{outcome.failed} failed, {outcome.removed_tokens} tokens removed"
        )
        return outcome

    def collect_targets(
        self, room_id: str, sender_id: str, now: Optional[datetime] = None
    ) -> List[PushTarget]:
        recipients = [
            uid for uid in room_member_crud.list_member_ids(self.db, room_id=room_id)
            if uid != sender_id
        ]
        if not recipients:
            return []

        now = now or utc_now()
        eligible = []
        for uid in recipients:
            user = user_crud.get(self.db, uid)
            if not user:
                continue
            prefs = preferences_for(user)
            if not prefs.enabled or is_in_quiet_hours(prefs, now):
                continue
            eligible.append(uid)

        return [_target(d) for d in device_crud.list_with_token_for_users(self.db, user_ids=eligible)]

    # --- Direct user notifications ---

    def send_user_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
        notification_type: str = TYPE_SYSTEM,
    ) -> DispatchOutcome:
        """Record an in-app notification, then push it to all of the user's devices."""
        data = data or {}
        self.db.add(Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            body=body,
            data=data,
            read=False,
            created_at=utc_now(),
        ))
        self.db.commit()

        targets = [_target(d) for d in device_crud.list_with_token_for_users(self.db, user_ids=[user_id])]
        if not targets:
            return DispatchOutcome()
        results = self.push_client.send_multicast([t.token for t in targets], title, body, data)
        return self._apply_results(targets, results)

    def notify_billing_issue(self, user_id: str) -> DispatchOutcome:
        return self.send_user_notification(
            user_id,
            "Payment Issue",
            "There was a problem processing your payment. Please update your payment method.",
            {"type": "billing_issue", "action": "update_payment"},
            notification_type="billing_issue",
        )

    def notify_subscription_expired(self, user_id: str) -> DispatchOutcome:
        return self.send_user_notification(
            user_id,
            "Subscription Expired",
            "Your subscription has expired. Renew to continue enjoying premium features.",
            {"type": "subscription_expired", "action": "renew_subscription"},
            notification_type="subscription_expired",
        )

    # --- Results ---

    def _apply_results(self, targets: List[PushTarget], results: List[SendResult]) -> DispatchOutcome:
        outcome = DispatchOutcome(attempted=len(targets))
        stale: List[PushTarget] = []
        for target, result in zip(targets, results):
            if result.success:
                outcome.succeeded += 1
                continue
            outcome.failed += 1
            if result.error_code in INVALID_TOKEN_ERRORS:
                stale.append(target)
        if stale:
            outcome.removed_tokens = self.remove_device_tokens((t.user_id, t.device_id) for t in stale)
        return outcome

    def remove_device_tokens(self, keys: Iterable[Tuple[str, str]]) -> int:
        """Delete device rows by (user_id, device_id). Best effort: store errors are logged."""
        removed = 0
        try:
            for chunk in chunked(list(keys), MAX_BATCH_SIZE):
                for user_id, device_id in chunk:
                    removed += (
                        self.db.query(Device)
                        .filter(Device.user_id == user_id, Device.device_id == device_id)
                        .delete(synchronize_session=False)
                    )
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove invalid device tokens: {e}")
        if removed:
            logger.info(f"Removed {removed} invalid device tokens")
        return removed


def _target(device: Device) -> PushTarget:
    return PushTarget(
        token=device.fcm_token,
        user_id=device.user_id,
        device_id=device.device_id,
        platform=device.platform,
    )
