"""
Message-created event handling.

Commits the room summary and sender last_seen together with an idempotency
marker, then notifies the room. Notification failures land in the retry queue.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.core.database import SessionLocal, run_transaction
from app.core.exceptions import AlreadyProcessed, NotFound, RoomNotFound
from app.crud import notification_retry_crud, room_crud, user_crud
from app.model.processed_event import ProcessedEvent
from app.push.fcm import get_push_client
from app.schema.notification import MessageCreatedEvent, MessageEventStatus
from app.service.notification_service import NotificationDispatcher
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

FUNCTION_NAME = "on_message_created"


class MessageCreatedHandler:
    def __init__(self, db: Session, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def handle(self, event: MessageCreatedEvent, now: Optional[datetime] = None) -> MessageEventStatus:
        logger.info(
            f"New message created: room={event.room_id} message={event.message_id} event={event.event_id}"
        )
        if self.db.get(ProcessedEvent, event.event_id) is not None:
            logger.info(f"Event already processed, skipping: {event.event_id}")
            return MessageEventStatus.ALREADY_PROCESSED

        now = now or utc_now()
        try:
            run_transaction(self.db, lambda db: self._commit_state(db, event, now))
        except AlreadyProcessed:
            logger.info(f"Event processed concurrently, skipping: {event.event_id}")
            return MessageEventStatus.ALREADY_PROCESSED

        try:
            self.dispatcher.dispatch(event.room_id, event.message, now=now)
        except Exception as e:
            # Delivery is best effort; the message write already succeeded
            logger.error(
                f"Failed to send notifications: room={event.room_id} message={event.message_id} error={e}"
            )
            self.db.rollback()
            notification_retry_crud.enqueue(
                self.db,
                room_id=event.room_id,
                message_id=event.message_id,
                message=event.message.model_dump(mode="json"),
                error=str(e) or type(e).__name__,
                now=utc_now(),
            )
            return MessageEventStatus.QUEUED_FOR_RETRY

        logger.info(f"Message processing completed: room={event.room_id} message={event.message_id}")
        return MessageEventStatus.NOTIFIED

    def _commit_state(self, db: Session, event: MessageCreatedEvent, now: datetime) -> None:
        # Re-checked inside the transaction; a concurrent insert collides on the primary key
        if db.get(ProcessedEvent, event.event_id) is not None:
            raise AlreadyProcessed(event.event_id)

        room = room_crud.get_for_update(db, event.room_id)
        if not room:
            raise RoomNotFound(event.room_id)
        sender = user_crud.get(db, event.message.sender_id)
        if not sender:
            raise NotFound("User")

        db.add(ProcessedEvent(id=event.event_id, function_name=FUNCTION_NAME, processed_at=now))
        room.last_message_text = event.message.text
        room.last_message_sender_id = event.message.sender_id
        room.last_message_at = event.message.timestamp or now
        room.updated_at = now
        sender.last_seen = now
        db.flush()


def process_message_created(event: MessageCreatedEvent) -> Optional[MessageEventStatus]:
    """Background-task entry point: own session, own push client."""
    db = SessionLocal()
    try:
        handler = MessageCreatedHandler(db, NotificationDispatcher(db, get_push_client()))
        return handler.handle(event)
    except Exception:
        logger.exception(f"Error processing message: room={event.room_id} message={event.message_id}")
        return None
    finally:
        db.close()
