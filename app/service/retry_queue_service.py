"""
Notification retry queue processing.

Drains the oldest queued notifications, re-dispatches them, and moves items
that used up their retries to the dead-letter table.
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import notification_retry_crud
from app.model.notification_retry import NotificationRetry
from app.schema.notification import MessageSnapshot, RetryRunSummary
from app.service.notification_service import NotificationDispatcher
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

MAX_RETRIES = settings.NOTIFICATION_MAX_RETRIES
BATCH_SIZE = settings.RETRY_QUEUE_BATCH_SIZE


class RetryQueueProcessor:
    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        max_retries: int = MAX_RETRIES,
        batch_size: int = BATCH_SIZE,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.max_retries = max_retries
        self.batch_size = batch_size

    @property
    def dead_letter_reason(self) -> str:
        return f"Exceeded max retries ({self.max_retries})"

    def process(self, now: Optional[datetime] = None) -> RetryRunSummary:
        logger.info("Processing notification retry queue")
        retries = notification_retry_crud.list_oldest(self.db, limit=self.batch_size)
        summary = RetryRunSummary(total=len(retries))
        if not retries:
            logger.info("No items in retry queue")
            return summary

        logger.info(f"Processing {len(retries)} retry items")
        to_delete: List[str] = []
        for retry in retries:
            retry_id = retry.id
            if retry.retry_count >= self.max_retries:
                if self._dead_letter(retry, now or utc_now()):
                    summary.dead_lettered += 1
                continue

            if self._attempt(retry, now):
                to_delete.append(retry_id)
                summary.successful += 1
            else:
                summary.failed += 1

        if to_delete:
            try:
                notification_retry_crud.delete_many(self.db, to_delete)
            except SQLAlchemyError as e:
                # Rows left behind are picked up again next run
                self.db.rollback()
                logger.error(f"Failed to delete processed retries: {e}")

        logger.info(
            f"Retry queue processing completed: total={summary.total} successful={summary.successful} "
            f"failed={summary.failed} dead_lettered={summary.dead_lettered}"
        )
        return summary

    def _dead_letter(self, retry: NotificationRetry, now: datetime) -> bool:
        retry_id, room_id, message_id, retry_count = retry.id, retry.room_id, retry.message_id, retry.retry_count
        try:
            # Copy and removal share one commit so a retry is never dead-lettered twice
            notification_retry_crud.copy_to_dead_letter(
                self.db, retry=retry, reason=self.dead_letter_reason, now=now
            )
            self.db.delete(retry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to dead-letter retry {retry_id}: {e}")
            return False
        logger.warning(
            f"Moved retry to dead letter queue: room={room_id} message={message_id} retry_count={retry_count}"
        )
        return True

    def _attempt(self, retry: NotificationRetry, now: Optional[datetime]) -> bool:
        room_id, message_id = retry.room_id, retry.message_id
        try:
            self.dispatcher.dispatch(room_id, MessageSnapshot.model_validate(retry.message or {}), now=now)
        except Exception as e:
            self.db.rollback()
            error = str(e) or type(e).__name__
            try:
                notification_retry_crud.record_failure(self.db, retry=retry, error=error, now=now or utc_now())
            except SQLAlchemyError as store_error:
                self.db.rollback()
                logger.error(f"Failed to record retry failure for {retry.id}: {store_error}")
                return False
            logger.warning(
                f"Retry failed: room={room_id} message={message_id} retry_count={retry.retry_count} error={error}"
            )
            return False

        logger.info(f"Retry successful: room={room_id} message={message_id}")
        return True
