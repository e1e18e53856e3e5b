"""
Daily cleanup of stale data.

Each sweep deletes rows older than its cutoff and is independent of the
others: a failing sweep is logged and the rest still run.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from app.core.database import MAX_BATCH_SIZE
from app.crud.base import CRUDBase
from app.model.device import Device
from app.model.processed_event import ProcessedEvent, ProcessedWebhook
from app.model.rate_limit import RateLimitRecord
from app.model.typing_indicator import TypingIndicator
from app.schema.notification import CleanupSummary
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

DEVICE_EXPIRY = timedelta(days=30)
PROCESSED_EVENT_EXPIRY = timedelta(days=7)
TYPING_EXPIRY = timedelta(seconds=10)
RATE_LIMIT_EXPIRY = timedelta(hours=24)
PROCESSED_WEBHOOK_EXPIRY = timedelta(days=30)


class CleanupSweeper:
    def __init__(self, db: Session):
        self.db = db

    def run(self, now: Optional[datetime] = None) -> CleanupSummary:
        now = now or utc_now()
        logger.info("Starting cleanup job")
        summary = CleanupSummary()

        sweeps = [
            ("devices", lambda: self._sweep(Device, Device.last_active, now - DEVICE_EXPIRY)),
            ("processed_events", lambda: self._sweep(
                ProcessedEvent, ProcessedEvent.processed_at, now - PROCESSED_EVENT_EXPIRY, limit=MAX_BATCH_SIZE)),
            ("typing_indicators", lambda: self._sweep(
                TypingIndicator, TypingIndicator.updated_at, now - TYPING_EXPIRY)),
            ("rate_limits", lambda: self._sweep(
                RateLimitRecord, RateLimitRecord.last_updated, now - RATE_LIMIT_EXPIRY, limit=MAX_BATCH_SIZE)),
            ("processed_webhooks", lambda: self._sweep(
                ProcessedWebhook, ProcessedWebhook.processed_at, now - PROCESSED_WEBHOOK_EXPIRY, limit=MAX_BATCH_SIZE)),
        ]
        for name, sweep in sweeps:
            self._run_sweep(summary, name, sweep)

        logger.info(
            f"Cleanup job completed: devices={summary.devices} processed_events={summary.processed_events} "
            f"typing_indicators={summary.typing_indicators} rate_limits={summary.rate_limits} "
            f"processed_webhooks={summary.processed_webhooks} failed={summary.failed_sweeps}"
        )
        return summary

    def _run_sweep(self, summary: CleanupSummary, name: str, sweep: Callable[[], int]) -> None:
        try:
            deleted = sweep()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Cleanup sweep {name} failed: {e}")
            summary.failed_sweeps.append(name)
            return
        setattr(summary, name, deleted)
        logger.info(f"Deleted {deleted} stale {name.replace('_', ' ')}")

    def _sweep(self, model, column, cutoff: datetime, limit: Optional[int] = None) -> int:
        query = self.db.query(model.id).filter(column < cutoff).order_by(column.asc())
        if limit is not None:
            query = query.limit(limit)
        ids = [row[0] for row in query.all()]
        if not ids:
            return 0
        return CRUDBase(model).delete_many(self.db, ids)
