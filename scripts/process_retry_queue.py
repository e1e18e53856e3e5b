"""
Retry failed room notifications from the retry queue.

Run from project root: python -m scripts.process_retry_queue
Scheduled every 5 minutes (cron: */5 * * * *).
"""
import logging
import sys

# Add project root so app imports work
sys.path.insert(0, ".")

from app.core.database import SessionLocal
from app.push.fcm import get_push_client, init_firebase
from app.service.notification_service import NotificationDispatcher
from app.service.retry_queue_service import RetryQueueProcessor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_process() -> None:
    init_firebase()
    db = SessionLocal()
    try:
        processor = RetryQueueProcessor(db, NotificationDispatcher(db, get_push_client()))
        summary = processor.process()
        logger.info("Retry run summary: %s", summary.model_dump())
    except Exception as e:
        logger.error("Error processing retry queue: %s", e)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    run_process()
