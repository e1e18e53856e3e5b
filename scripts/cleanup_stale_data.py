"""
Delete stale devices, idempotency markers, typing indicators and rate limit records.

Run from project root: python -m scripts.cleanup_stale_data
Scheduled daily at 03:00 (cron: 0 3 * * *).
"""
import logging
import sys

# Add project root so app imports work
sys.path.insert(0, ".")

from app.core.database import SessionLocal
from app.service.cleanup_service import CleanupSweeper

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_cleanup() -> int:
    db = SessionLocal()
    try:
        summary = CleanupSweeper(db).run()
    finally:
        db.close()
    logger.info("Cleanup summary: %s", summary.model_dump())
    # Non-zero exit lets cron surface partially failed runs
    return 1 if summary.failed_sweeps else 0


if __name__ == "__main__":
    sys.exit(run_cleanup())
