"""
Database engine, session factory and transaction helper.
"""
import logging
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Write batches are capped at this many rows per commit.
MAX_BATCH_SIZE = 500
TRANSACTION_MAX_ATTEMPTS = 5


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions/threads
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_transaction(
    db: Session,
    work: Callable[[Session], T],
    max_attempts: int = TRANSACTION_MAX_ATTEMPTS,
) -> T:
    """
    Run work(db) and commit it as one transaction.

    Unique-key collisions and serialization failures roll back and re-run
    work from the start, so work must re-read everything it depends on.
    Any other exception rolls back and propagates.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work(db)
            db.commit()
            return result
        except (IntegrityError, OperationalError) as e:
            db.rollback()
            if attempt >= max_attempts:
                logger.error(f"Transaction failed after {attempt} attempts: {e}")
                raise
            logger.warning(f"Transaction conflict (attempt {attempt}/{max_attempts}): {e}")
        except Exception:
            db.rollback()
            raise
