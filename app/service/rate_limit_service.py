"""
Sliding-window rate limiting per (user, action).

Each (user, action) keeps the epoch-ms timestamps of admitted calls inside the
trailing window. Checks run as one locked read-modify-write transaction, so
concurrent callers cannot both take the last slot.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TypeVar
import logging

from sqlalchemy.orm import Session

from app.core.database import run_transaction
from app.core.exceptions import RateLimited, UnknownAction
from app.model.rate_limit import RateLimitRecord
from app.schema.notification import RateLimitResult
from app.utils.time_utils import from_epoch_ms, to_epoch_ms, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RateLimitPolicy:
    window_ms: int
    max_requests: int


RATE_LIMITS: Dict[str, RateLimitPolicy] = {
    "message_send": RateLimitPolicy(window_ms=60 * 1000, max_requests=30),
    "room_create": RateLimitPolicy(window_ms=60 * 60 * 1000, max_requests=10),
    "report_user": RateLimitPolicy(window_ms=24 * 60 * 60 * 1000, max_requests=5),
    "typing_status": RateLimitPolicy(window_ms=10 * 1000, max_requests=10),
}


def record_key(user_id: str, action: str) -> str:
    return f"{user_id}_{action}"


class RateLimiter:
    def __init__(self, db: Session, policies: Optional[Dict[str, RateLimitPolicy]] = None):
        self.db = db
        self.policies = policies if policies is not None else RATE_LIMITS

    def check_and_consume(self, user_id: str, action: str, now_ms: Optional[int] = None) -> RateLimitResult:
        """
        Admit or reject one call, recording it when admitted.

        Rejections are not recorded, so the stored list never holds more than
        max_requests entries. Raises UnknownAction when no policy exists.
        """
        policy = self.policies.get(action)
        if policy is None:
            raise UnknownAction(action)

        if now_ms is None:
            now_ms = to_epoch_ms(utc_now())
        key = record_key(user_id, action)

        def work(db: Session) -> RateLimitResult:
            window_start = now_ms - policy.window_ms
            record = (
                db.query(RateLimitRecord)
                .filter(RateLimitRecord.id == key)
                .with_for_update()
                .first()
            )
            stored = list(record.timestamps or []) if record else []
            valid = [t for t in stored if t > window_start]

            if len(valid) >= policy.max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=from_epoch_ms(min(valid) + policy.window_ms),
                )

            valid.append(now_ms)
            if record is None:
                record = RateLimitRecord(id=key, user_id=user_id, action=action)
                db.add(record)
            # New list object so the JSON column is flagged dirty
            record.timestamps = valid
            record.last_updated = from_epoch_ms(now_ms)
            db.flush()
            return RateLimitResult(
                allowed=True,
                remaining=policy.max_requests - len(valid),
                reset_at=from_epoch_ms(now_ms + policy.window_ms),
            )

        result = run_transaction(self.db, work)
        if not result.allowed:
            logger.info(f"Rate limit hit: user={user_id} action={action} reset_at={result.reset_at}")
        return result

    def run_if_allowed(self, user_id: str, action: str, fn: Callable[[], T]) -> T:
        """Run fn only when the call is admitted; otherwise raise RateLimited."""
        result = self.check_and_consume(user_id, action)
        if not result.allowed:
            raise RateLimited(result.reset_at)
        return fn()
