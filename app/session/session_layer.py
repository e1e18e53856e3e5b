"""
Session layer - Redis-based token store shared with the identity provider.

The identity provider writes `session:<token>` (JSON user data) and adds the
token to `user_sessions:<uid>`. This service only reads sessions and revokes
them when an account is deleted.
"""
from typing import Optional, Dict, Any
import logging
import json
import redis

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
USER_SESSIONS_KEY_PREFIX = "user_sessions:"

_client: Optional[redis.Redis] = None


def init_redis(host: str, port: int, db: int, max_connections: int = 10) -> redis.Redis:
    """Create the shared client and check it answers. Call once at app startup."""
    global _client
    pool = redis.ConnectionPool(
        host=host,
        port=port,
        db=db,
        decode_responses=True,
        max_connections=max_connections,
    )
    client = redis.Redis(connection_pool=pool)
    client.ping()
    _client = client
    logger.info(f"Redis initialized: {host}:{port}/{db}")
    return client


def _redis() -> redis.Redis:
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client


def session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def user_sessions_key(user_id: str) -> str:
    return f"{USER_SESSIONS_KEY_PREFIX}{user_id}"


def get_session(token: str) -> Optional[Dict[str, Any]]:
    """User data stored for token, or None when the session is missing or expired."""
    data = _redis().get(session_key(token))
    if not data:
        return None
    try:
        return json.loads(data)
    except ValueError:
        logger.warning("Discarding unreadable session payload")
        return None


def revoke_user_sessions(user_id: str) -> int:
    """Delete every session registered for a user, and the index. Returns sessions removed."""
    client = _redis()
    index = user_sessions_key(user_id)
    tokens = client.smembers(index)
    pipe = client.pipeline()
    if tokens:
        pipe.delete(*[session_key(t) for t in tokens])
    pipe.delete(index)
    results = pipe.execute()
    removed = results[0] if tokens else 0
    if removed:
        logger.info(f"Revoked {removed} sessions for user {user_id}")
    return removed


def extract_token(auth_header: Optional[str]) -> Optional[str]:
    """Bearer token from an Authorization header value."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token
