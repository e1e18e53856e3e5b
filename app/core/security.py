"""
Shared-secret verification for inbound hooks.
"""
import hmac
import re
from typing import Optional

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def verify_shared_secret(auth_header: Optional[str], secret: str) -> bool:
    """Constant-time check of `Authorization: Bearer <secret>`."""
    if not auth_header:
        return False
    match = _BEARER_RE.match(auth_header)
    if not match:
        return False
    return hmac.compare_digest(match.group(1).encode("utf-8"), secret.encode("utf-8"))
