"""
Firebase Cloud Messaging client.

Wraps firebase-admin's multicast send and reports one SendResult per token,
in the order the tokens were given.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError, InvalidArgumentError

from app.core.config import settings

logger = logging.getLogger(__name__)

# FCM rejects multicast messages with more tokens than this.
MULTICAST_LIMIT = 500

ERROR_INVALID_TOKEN = "messaging/invalid-registration-token"
ERROR_NOT_REGISTERED = "messaging/registration-token-not-registered"
INVALID_TOKEN_ERRORS = frozenset({ERROR_INVALID_TOKEN, ERROR_NOT_REGISTERED})


@dataclass
class PushTarget:
    token: str
    user_id: str
    device_id: str
    platform: str


@dataclass
class SendResult:
    success: bool
    error_code: Optional[str] = None


def _error_code(exc: Optional[Exception]) -> str:
    if isinstance(exc, messaging.UnregisteredError):
        return ERROR_NOT_REGISTERED
    if isinstance(exc, InvalidArgumentError):
        return ERROR_INVALID_TOKEN
    if isinstance(exc, FirebaseError) and exc.code:
        return "messaging/" + str(exc.code).lower().replace("_", "-")
    return "messaging/unknown-error"


def _build_message(tokens: List[str], title: str, body: str, data: Dict[str, str]) -> messaging.MulticastMessage:
    return messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(title=title, body=body),
        data={k: str(v) for k, v in data.items()},
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(badge=1, sound="default")),
        ),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                sound="default",
                click_action="FLUTTER_NOTIFICATION_CLICK",
            ),
        ),
    )


class FCMClient:
    """Multicast sender bound to a firebase app (the default app when none is given)."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    def send_multicast(
        self, tokens: List[str], title: str, body: str, data: Dict[str, str]
    ) -> List[SendResult]:
        """
        Send one notification to every token.

        Per-token failures come back as SendResult(success=False); a failure of
        the call as a whole (auth, transport) raises.
        """
        results: List[SendResult] = []
        for i in range(0, len(tokens), MULTICAST_LIMIT):
            chunk = tokens[i:i + MULTICAST_LIMIT]
            response = messaging.send_each_for_multicast(
                _build_message(chunk, title, body, data), app=self.app
            )
            for r in response.responses:
                if r.success:
                    results.append(SendResult(success=True))
                else:
                    results.append(SendResult(success=False, error_code=_error_code(r.exception)))
            logger.info(f"FCM multicast: {response.success_count} sent, {response.failure_count} failed")
        return results


def init_firebase() -> firebase_admin.App:
    """Initialize the default firebase app once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    if settings.use_firebase_file_credentials:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(cred)
    logger.info("Firebase app initialized")
    return app


def get_push_client() -> FCMClient:
    """FastAPI dependency / factory for the push client."""
    return FCMClient()
