"""
Identity provider account events.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.security import verify_shared_secret
from app.schema.webhook import AuthEvent, WebhookResponse
from app.service.account_service import AccountService

router = APIRouter()
logger = logging.getLogger(__name__)


async def require_auth_events_secret(request: Request) -> None:
    secret = settings.AUTH_EVENTS_SECRET
    if not secret:
        logger.error("Auth events secret not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error")
    if not verify_shared_secret(request.headers.get("authorization"), secret):
        logger.warning("Invalid auth event secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post("/auth", response_model=WebhookResponse, dependencies=[Depends(require_auth_events_secret)])
async def auth_event(
    body: AuthEvent,
    db: Session = Depends(get_db),
):
    """account.created provisions the profile; account.deleted purges the user's data."""
    logger.info(f"Auth event received: event={body.event_id} type={body.type.value} user={body.user.uid}")
    result = AccountService(db).handle_event(body)
    return WebhookResponse(status=result)
