"""
Billing provider webhooks.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.security import verify_shared_secret
from app.push.fcm import get_push_client
from app.schema.webhook import RevenueCatEvent, WebhookResponse
from app.service.notification_service import NotificationDispatcher
from app.service.subscription_service import SubscriptionService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/revenuecat", response_model=WebhookResponse)
async def revenuecat_webhook(
    request: Request,
    db: Session = Depends(get_db),
    push_client=Depends(get_push_client),
):
    """RevenueCat subscription lifecycle events. Replays of a processed event are no-ops."""
    secret = settings.REVENUECAT_WEBHOOK_SECRET
    if not secret:
        logger.error("Webhook secret not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error")

    if not verify_shared_secret(request.headers.get("authorization"), secret):
        client_ip = request.client.host if request.client else None
        logger.warning(f"Invalid webhook signature: ip={client_ip} user_agent={request.headers.get('user-agent')}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        payload = await request.json()
        event = RevenueCatEvent.model_validate(payload["event"])
    except (ValueError, KeyError, TypeError, ValidationError):
        logger.warning("Invalid webhook payload")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    service = SubscriptionService(db, NotificationDispatcher(db, push_client))
    try:
        result = service.process_event(event)
    except Exception as e:
        logger.exception(f"Error processing webhook: event={event.id} type={event.type} error={e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Processing error")
    return WebhookResponse(status=result)
