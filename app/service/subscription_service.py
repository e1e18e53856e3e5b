"""
RevenueCat subscription events.

The user's subscription fields and the processed-webhook marker are written in
one transaction. User notifications go out after the commit.
"""
from datetime import datetime
from typing import Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session

from app.core.database import run_transaction
from app.core.exceptions import AlreadyProcessed
from app.crud import user_crud
from app.model.processed_event import ProcessedWebhook
from app.model.user import SubscriptionStatus, User
from app.schema.webhook import RevenueCatEvent, WebhookStatus
from app.service.notification_service import NotificationDispatcher
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_PLAN = "premium"

# Returned by a handler to request a post-commit notification
FollowUp = Optional[Callable[[NotificationDispatcher, str], object]]


class SubscriptionService:
    def __init__(self, db: Session, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher
        self.handlers: Dict[str, Callable[[User, RevenueCatEvent, datetime], FollowUp]] = {
            "INITIAL_PURCHASE": self._initial_purchase,
            "RENEWAL": self._renewal,
            "CANCELLATION": self._cancellation,
            "EXPIRATION": self._expiration,
            "BILLING_ISSUE": self._billing_issue,
            "PRODUCT_CHANGE": self._product_change,
            "TEST": self._test,
        }

    def process_event(self, event: RevenueCatEvent) -> WebhookStatus:
        logger.info(
            f"RevenueCat webhook received: event={event.id} type={event.type} user={event.app_user_id}"
        )
        if self.db.get(ProcessedWebhook, event.id) is not None:
            logger.info(f"Webhook already processed: {event.id}")
            return WebhookStatus.ALREADY_PROCESSED

        handler = self.handlers.get(event.type)
        now = utc_now()

        def work(db: Session) -> FollowUp:
            if db.get(ProcessedWebhook, event.id) is not None:
                raise AlreadyProcessed(event.id)
            follow_up = None
            user = user_crud.get_for_update(db, event.app_user_id) if event.app_user_id else None
            if user is None:
                logger.warning(f"User not found for subscription event: user={event.app_user_id} type={event.type}")
            elif handler is None:
                logger.info(f"Unhandled event type: type={event.type} user={event.app_user_id}")
            else:
                follow_up = handler(user, event, now)
            db.add(ProcessedWebhook(
                id=event.id,
                event_type=event.type,
                user_id=event.app_user_id,
                processed_at=now,
            ))
            return follow_up

        try:
            follow_up = run_transaction(self.db, work)
        except AlreadyProcessed:
            return WebhookStatus.ALREADY_PROCESSED

        if follow_up is not None:
            try:
                follow_up(self.dispatcher, event.app_user_id)
            except Exception as e:
                logger.error(f"Failed to notify user {event.app_user_id} for {event.type}: {e}")

        logger.info(f"Webhook processed successfully: event={event.id} type={event.type}")
        return WebhookStatus.OK if handler is not None else WebhookStatus.IGNORED

    # --- Handlers ---

    def _initial_purchase(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        user.subscription_status = SubscriptionStatus.ACTIVE
        user.subscription_plan = event.product_id or DEFAULT_PLAN
        user.subscription_started_at = now
        user.subscription_updated_at = now
        logger.info(f"User subscription activated: {user.id}")
        return None

    def _renewal(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        user.subscription_status = SubscriptionStatus.ACTIVE
        if event.product_id:
            user.subscription_plan = event.product_id
        user.subscription_updated_at = now
        logger.info(f"User subscription renewed: {user.id}")
        return None

    def _cancellation(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        user.subscription_status = SubscriptionStatus.CANCELLED
        user.subscription_cancelled_at = now
        user.subscription_updated_at = now
        logger.info(f"User subscription cancelled: {user.id}")
        return None

    def _expiration(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        user.subscription_status = SubscriptionStatus.EXPIRED
        user.subscription_expired_at = now
        user.subscription_updated_at = now
        logger.info(f"User subscription expired: {user.id}")
        return NotificationDispatcher.notify_subscription_expired

    def _billing_issue(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        user.subscription_status = SubscriptionStatus.BILLING_ISSUE
        user.subscription_updated_at = now
        logger.info(f"User subscription billing issue: {user.id}")
        return NotificationDispatcher.notify_billing_issue

    def _product_change(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        if event.product_id:
            user.subscription_plan = event.product_id
        user.subscription_updated_at = now
        logger.info(f"User subscription plan changed: user={user.id} plan={event.product_id}")
        return None

    def _test(self, user: User, event: RevenueCatEvent, now: datetime) -> FollowUp:
        logger.info(f"Test webhook received: {user.id}")
        return None
