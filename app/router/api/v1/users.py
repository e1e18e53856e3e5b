"""
User router - profile endpoints (protected).
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import current_user_id
from app.core.exceptions import NotFound
from app.crud import user_crud
from app.model.user import User
from app.schema.user import NotificationPreferencesUpdate, UserProfile
from app.service.notification_service import preferences_for

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_profile(user: User) -> UserProfile:
    status = user.subscription_status
    return UserProfile(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        subscription_status=status.value if hasattr(status, "value") else str(status),
        subscription_plan=user.subscription_plan,
        notification_preferences=preferences_for(user),
        last_seen=user.last_seen,
        created_at=user.created_at,
    )


@router.get("/me", response_model=UserProfile)
async def get_me(
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Get current user profile."""
    user = user_crud.get(db, user_id)
    if not user:
        raise NotFound("User")
    return _to_profile(user)


@router.patch("/me/notification-preferences", response_model=UserProfile)
async def update_notification_preferences(
    body: NotificationPreferencesUpdate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Toggle push notifications and set or clear quiet hours ("HH:MM", UTC)."""
    user = user_crud.get(db, user_id)
    if not user:
        raise NotFound("User")
    changes = {}
    if body.enabled is not None:
        changes["notifications_enabled"] = body.enabled
    if body.clear_quiet_hours:
        changes["quiet_hours_start"] = None
        changes["quiet_hours_end"] = None
    elif body.quiet_hours_start is not None:
        changes["quiet_hours_start"] = body.quiet_hours_start
        changes["quiet_hours_end"] = body.quiet_hours_end
    if changes:
        user = user_crud.update(db, db_obj=user, obj_in=changes)
        logger.info(f"Notification preferences updated: user={user_id} fields={sorted(changes)}")
    return _to_profile(user)
