from app.crud.user_crud import user_crud
from app.crud.room_crud import room_crud
from app.crud.room_member_crud import room_member_crud
from app.crud.message_crud import message_crud
from app.crud.device_crud import device_crud
from app.crud.notification_retry_crud import notification_retry_crud

__all__ = [
    "user_crud",
    "room_crud",
    "room_member_crud",
    "message_crud",
    "device_crud",
    "notification_retry_crud",
]
