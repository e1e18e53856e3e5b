from app.model.user import User
from app.model.room import Room
from app.model.room_member import RoomMember, UserRoomMembership
from app.model.message import Message, ReadReceipt
from app.model.device import Device
from app.model.typing_indicator import TypingIndicator
from app.model.processed_event import ProcessedEvent, ProcessedWebhook
from app.model.notification_retry import NotificationRetry, DeadLetter
from app.model.rate_limit import RateLimitRecord
from app.model.notification import Notification

__all__ = [
    "User",
    "Room",
    "RoomMember",
    "UserRoomMembership",
    "Message",
    "ReadReceipt",
    "Device",
    "TypingIndicator",
    "ProcessedEvent",
    "ProcessedWebhook",
    "NotificationRetry",
    "DeadLetter",
    "RateLimitRecord",
    "Notification",
]
