"""
Chat schemas: rooms, messages, typing and read cursors.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


# --- Room ---


class RoomCreateBody(BaseModel):
    """Body for POST /chat/rooms."""
    name: str = Field(..., min_length=1, max_length=100)
    photo_url: Optional[str] = None


class LastMessagePreview(BaseModel):
    """Denormalized last message summary kept on the room."""
    text: Optional[str] = None
    sender_id: Optional[str] = None
    at: Optional[datetime] = None


class RoomResponse(BaseModel):
    id: str
    name: str
    photo_url: Optional[str] = None
    member_count: int
    role: Optional[str] = None
    last_read_at: Optional[datetime] = None
    last_message: Optional[LastMessagePreview] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoomListResponse(BaseModel):
    items: List[RoomResponse]
    total: int = Field(..., description="Total rooms for this user.")


class MembershipResponse(BaseModel):
    room_id: str
    member_count: int
    joined: bool


# --- Message ---

class MessageCreateBody(BaseModel):
    """Body for POST /chat/rooms/{room_id}/messages."""
    text: str = Field(..., min_length=1, max_length=10_000)


class MessageResponse(BaseModel):
    id: str
    room_id: str
    sender_id: str
    text: str
    timestamp: Optional[datetime] = None
    edited_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    """Paginated messages for a room."""
    items: List[MessageResponse]
    page: int = Field(..., description="Current page (1-based).")
    limit: int = Field(..., description="Items per page.")
    total: int = Field(..., description="Total messages in room.")
    total_pages: int = Field(..., description="Total pages.")


# --- Typing / read ---

class TypingBody(BaseModel):
    is_typing: bool


class TypingResponse(BaseModel):
    success: bool = True


class MarkReadBody(BaseModel):
    message_id: Optional[str] = None


class MarkReadResponse(BaseModel):
    success: bool = True
    timestamp: datetime
