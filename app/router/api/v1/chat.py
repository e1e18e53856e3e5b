"""
Chat API: rooms, membership, typing, read cursors and messages.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import current_user_id
from app.core.exceptions import RoomNotFound
from app.crud import message_crud, room_crud, room_member_crud
from app.model.room import Room
from app.model.room_member import RoomMember
from app.schema.chat import (
    LastMessagePreview,
    MarkReadBody,
    MarkReadResponse,
    MembershipResponse,
    MessageCreateBody,
    MessageListResponse,
    MessageResponse,
    RoomCreateBody,
    RoomListResponse,
    RoomResponse,
    TypingBody,
    TypingResponse,
)
from app.schema.notification import MessageCreatedEvent, MessageSnapshot
from app.service.message_event_service import process_message_created
from app.service.room_service import RoomService

router = APIRouter()
logger = logging.getLogger(__name__)


def _room_to_response(room: Room, member: Optional[RoomMember] = None) -> RoomResponse:
    preview = None
    if room.last_message_at or room.last_message_text:
        preview = LastMessagePreview(
            text=room.last_message_text,
            sender_id=room.last_message_sender_id,
            at=room.last_message_at,
        )
    return RoomResponse(
        id=room.id,
        name=room.name,
        photo_url=room.photo_url,
        member_count=room.member_count,
        role=member.role if member else None,
        last_read_at=member.last_read_at if member else None,
        last_message=preview,
        created_at=room.created_at,
        updated_at=room.updated_at,
    )


# --- Rooms ---

@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """List rooms the current user belongs to, most recently active first."""
    rooms = room_crud.list_rooms_for_user(db, user_id=user_id)
    items = [
        _room_to_response(room, room_member_crud.get_by_room_and_user(db, room_id=room.id, user_id=user_id))
        for room in rooms
    ]
    return RoomListResponse(items=items, total=len(items))


@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    body: RoomCreateBody,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Create a room with the caller as admin. Rate limited."""
    room = RoomService(db).create_room(user_id, body.name, photo_url=body.photo_url)
    member = room_member_crud.get_by_room_and_user(db, room_id=room.id, user_id=user_id)
    return _room_to_response(room, member)


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    room = room_crud.get(db, room_id)
    if not room:
        raise RoomNotFound(room_id)
    member = RoomService(db).require_member(room_id, user_id)
    return _room_to_response(room, member)


@router.post("/rooms/{room_id}/join", response_model=MembershipResponse)
async def join_room(
    room_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    room, joined = RoomService(db).join_room(room_id, user_id)
    return MembershipResponse(room_id=room.id, member_count=room.member_count, joined=joined)


@router.post("/rooms/{room_id}/leave", response_model=MembershipResponse)
async def leave_room(
    room_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    room = RoomService(db).leave_room(room_id, user_id)
    return MembershipResponse(room_id=room.id, member_count=room.member_count, joined=False)


# --- Typing / read ---

@router.put("/rooms/{room_id}/typing", response_model=TypingResponse)
async def set_typing_status(
    room_id: str,
    body: TypingBody,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Start or stop the caller's typing indicator. Rate limited."""
    RoomService(db).set_typing(room_id, user_id, body.is_typing)
    return TypingResponse()


@router.post("/rooms/{room_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    room_id: str,
    body: Optional[MarkReadBody] = None,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Move the caller's read cursor; with message_id also records a read receipt."""
    message_id = body.message_id if body else None
    timestamp = RoomService(db).mark_read(room_id, user_id, message_id=message_id)
    return MarkReadResponse(timestamp=timestamp)


# --- Messages ---

@router.get("/rooms/{room_id}/messages", response_model=MessageListResponse)
async def list_messages(
    room_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
    page: int = 1,
    limit: int = 50,
    before_id: Optional[str] = None,
):
    """Paginated messages for a room, newest first."""
    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 50
    RoomService(db).require_member(room_id, user_id)
    items, total = message_crud.list_by_room_paginated(
        db, room_id=room_id, page=page, limit=limit, before_id=before_id
    )
    total_pages = (total + limit - 1) // limit if total else 0
    return MessageListResponse(
        items=[MessageResponse.model_validate(m) for m in items],
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
    )


@router.post("/rooms/{room_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    room_id: str,
    body: MessageCreateBody,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Create a message, then notify the room in the background. Rate limited."""
    try:
        msg = RoomService(db).post_message(room_id, user_id, body.text)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to save chat message: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "SERVICE_ERROR", "message": "Failed to save message. Please try again."},
        )

    event = MessageCreatedEvent(
        event_id=f"message_created_{msg.id}",
        room_id=room_id,
        message_id=msg.id,
        message=MessageSnapshot(text=msg.text, sender_id=msg.sender_id, timestamp=msg.timestamp),
    )
    background_tasks.add_task(process_message_created, event)
    return MessageResponse.model_validate(msg)
