"""
API Router - all endpoints.
"""
from fastapi import APIRouter
from app.router.api.v1 import chat, devices, events, users, webhooks

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

api_router.include_router(
    devices.router,
    prefix="/devices",
    tags=["Devices"],
)

api_router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)

api_router.include_router(
    webhooks.router,
    prefix="/webhooks",
    tags=["Webhooks"],
)

api_router.include_router(
    events.router,
    prefix="/events",
    tags=["Events"],
)
