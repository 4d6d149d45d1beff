"""Messaging router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    ContactResponse,
    MessageCreate,
    MessageResponse,
    OnlineStatusResponse,
    OnlineStatusUpdate,
    ThreadCreate,
    ThreadResponse,
)
from .service import MessagingService

router = APIRouter(prefix="/messages", tags=["Messaging"])

rate_limit_messages = create_rate_limiter(limit=30, window_seconds=60, key_prefix="messages")


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


# ============================================================================
# MESSAGES
# ============================================================================


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
    _: None = Depends(rate_limit_messages),
):
    return service.send_message(current_user, data)


@router.get("/conversation/{other_user_id}", response_model=list[MessageResponse])
async def get_conversation(
    other_user_id: int,
    appointment_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Messages exchanged with another user, oldest first"""
    return service.get_messages(current_user, other_user_id, appointment_id, limit, offset)


@router.post("/conversation/{sender_id}/read")
async def mark_conversation_read(
    sender_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.mark_read(current_user, sender_id)


# ============================================================================
# THREADS
# ============================================================================


@router.get("/threads", response_model=list[ThreadResponse])
async def get_threads(
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_threads(current_user)


@router.post("/threads")
async def get_or_create_thread(
    data: ThreadCreate,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    thread = service.get_or_create_thread(current_user, data.patient_id, data.doctor_id, data.appointment_id)
    return {
        "id": thread.id,
        "patient_id": thread.patient_id,
        "doctor_id": thread.doctor_id,
        "appointment_id": thread.appointment_id,
    }


# ============================================================================
# CONTACTS & PRESENCE
# ============================================================================


@router.get("/contacts", response_model=list[ContactResponse])
async def search_contacts(
    q: str = Query(""),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.search_contacts(current_user, q, limit)


@router.put("/presence", response_model=OnlineStatusResponse)
async def update_presence(
    data: OnlineStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.update_online_status(current_user, data.is_online, data.status_message)


@router.get("/presence/{user_id}", response_model=OnlineStatusResponse)
async def get_presence(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_online_status(user_id)
