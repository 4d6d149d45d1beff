"""Messaging schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

MESSAGE_TYPES = ("text", "image", "file", "voice")
MAX_MESSAGE_LENGTH = 5000


class MessageCreate(BaseModel):
    receiver_id: int
    message_text: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    appointment_id: Optional[int] = None
    message_type: str = "text"

    @field_validator("message_type")
    @classmethod
    def validate_message_type(cls, v):
        if v not in MESSAGE_TYPES:
            raise ValueError(f"message_type must be one of {', '.join(MESSAGE_TYPES)}")
        return v


class MessageResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    appointment_id: Optional[int] = None
    message_text: str
    message_type: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    sender_name: Optional[str] = None
    sender_role: Optional[str] = None
    receiver_name: Optional[str] = None
    receiver_role: Optional[str] = None


class ThreadResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_id: Optional[int] = None
    other_user_id: int
    other_user_name: str
    other_user_role: str
    last_message_text: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0


class ThreadCreate(BaseModel):
    patient_id: int
    doctor_id: int
    appointment_id: Optional[int] = None


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class OnlineStatusUpdate(BaseModel):
    is_online: bool
    status_message: Optional[str] = Field(None, max_length=255)


class OnlineStatusResponse(BaseModel):
    user_id: int
    is_online: bool
    last_seen: Optional[datetime] = None
    status_message: Optional[str] = None

    class Config:
        from_attributes = True
