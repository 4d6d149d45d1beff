"""Video consultation schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VideoSessionResponse(BaseModel):
    """What the doctor needs to open the room and share it"""

    call_id: int
    appointment_id: int
    meeting_id: str
    meeting_url: str
    doctor_token: str
    participant_token: str
    status: str


class JoinResponse(BaseModel):
    call_id: int
    meeting_id: str
    meeting_url: str
    token: str
    status: str
    is_host: bool


class EndCallRequest(BaseModel):
    duration_minutes: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class VideoCallResponse(BaseModel):
    id: int
    appointment_id: int
    doctor_id: int
    patient_id: int
    room_id: str
    call_link: Optional[str] = None
    status: str
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
