"""Video consultation router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import ROLE_DOCTOR, User
from .schemas import EndCallRequest, JoinResponse, VideoCallResponse, VideoSessionResponse
from .service import VideoService

router = APIRouter(prefix="/video", tags=["Video Consultations"])

doctor_only = require_roles(ROLE_DOCTOR)


def get_video_service(db: Session = Depends(get_db)) -> VideoService:
    """Dependency injection for VideoService"""
    return VideoService(db)


@router.get("/calls", response_model=list[VideoCallResponse])
async def list_calls(
    current_user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    return service.list_calls(current_user)


@router.post("/appointments/{appointment_id}/start", response_model=VideoSessionResponse)
async def start_session(
    appointment_id: int,
    current_user: User = Depends(doctor_only),
    service: VideoService = Depends(get_video_service),
):
    """Create (or reuse) the VideoSDK room for a video appointment"""
    return await service.start_session(current_user, appointment_id)


@router.post("/appointments/{appointment_id}/join", response_model=JoinResponse)
async def join_call(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    return service.join(current_user, appointment_id)


@router.post("/appointments/{appointment_id}/end", response_model=VideoCallResponse)
async def end_call(
    appointment_id: int,
    data: EndCallRequest,
    current_user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    return service.end(current_user, appointment_id, data.duration_minutes, data.notes)
