"""Video consultation service - VideoSDK rooms for video appointments"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AppointmentStatus, User
from ...models_video import VideoCall
from ...realtime import publish_appointment_change
from ...services.notification_service import create_notification
from .repository import VideoCallRepository
from .videosdk_service import HOST_PERMISSIONS, PARTICIPANT_PERMISSIONS, VideoSDKError, VideoSDKService

logger = logging.getLogger(__name__)

SCHEDULED = "scheduled"
ONGOING = "ongoing"
ENDED = "ended"

CLOSED_APPOINTMENT_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.COMPLETED.value)


def _sdk_error(e: VideoSDKError) -> HTTPException:
    if e.not_configured:
        return HTTPException(status_code=503, detail="Video consultations are not configured")
    return HTTPException(status_code=502, detail="Could not create the video room, please try again")


class VideoService:
    """Service layer for video consultation business logic"""

    def __init__(self, db: Session, sdk: Optional[VideoSDKService] = None):
        self.db = db
        self.repo = VideoCallRepository()
        self.sdk = sdk or VideoSDKService()

    def _appointment_for(self, user: User, appointment_id: int):
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")

        is_doctor = user.doctor is not None and appointment.doctor_id == user.doctor.id
        is_patient = user.patient is not None and appointment.patient_id == user.patient.id
        if not (is_doctor or is_patient):
            raise HTTPException(status_code=403, detail="You are not a participant of this consultation")
        return appointment, is_doctor

    def _token(self, permissions: list[str], room_id: str) -> str:
        try:
            return self.sdk.generate_token(permissions, room_id=room_id)
        except VideoSDKError as e:
            raise _sdk_error(e) from e

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def start_session(self, user: User, appointment_id: int) -> dict:
        """
        Open the consultation room for a video appointment.

        An existing scheduled or ongoing call is reused, otherwise a new
        VideoSDK room is created and both parties are notified.
        """
        appointment, is_doctor = self._appointment_for(user, appointment_id)
        if not is_doctor:
            raise HTTPException(status_code=403, detail="Only the doctor can start the consultation")
        if appointment.consultation_type != "video":
            raise HTTPException(status_code=400, detail="This is not a video consultation")
        if appointment.status in CLOSED_APPOINTMENT_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot start a call for a {appointment.status} appointment")

        call = self.repo.get_for_appointment(self.db, appointment.id)
        if call and call.status in (SCHEDULED, ONGOING):
            logger.info(f"🎥 Reusing video room {call.room_id} for appointment {appointment.id}")
        else:
            try:
                room_id = await self.sdk.create_room()
            except VideoSDKError as e:
                raise _sdk_error(e) from e

            call_link = self.sdk.meeting_url(room_id)
            if call:
                # A previous call ended, the appointment gets a fresh room
                call = self.repo.update(
                    self.db,
                    call,
                    room_id=room_id,
                    call_link=call_link,
                    status=SCHEDULED,
                    started_at=None,
                    ended_at=None,
                    duration_minutes=None,
                )
            else:
                call = self.repo.create(
                    self.db,
                    appointment_id=appointment.id,
                    doctor_id=appointment.doctor_id,
                    patient_id=appointment.patient_id,
                    room_id=room_id,
                    call_link=call_link,
                    status=SCHEDULED,
                )

            appointment.meeting_link = call_link
            appointment.meeting_code = room_id
            self.db.commit()
            publish_appointment_change(appointment)
            self._notify_participants(appointment, call)
            logger.info(f"✅ Video session created for appointment {appointment.id}: {room_id}")

        return {
            "call_id": call.id,
            "appointment_id": appointment.id,
            "meeting_id": call.room_id,
            "meeting_url": call.call_link,
            "doctor_token": self._token(HOST_PERMISSIONS, call.room_id),
            "participant_token": self._token(PARTICIPANT_PERMISSIONS, call.room_id),
            "status": call.status,
        }

    def _notify_participants(self, appointment, call: VideoCall) -> None:
        doctor_name = appointment.doctor.user.name
        patient_name = appointment.patient.user.name
        meta = {"room_id": call.room_id, "action_url": call.call_link, "action_text": "Join Call"}

        create_notification(
            self.db,
            user_id=appointment.patient.user_id,
            title="Video Consultation Ready",
            message=f"Dr. {doctor_name} has opened your video consultation room. Join when you're ready.",
            notification_type="video_call",
            priority="high",
            related_appointment_id=appointment.id,
            meta=meta,
        )
        create_notification(
            self.db,
            user_id=appointment.doctor.user_id,
            title="Video Consultation Created",
            message=f"Video room for your consultation with {patient_name} is ready.",
            notification_type="video_call",
            priority="medium",
            related_appointment_id=appointment.id,
            meta=meta,
        )

    def join(self, user: User, appointment_id: int) -> dict:
        appointment, is_doctor = self._appointment_for(user, appointment_id)
        call = self.repo.get_for_appointment(self.db, appointment.id)
        if not call:
            raise HTTPException(status_code=404, detail="The consultation has not been started yet")
        if call.status == ENDED:
            raise HTTPException(status_code=400, detail="This video consultation has already ended")

        if call.status == SCHEDULED:
            call = self.repo.update(self.db, call, status=ONGOING, started_at=datetime.utcnow())
            logger.info(f"📞 Video call {call.id} started")

        permissions = HOST_PERMISSIONS if is_doctor else PARTICIPANT_PERMISSIONS
        return {
            "call_id": call.id,
            "meeting_id": call.room_id,
            "meeting_url": call.call_link,
            "token": self._token(permissions, call.room_id),
            "status": call.status,
            "is_host": is_doctor,
        }

    def end(
        self,
        user: User,
        appointment_id: int,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> VideoCall:
        """Close the call, duration is computed from started_at when not given"""
        appointment, _ = self._appointment_for(user, appointment_id)
        call = self.repo.get_for_appointment(self.db, appointment.id)
        if not call:
            raise HTTPException(status_code=404, detail="No video call for this appointment")
        if call.status == ENDED:
            raise HTTPException(status_code=400, detail="This video consultation has already ended")

        ended_at = now or datetime.utcnow()
        if duration_minutes is None and call.started_at:
            duration_minutes = max(0, int((ended_at - call.started_at).total_seconds() // 60))

        call = self.repo.update(
            self.db,
            call,
            status=ENDED,
            ended_at=ended_at,
            duration_minutes=duration_minutes,
            notes=notes if notes is not None else call.notes,
        )
        logger.info(f"📴 Video call {call.id} ended ({duration_minutes} min)")
        return call

    def list_calls(self, user: User) -> list[VideoCall]:
        if user.doctor is not None:
            return self.repo.list_for_doctor(self.db, user.doctor.id)
        if user.patient is not None:
            return self.repo.list_for_patient(self.db, user.patient.id)
        raise HTTPException(status_code=403, detail="Only patients and doctors have video calls")
