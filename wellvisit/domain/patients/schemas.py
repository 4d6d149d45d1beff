"""Patient portal schemas"""

from pydantic import BaseModel

from ..appointments.schemas import AppointmentResponse


class PatientDashboard(BaseModel):
    """Everything the patient home screen shows"""

    patient_id: int
    name: str
    upcoming_appointments: list[AppointmentResponse]
    past_appointments: list[AppointmentResponse]
    unread_notifications: int
    pending_payments: int
