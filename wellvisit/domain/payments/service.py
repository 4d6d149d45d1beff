"""Payment service - Appointment checkout, webhooks and manual payments"""

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import config
from ...auth import is_staff
from ...models import ROLE_PATIENT, AppointmentStatus, Payment, User
from ...realtime import STAFF_CHANNEL, ChangeType, change_feed, user_channel
from ...services.notification_service import create_payment_notification, send_payment_success_notification
from .paymongo_service import PayMongoError, PayMongoService
from .repository import PaymentRepository
from .schemas import MANUAL_PROVIDERS, CheckoutRequest

logger = logging.getLogger(__name__)

PAID_EVENT = "link.payment.paid"
FAILED_EVENT = "payment.failed"


def processing_fee_for(amount: float) -> float:
    return round(amount * config.PAYMENT_PROCESSING_FEE_PERCENT / 100, 2)


def publish_payment_change(payment: Payment, change: ChangeType = ChangeType.UPDATE) -> int:
    channels = [STAFF_CHANNEL]
    if payment.patient is not None:
        channels.append(user_channel(payment.patient.user_id))
    return change_feed.publish(
        channels,
        "payments",
        change,
        payment.id,
        {"status": payment.status, "appointment_id": payment.appointment_id},
    )


def _gateway_error(e: PayMongoError) -> HTTPException:
    if e.not_configured:
        return HTTPException(status_code=503, detail="Online payments are not configured")
    return HTTPException(status_code=502, detail="Payment gateway error, please try again")


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, gateway: Optional[PayMongoService] = None):
        self.db = db
        self.repo = PaymentRepository()
        self.gateway = gateway or PayMongoService()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def create_checkout(self, data: CheckoutRequest) -> dict:
        """Standalone payment link for an arbitrary amount"""
        if not data.description or data.amount is None:
            raise HTTPException(status_code=400, detail="Missing required fields: amount, description")
        if data.amount <= 0:
            raise HTTPException(status_code=400, detail="Invalid amount")
        if not self.gateway.is_available():
            raise HTTPException(status_code=503, detail="Online payments are not configured")

        try:
            link = await self.gateway.create_payment_link(
                data.amount, data.description, reference=data.reference, email=data.email
            )
        except PayMongoError as e:
            raise _gateway_error(e) from e
        return {"url": link["checkout_url"], "id": link["id"]}

    async def create_appointment_payment(
        self, user: User, appointment_id: int, payment_method: Optional[str] = None
    ) -> Payment:
        """
        Create a pending payment for an appointment and its PayMongo checkout link.

        The amount charged is the appointment fee plus the processing fee.
        """
        if user.role != ROLE_PATIENT or user.patient is None:
            raise HTTPException(status_code=403, detail="Only patients can pay for appointments")

        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if appointment.patient_id != user.patient.id:
            raise HTTPException(status_code=403, detail="This appointment belongs to another patient")
        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Cancelled appointments cannot be paid")
        if self.repo.has_paid_payment(self.db, appointment.id):
            raise HTTPException(status_code=409, detail="This appointment has already been paid")
        if not appointment.fee or appointment.fee <= 0:
            raise HTTPException(status_code=400, detail="This appointment has no fee to pay")
        if not self.gateway.is_available():
            raise HTTPException(status_code=503, detail="Online payments are not configured")

        processing_fee = processing_fee_for(appointment.fee)
        description = f"{appointment.service_type or 'Consultation'} with Dr. {appointment.doctor.user.name}"
        payment = self.repo.create(
            self.db,
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            amount=round(appointment.fee + processing_fee, 2),
            processing_fee=processing_fee,
            currency=config.PAYMENT_CURRENCY,
            status="pending",
            provider="paymongo",
            payment_method=payment_method,
            description=description,
        )

        return await self._attach_checkout_link(payment, user.email)

    async def _attach_checkout_link(self, payment: Payment, email: Optional[str]) -> Payment:
        try:
            link = await self.gateway.create_payment_link(
                payment.amount,
                payment.description or "WellVisit payment",
                reference=payment.public_id,
                email=email,
                metadata={"appointment_id": payment.appointment_id, "payment_method": payment.payment_method},
            )
        except PayMongoError as e:
            self.repo.update(self.db, payment, status="failed")
            logger.error(f"❌ Could not create checkout for payment {payment.id}: {e}")
            raise _gateway_error(e) from e

        payment = self.repo.update(
            self.db,
            payment,
            status="pending",
            checkout_url=link["checkout_url"],
            provider_link_id=link["id"],
        )
        logger.info(f"💳 Checkout created for payment {payment.id} ({payment.amount} {payment.currency})")

        publish_payment_change(payment, ChangeType.INSERT)
        create_payment_notification(
            self.db, payment.patient.user_id, payment.appointment_id, "pending", payment.amount
        )
        return payment

    async def retry_payment(self, user: User, payment_id: int) -> Payment:
        """Fresh checkout link for a failed or abandoned payment"""
        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if user.role != ROLE_PATIENT or user.patient is None or payment.patient_id != user.patient.id:
            raise HTTPException(status_code=403, detail="You do not have access to this payment")
        if payment.status not in ("failed", "pending"):
            raise HTTPException(status_code=400, detail=f"A {payment.status} payment cannot be retried")
        if payment.appointment_id and self.repo.has_paid_payment(self.db, payment.appointment_id):
            raise HTTPException(status_code=409, detail="This appointment has already been paid")
        if not self.gateway.is_available():
            raise HTTPException(status_code=503, detail="Online payments are not configured")

        logger.info(f"🔁 Retrying payment {payment.id}")
        return await self._attach_checkout_link(payment, user.email)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_payment_status(self, user: User, appointment_id: int) -> Payment:
        payment = self.repo.latest_for_appointment(self.db, appointment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="No payment found for this appointment")
        if not is_staff(user):
            owner = user.patient is not None and payment.patient_id == user.patient.id
            treating_doctor = (
                user.doctor is not None
                and payment.appointment is not None
                and payment.appointment.doctor_id == user.doctor.id
            )
            if not (owner or treating_doctor):
                raise HTTPException(status_code=403, detail="You do not have access to this payment")
        return payment

    def list_payments(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> list[Payment]:
        return self.repo.list_all(self.db, status, limit, offset)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def _find_payment(self, resource: dict) -> Optional[Payment]:
        resource_id = resource.get("id")
        if resource_id:
            payment = self.repo.get_by_link_id(self.db, resource_id)
            if payment:
                return payment

        metadata = (resource.get("attributes") or {}).get("metadata") or {}
        reference = metadata.get("reference")
        if reference:
            return self.repo.get_by_public_id(self.db, reference)
        return None

    async def handle_webhook(self, raw_body: bytes) -> dict:
        """Apply a verified PayMongo event to the matching payment"""
        try:
            event = json.loads(raw_body)
        except ValueError as e:
            logger.error(f"❌ Invalid webhook payload: {e}")
            raise HTTPException(status_code=400, detail="Invalid webhook payload") from e

        event_data = event.get("data") or {}
        attributes = event_data.get("attributes") or {}
        event_type = attributes.get("type")
        resource = attributes.get("data") or {}
        logger.info(f"📥 PayMongo event {event_data.get('id')}: {event_type}")

        if event_type not in (PAID_EVENT, FAILED_EVENT):
            return {"received": True, "handled": False}

        payment = self._find_payment(resource)
        if not payment:
            logger.warning(f"⚠️ No payment matches PayMongo resource {resource.get('id')}")
            return {"received": True, "handled": False}

        if payment.status == "paid":
            logger.info(f"Payment {payment.id} already marked paid, ignoring {event_type}")
            return {"received": True, "handled": False, "payment_id": payment.id}

        if event_type == PAID_EVENT:
            link_payments = (resource.get("attributes") or {}).get("payments") or []
            gateway_payment = (link_payments[0].get("data") or {}) if link_payments else {}
            source = ((gateway_payment.get("attributes") or {}).get("source") or {}).get("type")

            payment = self.repo.update(
                self.db,
                payment,
                status="paid",
                payment_date=datetime.utcnow(),
                transaction_ref=gateway_payment.get("id") or event_data.get("id"),
                payment_method=source or payment.payment_method,
            )
            logger.info(f"✅ Payment {payment.id} confirmed via webhook for appointment {payment.appointment_id}")
            publish_payment_change(payment)
            await send_payment_success_notification(self.db, payment)
        else:
            payment = self.repo.update(self.db, payment, status="failed")
            logger.warning(f"⚠️ Payment {payment.id} failed at the gateway")
            publish_payment_change(payment)
            create_payment_notification(
                self.db, payment.patient.user_id, payment.appointment_id, "failed", payment.amount
            )

        return {"received": True, "handled": True, "payment_id": payment.id, "status": payment.status}

    # ------------------------------------------------------------------
    # Front desk
    # ------------------------------------------------------------------

    async def confirm_manual_payment(
        self, payment_id: int, method: str, transaction_ref: Optional[str] = None
    ) -> Payment:
        """Record a cash, bank transfer or insurance payment taken by staff"""
        if method not in MANUAL_PROVIDERS:
            raise HTTPException(
                status_code=400, detail=f"Payment method must be one of {', '.join(MANUAL_PROVIDERS)}"
            )

        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.status == "paid":
            raise HTTPException(status_code=409, detail="This payment is already paid")

        payment = self.repo.update(
            self.db,
            payment,
            status="paid",
            provider=method,
            payment_method=method,
            transaction_ref=transaction_ref or f"MANUAL-{payment.public_id[:8].upper()}",
            payment_date=datetime.utcnow(),
        )
        logger.info(f"✅ Payment {payment.id} confirmed manually ({method})")

        publish_payment_change(payment)
        await send_payment_success_notification(self.db, payment)
        return payment
