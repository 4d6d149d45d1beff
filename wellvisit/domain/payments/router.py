"""Payment router - checkout, status, PayMongo webhook and front desk payments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ... import config
from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import ROLE_ADMIN, ROLE_PATIENT, ROLE_STAFF, User
from ...webhook_security import verify_paymongo_webhook
from .schemas import (
    AppointmentPaymentRequest,
    CheckoutRequest,
    CheckoutResponse,
    ManualPaymentRequest,
    PaymentCheckoutResponse,
    PaymentResponse,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

patient_only = require_roles(ROLE_PATIENT)
staff_only = require_roles(ROLE_STAFF, ROLE_ADMIN)


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    data: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a PayMongo payment link for an arbitrary amount"""
    return await service.create_checkout(data)


@router.post("/appointments", response_model=PaymentCheckoutResponse, status_code=201)
async def pay_for_appointment(
    data: AppointmentPaymentRequest,
    current_user: User = Depends(patient_only),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a pending payment and return the checkout URL to redirect to"""
    payment = await service.create_appointment_payment(current_user, data.appointment_id, data.payment_method)
    return PaymentCheckoutResponse(payment=PaymentResponse.model_validate(payment), checkout_url=payment.checkout_url)


@router.get("/appointments/{appointment_id}/status", response_model=PaymentResponse)
async def get_payment_status(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.get_payment_status(current_user, appointment_id)


@router.post("/{payment_id}/retry", response_model=PaymentCheckoutResponse)
async def retry_payment(
    payment_id: int,
    current_user: User = Depends(patient_only),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.retry_payment(current_user, payment_id)
    return PaymentCheckoutResponse(payment=PaymentResponse.model_validate(payment), checkout_url=payment.checkout_url)


# ============================================================================
# WEBHOOK
# ============================================================================


@router.post("/webhook")
async def paymongo_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """PayMongo event callback, signature checked before anything is read"""
    _, raw_body = await verify_paymongo_webhook(request, config.PAYMONGO_WEBHOOK_SECRET)
    return await service.handle_webhook(raw_body)


# ============================================================================
# STAFF
# ============================================================================


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(staff_only),
    service: PaymentService = Depends(get_payment_service),
):
    return service.list_payments(status, limit, offset)


@router.post("/{payment_id}/confirm-manual", response_model=PaymentResponse)
async def confirm_manual_payment(
    payment_id: int,
    data: ManualPaymentRequest,
    current_user: User = Depends(staff_only),
    service: PaymentService = Depends(get_payment_service),
):
    """Mark a payment as paid at the front desk (cash, bank transfer, insurance)"""
    logger.info(f"🧾 Staff {current_user.id} confirming payment {payment_id} ({data.method})")
    return await service.confirm_manual_payment(payment_id, data.method, data.transaction_ref)
