"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ONLINE_PAYMENT_METHODS = ("gcash", "paymaya", "grab_pay", "card", "dob")
MANUAL_PROVIDERS = ("cash", "bank_transfer", "insurance")


class CheckoutRequest(BaseModel):
    """Ad-hoc checkout link"""

    amount: float
    description: str = ""
    email: Optional[str] = None
    reference: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str
    id: Optional[str] = None


class AppointmentPaymentRequest(BaseModel):
    appointment_id: int
    payment_method: Optional[str] = None  # gcash, card, paymaya ...

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v):
        if v and v not in ONLINE_PAYMENT_METHODS:
            raise ValueError(f"payment_method must be one of {', '.join(ONLINE_PAYMENT_METHODS)}")
        return v


class ManualPaymentRequest(BaseModel):
    """Payment received at the front desk"""

    method: str = Field(description="cash, bank_transfer or insurance")
    transaction_ref: Optional[str] = None


class PaymentResponse(BaseModel):
    """Schema for payment response"""

    id: int
    public_id: Optional[str] = None
    appointment_id: Optional[int] = None
    patient_id: int
    amount: float
    processing_fee: float
    currency: str
    status: str
    provider: str
    payment_method: Optional[str] = None
    description: Optional[str] = None
    checkout_url: Optional[str] = None
    transaction_ref: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentCheckoutResponse(BaseModel):
    payment: PaymentResponse
    checkout_url: str
