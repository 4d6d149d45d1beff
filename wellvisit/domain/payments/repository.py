"""Payment repository - Database operations for payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_id(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.public_id == public_id).first()

    @staticmethod
    def get_by_link_id(db: Session, link_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.provider_link_id == link_id).first()

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def latest_for_appointment(db: Session, appointment_id: int) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.appointment_id == appointment_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def has_paid_payment(db: Session, appointment_id: int) -> bool:
        return (
            db.query(Payment.id)
            .filter(Payment.appointment_id == appointment_id, Payment.status == "paid")
            .first()
            is not None
        )

    @staticmethod
    def list_all(db: Session, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> list[Payment]:
        query = db.query(Payment)
        if status:
            query = query.filter(Payment.status == status)
        return query.order_by(Payment.created_at.desc(), Payment.id.desc()).offset(offset).limit(limit).all()

    @staticmethod
    def create(db: Session, **fields) -> Payment:
        payment = Payment(**fields)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def update(db: Session, payment: Payment, **updates) -> Payment:
        for key, value in updates.items():
            setattr(payment, key, value)
        db.commit()
        db.refresh(payment)
        return payment
