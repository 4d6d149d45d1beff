"""User repository - Database operations for accounts and role profiles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF, Doctor, Patient, Staff, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password_hash: str,
        name: str,
        role: str,
        phone: Optional[str] = None,
        profile: Optional[dict] = None,
    ) -> User:
        """Create a user together with the profile row of its role"""
        user = User(email=email, password_hash=password_hash, name=name, role=role, phone=phone)
        db.add(user)
        db.flush()

        profile = profile or {}
        if role == ROLE_PATIENT:
            db.add(Patient(user_id=user.id, **profile))
        elif role == ROLE_DOCTOR:
            db.add(Doctor(user_id=user.id, **profile))
        elif role == ROLE_STAFF:
            db.add(Staff(user_id=user.id, **profile))

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Update a user with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_profile(db: Session, profile, **updates) -> None:
        for key, value in updates.items():
            if value is not None and hasattr(profile, key):
                setattr(profile, key, value)
        db.commit()
