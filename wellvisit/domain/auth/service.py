"""Auth service - Registration, login and account management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import create_access_token
from ...models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF, User
from ...security_utils import hash_password, verify_password
from ...services.notification_service import create_system_notification
from .repository import UserRepository
from .schemas import ChangePasswordRequest, ProfileUpdate, RegisterRequest, UserResponse

logger = logging.getLogger(__name__)

PATIENT_PROFILE_FIELDS = ("date_of_birth", "gender", "address", "emergency_contact", "medical_history")
DOCTOR_PROFILE_FIELDS = ("specialty", "bio", "years_of_experience")
STAFF_PROFILE_FIELDS = ("position", "department")


def role_profile(user: User):
    """The patient/doctor/staff row attached to a user, if any"""
    if user.role == ROLE_PATIENT:
        return user.patient
    if user.role == ROLE_DOCTOR:
        return user.doctor
    if user.role == ROLE_STAFF:
        return user.staff
    return None


def to_user_response(user: User) -> UserResponse:
    profile = role_profile(user)
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        profile_id=profile.id if profile else None,
    )


class AuthService:
    """Service layer for authentication"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def create_account(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        phone: Optional[str] = None,
        profile: Optional[dict] = None,
    ) -> User:
        """Create a user of any role, rejecting duplicate emails"""
        if role not in (ROLE_PATIENT, ROLE_DOCTOR, ROLE_STAFF, ROLE_ADMIN):
            raise HTTPException(status_code=400, detail=f"Invalid role: {role}")

        if self.repo.get_by_email(self.db, email):
            logger.warning(f"⚠️ Registration rejected, email already in use: {email}")
            raise HTTPException(status_code=409, detail="An account with this email already exists")

        user = self.repo.create_user(
            self.db,
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
            phone=phone,
            profile=profile,
        )
        logger.info(f"✅ New {role} account created: {user.email}")
        return user

    def register(self, data: RegisterRequest) -> tuple[User, str]:
        """Public sign up always creates a patient"""
        user = self.create_account(
            email=data.email,
            password=data.password,
            name=data.name,
            role=ROLE_PATIENT,
            phone=data.phone,
            profile={
                "date_of_birth": data.date_of_birth,
                "gender": data.gender,
                "address": data.address,
                "emergency_contact": data.emergency_contact,
            },
        )
        return user, create_access_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self.repo.get_by_email(self.db, email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"🔒 Failed login attempt for {email}")
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not user.is_active:
            raise HTTPException(status_code=403, detail="This account has been deactivated")

        logger.info(f"✅ User logged in: {user.email} ({user.role})")
        return user, create_access_token(user)

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        self.repo.update_user(self.db, user, name=data.name, phone=data.phone)

        profile = role_profile(user)
        if profile is not None:
            fields = {
                ROLE_PATIENT: PATIENT_PROFILE_FIELDS,
                ROLE_DOCTOR: DOCTOR_PROFILE_FIELDS,
                ROLE_STAFF: STAFF_PROFILE_FIELDS,
            }[user.role]
            self.repo.update_profile(self.db, profile, **{f: getattr(data, f) for f in fields})

        self.db.refresh(user)
        return user

    def change_password(self, user: User, data: ChangePasswordRequest) -> dict:
        if not verify_password(data.current_password, user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        self.repo.update_user(self.db, user, password_hash=hash_password(data.new_password))
        logger.info(f"🔑 Password changed for user {user.id}")
        create_system_notification(
            self.db,
            user.id,
            "Password Changed",
            "Your account password was changed. If this wasn't you, contact the clinic right away.",
            priority="high",
        )
        return {"message": "Password updated successfully"}
