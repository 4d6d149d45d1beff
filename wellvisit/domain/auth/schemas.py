"""Auth domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import MIN_PASSWORD_LENGTH
from ...shared.validators import validate_email, validate_ph_phone


class RegisterRequest(BaseModel):
    """Public patient sign up"""

    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_ph_phone(v)
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class UserResponse(BaseModel):
    """Schema for user response"""

    id: int
    email: str
    name: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    profile_id: Optional[int] = None  # patients.id / doctors.id / staff.id for the role

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileUpdate(BaseModel):
    """Fields a user can change on their own account and role profile"""

    name: Optional[str] = None
    phone: Optional[str] = None
    # Patient profile
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    medical_history: Optional[str] = None
    # Doctor profile
    specialty: Optional[str] = None
    bio: Optional[str] = None
    years_of_experience: Optional[int] = None
    # Staff profile
    position: Optional[str] = None
    department: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_ph_phone(v)
        return v


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)
