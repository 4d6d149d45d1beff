"""Clinic catalog schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: int = Field(30, gt=0)
    price: float = Field(0.0, ge=0)
    is_available: bool = True
    popular: bool = False
    display_order: int = 0


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    price: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None
    status: Optional[str] = None
    popular: Optional[bool] = None
    display_order: Optional[int] = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    price: float
    is_available: bool
    status: str
    popular: Optional[bool] = False
    display_order: Optional[int] = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PackageResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    original_price: float
    package_price: float
    savings: float
    popular: Optional[bool] = False

    class Config:
        from_attributes = True
