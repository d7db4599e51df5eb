"""
Pydantic schemas for user profiles and role changes.
"""

from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import uuid

from estate_api.models.user import UserRole, SellerExperience, BudgetRange
from estate_api.models.property import PropertyType
from estate_api.schemas.common import CamelModel


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


class BuyerPreferences(CamelModel):
    """Profile fields that only apply to buyers."""

    preferred_property_type: Optional[PropertyType] = Field(None, description="Property type the buyer is looking for")
    budget_range: Optional[BudgetRange] = Field(None, description="Budget bracket")
    preferred_location: Optional[str] = Field(None, max_length=100, description="Preferred city or area")


class SellerProfile(CamelModel):
    """Profile fields that only apply to sellers."""

    company_name: Optional[str] = Field(None, max_length=100, description="Agency or company name")
    license_number: Optional[str] = Field(None, max_length=50, description="Real-estate license number")
    experience: Optional[SellerExperience] = Field(None, description="Experience level")
    specialization: Optional[str] = Field(None, max_length=100, description="Market specialization")


class UserResponse(CamelModel):
    """User response schema (excluding sensitive data)."""

    id: uuid.UUID
    name: str
    email: EmailStr
    role: UserRole
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    preferred_property_type: Optional[str] = None
    budget_range: Optional[BudgetRange] = None
    preferred_location: Optional[str] = None
    company_name: Optional[str] = None
    license_number: Optional[str] = None
    experience: Optional[SellerExperience] = None
    specialization: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileUpdate(BuyerPreferences, SellerProfile):
    """
    Partial profile update. Only fields present in the request are applied;
    buyer and seller fields are applied according to the caller's role.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=50, description="Display name")
    email: Optional[EmailStr] = Field(None, description="New email address")
    phone: Optional[str] = Field(None, min_length=10, max_length=15, description="Contact phone number")
    avatar: Optional[str] = Field(None, max_length=500, description="Avatar image URL")

    @field_validator("name", "phone", "preferred_location", "company_name", "license_number", "specialization",
                     mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v) if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip() if v else v


class RoleUpdateRequest(CamelModel):
    """Switch between buyer and seller."""

    role: UserRole = Field(..., description="New role: buyer or seller")

    @field_validator("role")
    @classmethod
    def reject_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Role must be either buyer or seller")
        return v
