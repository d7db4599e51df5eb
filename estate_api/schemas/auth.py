"""
Pydantic schemas for authentication requests and responses.
Handles registration, login and token refresh payloads.
"""

from pydantic import EmailStr, Field, field_validator
from typing import Optional

from estate_api.models.user import UserRole, MIN_PASSWORD_LENGTH
from estate_api.schemas.common import CamelModel
from estate_api.schemas.user import UserResponse, BuyerPreferences, SellerProfile


class RegisterRequest(BuyerPreferences, SellerProfile):
    """Registration request schema."""

    name: str = Field(
        ...,
        min_length=2,
        max_length=50,
        description="Display name",
        examples=["Jane Doe"]
    )
    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["jane@example.com"]
    )
    password: str = Field(
        ...,
        min_length=MIN_PASSWORD_LENGTH,
        max_length=72,
        description=f"Password (minimum {MIN_PASSWORD_LENGTH} characters)"
    )
    role: Optional[UserRole] = Field(
        None,
        description="buyer (default) or seller"
    )
    phone: Optional[str] = Field(None, min_length=10, max_length=15)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("role")
    @classmethod
    def reject_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Role must be either buyer or seller")
        return v


class LoginRequest(CamelModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()


class AuthData(UserResponse):
    """User record plus freshly issued tokens."""

    token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshTokenRequest(CamelModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., description="Valid refresh token")


class AccessTokenData(CamelModel):
    """New access token issued from a refresh token."""

    token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
