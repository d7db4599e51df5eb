"""
Pydantic schemas for request/response validation.
"""

# Shared envelope and pagination
from .common import ApiResponse, MessageResponse, Pagination, PaginatedResponse

# Authentication schemas
from .auth import (
    RegisterRequest,
    LoginRequest,
    AuthData,
    RefreshTokenRequest,
    AccessTokenData
)

# User schemas
from .user import (
    BuyerPreferences,
    SellerProfile,
    UserResponse,
    ProfileUpdate,
    RoleUpdateRequest
)

# Property schemas
from .property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    FavoriteToggleData
)

# Image schemas
from .image import PropertyImageResponse

__all__ = [
    # Envelope
    "ApiResponse",
    "MessageResponse",
    "Pagination",
    "PaginatedResponse",

    # Authentication
    "RegisterRequest",
    "LoginRequest",
    "AuthData",
    "RefreshTokenRequest",
    "AccessTokenData",

    # User
    "BuyerPreferences",
    "SellerProfile",
    "UserResponse",
    "ProfileUpdate",
    "RoleUpdateRequest",

    # Property
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyListResponse",
    "FavoriteToggleData",

    # Image
    "PropertyImageResponse"
]
