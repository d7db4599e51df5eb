"""
Database models for the Estate Marketplace API.
Includes User, Property and PropertyImage models plus the favorites association table.
"""

from estate_api.models.user import User, UserRole, SellerExperience, BudgetRange
from estate_api.models.favorite import property_favorites
from estate_api.models.property import (
    Property,
    PropertyType,
    ListingType,
    PropertyStatus,
    ParkingType,
    PreferredContact,
    Amenity,
)
from estate_api.models.image import PropertyImage

__all__ = [
    "User",
    "UserRole",
    "SellerExperience",
    "BudgetRange",
    "Property",
    "PropertyType",
    "ListingType",
    "PropertyStatus",
    "ParkingType",
    "PreferredContact",
    "Amenity",
    "PropertyImage",
    "property_favorites",
]
