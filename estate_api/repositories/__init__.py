"""
Repository layer for data access operations.
Each write commits on success and rolls back before re-raising on failure.
"""

from estate_api.repositories.base import BaseRepository
from estate_api.repositories.property import PropertyRepository, PropertySearchFilters
from estate_api.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "PropertyRepository",
    "PropertySearchFilters",
    "UserRepository"
]
