"""
Service layer for business logic implementation.
Contains services for authentication, listings, image storage and error handling.
"""

from .auth import AuthService
from .image import ImageService
from .property import PropertyService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ImageService",
    "PropertyService",
    "ErrorHandlerService"
]
