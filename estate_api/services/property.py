"""
Property service for managing property listings with business logic validation.
Handles CRUD operations, ownership validation, search, view counting and favorites.

Checks always run in the same order: request validation, then existence (404),
then ownership (403). Nothing is written before all three pass.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import UploadFile
from estate_api.repositories.property import PropertyRepository, PropertySearchFilters
from estate_api.models.property import Property
from estate_api.models.image import PropertyImage
from estate_api.models.user import User
from estate_api.schemas.property import PropertyCreate, PropertyUpdate
from estate_api.services.image import ImageService
from estate_api.utils.exceptions import (
    PropertyNotFoundError,
    ValidationError,
    InsufficientPermissionsError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Property service for managing property listings.
    Image files live on disk and are written before the database row and
    removed again when the database write fails.
    """

    def __init__(self, db_session: AsyncSession, image_service: Optional[ImageService] = None):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.image_service = image_service or ImageService()

    async def search_properties(
        self,
        filters: PropertySearchFilters,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """
        Search active listings.

        Returns:
            Tuple of (properties on the requested page, total matches)

        Raises:
            ValidationError: If minPrice is greater than maxPrice
        """
        self._validate_search_filters(filters)
        filters.is_active = True
        return await self.property_repo.search_properties(
            filters, skip=(page - 1) * limit, limit=limit
        )

    async def get_property(
        self,
        property_id: uuid.UUID,
        current_user: Optional[User] = None
    ) -> Tuple[Property, Optional[bool]]:
        """
        Fetch a listing for its detail page and count the view.

        Inactive listings are only visible to their owner and to admins.

        Returns:
            Tuple of (property, is_favorited); is_favorited is None for anonymous callers

        Raises:
            PropertyNotFoundError: If the listing does not exist or is hidden from the caller
        """
        property_obj = await self.property_repo.get_property_with_details(property_id)

        if not property_obj:
            raise PropertyNotFoundError()

        if not property_obj.is_active and not self._can_manage_property(property_obj, current_user):
            raise PropertyNotFoundError()

        await self.property_repo.increment_views(property_id)
        property_obj = await self.property_repo.get_property_with_details(property_id, refresh=True)

        is_favorited = None
        if current_user:
            is_favorited = await self.property_repo.is_favorited(current_user.id, property_id)

        logger.debug(f"Property {property_id} viewed, total views {property_obj.views}")
        return property_obj, is_favorited

    async def create_property(
        self,
        property_data: PropertyCreate,
        current_user: User,
        files: Optional[List[UploadFile]] = None
    ) -> Property:
        """
        Create a new listing owned by the caller.

        Raises:
            InsufficientPermissionsError: If the caller is a buyer
            FileUploadError: If any uploaded image is rejected
        """
        if not current_user.can_publish_listings:
            raise InsufficientPermissionsError("create properties")

        images = await self.image_service.validate_uploads(files)

        property_id = uuid.uuid4()
        create_data = property_data.to_columns()
        create_data["id"] = property_id
        create_data["owner_id"] = current_user.id

        stored = await self.image_service.store_images(property_id, images)
        try:
            property_obj = await self.property_repo.create_property(create_data, stored)
        except Exception:
            self.image_service.discard_stored(property_id, stored)
            raise

        logger.info(
            f"Property created by user {current_user.email}: {property_obj.title} "
            f"(ID: {property_obj.id}, {len(stored)} images)"
        )
        return property_obj

    async def update_property(
        self,
        property_id: uuid.UUID,
        update_data: PropertyUpdate,
        current_user: User,
        existing_images: Optional[List[str]] = None,
        files: Optional[List[UploadFile]] = None
    ) -> Property:
        """
        Partially update a listing.

        Args:
            property_id: Listing to update
            update_data: Supplied fields only; nested objects merge over current values
            current_user: Caller, who must own the listing or be an admin
            existing_images: Ids or urls of the images to keep; None keeps all of them
            files: New images appended after the kept ones

        Raises:
            FileUploadError: If any uploaded image is rejected
            PropertyNotFoundError: If the listing does not exist
            InsufficientPermissionsError: If the caller does not own the listing
        """
        images = await self.image_service.validate_uploads(files)

        property_obj = await self.property_repo.get_property_with_details(property_id)
        if not property_obj:
            raise PropertyNotFoundError()

        if not self._can_manage_property(property_obj, current_user):
            raise InsufficientPermissionsError("update this property")

        removed_images = self._removed_images(property_obj.images, existing_images)

        stored = await self.image_service.store_images(property_id, images)
        try:
            updated = await self.property_repo.update_property(
                property_obj,
                update_data.to_columns(),
                removed_images=removed_images,
                new_images=stored
            )
        except Exception:
            self.image_service.discard_stored(property_id, stored)
            raise

        self.image_service.delete_image_files(property_id, removed_images)

        logger.info(
            f"Property {property_id} updated by user {current_user.email} "
            f"(+{len(stored)} / -{len(removed_images)} images)"
        )
        return updated

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> None:
        """
        Hard-delete a listing with its images and favorites.

        Raises:
            PropertyNotFoundError: If the listing does not exist
            InsufficientPermissionsError: If the caller does not own the listing
        """
        property_obj = await self.property_repo.get_property_with_details(property_id)
        if not property_obj:
            raise PropertyNotFoundError()

        if not self._can_manage_property(property_obj, current_user):
            raise InsufficientPermissionsError("delete this property")

        images = list(property_obj.images)
        await self.property_repo.delete_property(property_obj)
        self.image_service.delete_image_files(property_id, images)

        logger.info(f"Property deleted by user {current_user.email}: {property_id} (with {len(images)} images)")

    async def toggle_favorite(self, property_id: uuid.UUID, current_user: User) -> Tuple[bool, int]:
        """
        Favorite or unfavorite a listing for the caller.

        Returns:
            Tuple of (is_favorited, favorites_count)

        Raises:
            PropertyNotFoundError: If the listing does not exist or is hidden from the caller
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise PropertyNotFoundError()

        if not property_obj.is_active and not self._can_manage_property(property_obj, current_user):
            raise PropertyNotFoundError()

        is_favorited, favorites_count = await self.property_repo.toggle_favorite(current_user.id, property_id)

        logger.info(
            f"User {current_user.email} {'favorited' if is_favorited else 'unfavorited'} property {property_id}"
        )
        return is_favorited, favorites_count

    async def get_my_properties(
        self,
        current_user: User,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """The caller's own listings, active or not, newest first."""
        return await self.property_repo.get_properties_by_owner(
            current_user.id, skip=(page - 1) * limit, limit=limit
        )

    async def get_favorites(
        self,
        current_user: User,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """The caller's favorited active listings, most recently favorited first."""
        return await self.property_repo.get_favorite_properties(
            current_user.id, skip=(page - 1) * limit, limit=limit
        )

    # Permission helpers

    def _can_manage_property(self, property_obj: Property, user: Optional[User]) -> bool:
        return user is not None and user.can_manage_property(property_obj.owner_id)

    def _removed_images(
        self,
        images: List[PropertyImage],
        existing_images: Optional[List[str]]
    ) -> List[PropertyImage]:
        """Images not listed in existing_images, matched by id or url."""
        if existing_images is None:
            return []
        keep = {str(value) for value in existing_images}
        return [image for image in images if str(image.id) not in keep and image.url not in keep]

    def _validate_search_filters(self, filters: PropertySearchFilters) -> None:
        if (
            filters.min_price is not None
            and filters.max_price is not None
            and filters.min_price > filters.max_price
        ):
            raise ValidationError.for_field("minPrice", "minPrice cannot be greater than maxPrice")
