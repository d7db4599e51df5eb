"""
Property repository for listing search, persistence and engagement counters.
View counts and favorites are changed with single atomic statements so that
concurrent requests cannot lose updates.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, insert, and_, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from estate_api.repositories.base import BaseRepository
from estate_api.models.property import Property, PropertyType, ListingType, search_vector
from estate_api.models.image import PropertyImage
from estate_api.models.favorite import property_favorites
from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertySearchFilters:
    """Filters accepted by the public listing query."""

    def __init__(
        self,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        property_type: Optional[PropertyType] = None,
        listing_type: Optional[ListingType] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        bedrooms: Optional[int] = None,
        bathrooms: Optional[Decimal] = None,
        search: Optional[str] = None,
        owner_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = True
    ):
        self.min_price = min_price
        self.max_price = max_price
        self.property_type = property_type
        self.listing_type = listing_type
        self.city = city
        self.state = state
        self.bedrooms = bedrooms
        self.bathrooms = bathrooms
        self.search = search
        self.owner_id = owner_id
        self.is_active = is_active


def _like_pattern(value: str) -> str:
    """Build a substring LIKE pattern with wildcards in the value escaped."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PropertyRepository(BaseRepository[Property]):
    """Repository for property listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def create_property(
        self,
        property_data: Dict[str, Any],
        images: Optional[List[Dict[str, Any]]] = None
    ) -> Property:
        """
        Create a new property together with its images.

        Args:
            property_data: Column values for the property
            images: Column values for each uploaded image, in upload order

        Returns:
            Created property with owner and images loaded
        """
        try:
            property_obj = Property(**property_data)
            for position, image_data in enumerate(images or []):
                property_obj.images.append(
                    PropertyImage(**image_data, display_order=position, is_primary=position == 0)
                )

            self.db.add(property_obj)
            await self.db.commit()

            logger.info(f"Created property: {property_obj.title} (ID: {property_obj.id})")
            return await self.get_property_with_details(property_obj.id, refresh=True)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create property: {e}")
            raise

    async def get_property_with_details(
        self,
        property_id: uuid.UUID,
        refresh: bool = False
    ) -> Optional[Property]:
        """
        Get property with owner and images eagerly loaded.

        Args:
            property_id: UUID of the property
            refresh: Reload column values even if the object is already in the session

        Returns:
            Property instance or None if not found
        """
        try:
            query = (
                select(Property)
                .options(selectinload(Property.owner), selectinload(Property.images))
                .where(Property.id == property_id)
            )
            if refresh:
                query = query.execution_options(populate_existing=True)

            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get property with details {property_id}: {e}")
            raise

    async def search_properties(
        self,
        filters: PropertySearchFilters,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """
        Search properties and count every match.

        Args:
            filters: Search filters
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (properties page, total matching count)
        """
        try:
            conditions = self._build_filter_conditions(filters)

            count_query = select(func.count(Property.id))
            if conditions:
                count_query = count_query.where(and_(*conditions))
            total_count = (await self.db.execute(count_query)).scalar() or 0

            query = select(Property).options(
                selectinload(Property.owner),
                selectinload(Property.images)
            )
            if conditions:
                query = query.where(and_(*conditions))

            query = (
                query.order_by(Property.created_at.desc(), Property.id.desc())
                .offset(skip)
                .limit(limit)
            )

            result = await self.db.execute(query)
            properties = list(result.scalars().all())

            logger.debug(f"Property search returned {len(properties)} of {total_count} results")
            return properties, total_count
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    def _build_filter_conditions(self, filters: PropertySearchFilters) -> List:
        """
        Build the WHERE conditions for a search. Bounds that were not supplied
        produce no condition at all.
        """
        conditions = []

        if filters.is_active is not None:
            conditions.append(Property.is_active == filters.is_active)

        if filters.owner_id is not None:
            conditions.append(Property.owner_id == filters.owner_id)

        if filters.min_price is not None:
            conditions.append(Property.price >= filters.min_price)

        if filters.max_price is not None:
            conditions.append(Property.price <= filters.max_price)

        if filters.property_type is not None:
            conditions.append(Property.property_type == filters.property_type)

        if filters.listing_type is not None:
            conditions.append(Property.listing_type == filters.listing_type)

        if filters.city:
            conditions.append(Property.city.ilike(_like_pattern(filters.city), escape="\\"))

        if filters.state:
            conditions.append(Property.state.ilike(_like_pattern(filters.state), escape="\\"))

        if filters.bedrooms is not None:
            conditions.append(Property.bedrooms >= filters.bedrooms)

        if filters.bathrooms is not None:
            conditions.append(Property.bathrooms >= filters.bathrooms)

        if filters.search and filters.search.strip():
            conditions.append(self._text_search_condition(filters.search.strip()))

        return conditions

    def _text_search_condition(self, search: str):
        """
        Full-text match over title, description, city and state.
        PostgreSQL uses the tsvector index; other backends require every word
        to appear in at least one of the searched columns.
        """
        if self.db.get_bind().dialect.name == "postgresql":
            return search_vector().bool_op("@@")(func.plainto_tsquery("english", search))

        word_conditions = []
        for word in search.split():
            pattern = _like_pattern(word)
            word_conditions.append(or_(
                Property.title.ilike(pattern, escape="\\"),
                Property.description.ilike(pattern, escape="\\"),
                Property.city.ilike(pattern, escape="\\"),
                Property.state.ilike(pattern, escape="\\"),
            ))
        return and_(*word_conditions)

    async def get_properties_by_owner(
        self,
        owner_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """Get all of an owner's listings, active or not, newest first."""
        return await self.search_properties(
            PropertySearchFilters(owner_id=owner_id, is_active=None),
            skip=skip,
            limit=limit
        )

    async def get_favorite_properties(
        self,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Property], int]:
        """Get the active listings a user favorited, most recently favorited first."""
        try:
            conditions = [
                property_favorites.c.user_id == user_id,
                Property.is_active.is_(True),
            ]

            count_query = (
                select(func.count(Property.id))
                .join(property_favorites, property_favorites.c.property_id == Property.id)
                .where(*conditions)
            )
            total_count = (await self.db.execute(count_query)).scalar() or 0

            query = (
                select(Property)
                .join(property_favorites, property_favorites.c.property_id == Property.id)
                .options(selectinload(Property.owner), selectinload(Property.images))
                .where(*conditions)
                .order_by(property_favorites.c.created_at.desc(), Property.id.desc())
                .offset(skip)
                .limit(limit)
            )
            result = await self.db.execute(query)
            return list(result.scalars().all()), total_count
        except Exception as e:
            logger.error(f"Failed to get favorite properties for user {user_id}: {e}")
            raise

    async def increment_views(self, property_id: uuid.UUID) -> bool:
        """
        Atomically add one to the view counter.

        Returns:
            True if the property exists
        """
        try:
            stmt = (
                update(Property)
                .where(Property.id == property_id)
                # Keep updated_at unchanged: a read is not an edit
                .values(views=Property.views + 1, updated_at=Property.updated_at)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount > 0
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to increment views for property {property_id}: {e}")
            raise

    async def toggle_favorite(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Tuple[bool, int]:
        """
        Add or remove a user's favorite on a property.

        The existing row is deleted first; only when nothing was deleted is a
        row inserted. A concurrent insert that wins the race leaves the
        property favorited, which is the state this call was asking for.

        Returns:
            Tuple of (is_favorited, favorites_count)
        """
        try:
            match = and_(
                property_favorites.c.user_id == user_id,
                property_favorites.c.property_id == property_id
            )
            result = await self.db.execute(delete(property_favorites).where(match))

            if result.rowcount > 0:
                is_favorited = False
                await self.db.commit()
            else:
                is_favorited = True
                try:
                    await self.db.execute(
                        insert(property_favorites).values(user_id=user_id, property_id=property_id)
                    )
                    await self.db.commit()
                except IntegrityError:
                    await self.db.rollback()
                    logger.debug(f"Favorite {user_id}/{property_id} was inserted concurrently")

            favorites_count = await self.count_favorites(property_id)
            return is_favorited, favorites_count
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to toggle favorite for property {property_id}: {e}")
            raise

    async def count_favorites(self, property_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(property_favorites).where(
            property_favorites.c.property_id == property_id
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def is_favorited(self, user_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        query = select(func.count()).select_from(property_favorites).where(
            property_favorites.c.user_id == user_id,
            property_favorites.c.property_id == property_id
        )
        result = await self.db.execute(query)
        return (result.scalar() or 0) > 0

    async def update_property(
        self,
        property_obj: Property,
        update_data: Dict[str, Any],
        removed_images: Optional[List[PropertyImage]] = None,
        new_images: Optional[List[Dict[str, Any]]] = None
    ) -> Property:
        """
        Apply field changes and image changes to a loaded property.

        Removed images are deleted, new images are appended after the
        surviving ones, and the first image becomes primary when no surviving
        image is.

        Returns:
            Updated property with owner and images reloaded
        """
        try:
            for field, value in update_data.items():
                setattr(property_obj, field, value)

            for image in removed_images or []:
                property_obj.images.remove(image)

            for image_data in new_images or []:
                property_obj.images.append(PropertyImage(**image_data))

            for position, image in enumerate(property_obj.images):
                image.display_order = position
            if property_obj.images and not any(image.is_primary for image in property_obj.images):
                property_obj.images[0].is_primary = True

            await self.db.commit()

            logger.info(f"Updated property {property_obj.id}")
            return await self.get_property_with_details(property_obj.id, refresh=True)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update property {property_obj.id}: {e}")
            raise

    async def delete_property(self, property_obj: Property) -> None:
        """Hard-delete a property along with its images and favorite rows."""
        try:
            await self.db.execute(
                delete(property_favorites).where(property_favorites.c.property_id == property_obj.id)
            )
            await self.db.delete(property_obj)
            await self.db.commit()
            logger.info(f"Deleted property {property_obj.id}")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete property {property_obj.id}: {e}")
            raise
