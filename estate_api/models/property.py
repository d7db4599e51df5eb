"""
Property model for sale and rental listings.
Handles listing data with location, features, contact details and engagement counters.
"""

from sqlalchemy import (
    String, Text, Integer, Numeric, Boolean, JSON, Enum as SQLEnum, Index, ForeignKey, Uuid,
    select, func, cast
)
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.orm import Mapped, mapped_column, relationship, column_property
from estate_api.database import Base
from estate_api.models.favorite import property_favorites
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_api.models.user import User
    from estate_api.models.image import PropertyImage


class PropertyType(str, enum.Enum):
    """Kind of building or lot being listed."""
    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LAND = "land"
    COMMERCIAL = "commercial"
    OTHER = "other"


class ListingType(str, enum.Enum):
    """Whether the property is offered for sale or for rent."""
    SALE = "sale"
    RENT = "rent"


class PropertyStatus(str, enum.Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    PENDING = "pending"


class ParkingType(str, enum.Enum):
    NONE = "none"
    STREET = "street"
    GARAGE = "garage"
    COVERED = "covered"


class PreferredContact(str, enum.Enum):
    PHONE = "phone"
    EMAIL = "email"
    BOTH = "both"


class Amenity(str, enum.Enum):
    """Amenities a listing may advertise."""
    POOL = "pool"
    GARDEN = "garden"
    BALCONY = "balcony"
    FIREPLACE = "fireplace"
    CENTRAL_HEATING = "central-heating"
    AIR_CONDITIONING = "air-conditioning"
    DISHWASHER = "dishwasher"
    WASHER_DRYER = "washer-dryer"
    GYM = "gym"
    SECURITY_SYSTEM = "security-system"
    ELEVATOR = "elevator"
    FURNISHED = "furnished"
    PET_FRIENDLY = "pet-friendly"


class Property(Base):
    """
    Property model for managing sale and rental listings.
    Location, features and contact details are stored as flat columns and
    exposed as nested objects through to_dict().
    """

    __tablename__ = "properties"

    # Basic listing information
    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Property listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Detailed property description"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=False,
        index=True,
        comment="Asking price or monthly rent"
    )

    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        index=True
    )

    listing_type: Mapped[ListingType] = mapped_column(
        SQLEnum(ListingType),
        nullable=False,
        index=True
    )

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus),
        nullable=False,
        default=PropertyStatus.AVAILABLE
    )

    # Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="USA")
    latitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=10, scale=7), nullable=True)
    longitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=10, scale=7), nullable=True)

    # Features
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    bathrooms: Mapped[Decimal] = mapped_column(Numeric(precision=4, scale=1), nullable=False, default=0)
    square_feet: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    parking: Mapped[ParkingType] = mapped_column(
        SQLEnum(ParkingType),
        nullable=False,
        default=ParkingType.NONE
    )
    amenities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Contact details
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    preferred_contact: Mapped[PreferredContact] = mapped_column(
        SQLEnum(PreferredContact),
        nullable=False,
        default=PreferredContact.BOTH
    )

    # Engagement and flags
    views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Number of detail page reads"
    )

    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether the listing is publicly visible"
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who published the listing"
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="properties",
        lazy="selectin"
    )

    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyImage.display_order.asc()"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}..., price={self.price})>"

    @property
    def primary_image(self) -> Optional["PropertyImage"]:
        """Get the primary image, falling back to the first image."""
        for image in self.images:
            if image.is_primary:
                return image
        return self.images[0] if self.images else None

    @property
    def primary_image_url(self) -> str:
        image = self.primary_image
        return image.url if image else ""

    @property
    def location(self) -> dict:
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = {"lat": float(self.latitude), "lng": float(self.longitude)}
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "coordinates": coordinates,
        }

    @property
    def features(self) -> dict:
        return {
            "bedrooms": self.bedrooms,
            "bathrooms": float(self.bathrooms) if self.bathrooms is not None else 0,
            "square_feet": self.square_feet,
            "year_built": self.year_built,
            "parking": self.parking.value if self.parking else ParkingType.NONE.value,
            "amenities": list(self.amenities or []),
        }

    @property
    def contact_info(self) -> dict:
        return {
            "phone": self.contact_phone,
            "email": self.contact_email,
            "preferred_contact": self.preferred_contact.value if self.preferred_contact else None,
        }

    def to_dict(self, include_owner: bool = True, include_images: bool = True) -> dict:
        """
        Convert property to the nested dictionary shape used by API responses.

        Args:
            include_owner: Whether to include a summary of the owner
            include_images: Whether to include image information

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "price": float(self.price),
            "property_type": self.property_type.value,
            "listing_type": self.listing_type.value,
            "status": self.status.value,
            "location": self.location,
            "features": self.features,
            "contact_info": self.contact_info,
            "views": self.views,
            "favorites_count": self.favorites_count or 0,
            "is_featured": self.is_featured,
            "is_active": self.is_active,
            "owner_id": str(self.owner_id),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_owner and self.owner:
            result["owner"] = {
                "id": str(self.owner.id),
                "name": self.owner.name,
                "email": self.owner.email,
                "phone": self.owner.phone,
                "avatar": self.owner.avatar,
            }

        if include_images:
            result["images"] = [image.to_dict() for image in self.images]
            result["primary_image"] = self.primary_image_url

        return result


# Number of users who favorited the listing, loaded with every query
Property.favorites_count = column_property(
    select(func.count(property_favorites.c.user_id))
    .where(property_favorites.c.property_id == Property.id)
    .correlate_except(property_favorites)
    .scalar_subquery()
)


def search_document():
    """Text searched by the free-text filter: title, description, city and state."""
    return (
        func.coalesce(Property.title, "") + " "
        + func.coalesce(Property.description, "") + " "
        + func.coalesce(Property.city, "") + " "
        + func.coalesce(Property.state, "")
    )


def search_vector():
    """PostgreSQL tsvector over the searchable listing text."""
    return func.to_tsvector(cast("english", REGCONFIG), search_document())


# Database indexes for the public listing query

type_active_index = Index(
    "idx_properties_type_active",
    Property.property_type,
    Property.listing_type,
    Property.is_active,
    Property.created_at.desc()
)

price_active_index = Index(
    "idx_properties_price_active",
    Property.price,
    Property.is_active
)

owner_created_index = Index(
    "idx_properties_owner_created",
    Property.owner_id,
    Property.created_at.desc()
)

full_text_index = Index(
    "idx_properties_full_text",
    search_vector(),
    postgresql_using="gin"
).ddl_if(dialect="postgresql")
