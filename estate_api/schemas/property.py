"""
Pydantic schemas for property requests and responses.
Listing input arrives nested (location, features, contactInfo) and is flattened
into table columns; responses are nested again from Property.to_dict().
"""

from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, date
from decimal import Decimal
import uuid

from estate_api.models.property import (
    PropertyType,
    ListingType,
    PropertyStatus,
    ParkingType,
    PreferredContact,
    Amenity,
)
from estate_api.schemas.common import CamelModel, PaginatedResponse
from estate_api.schemas.image import PropertyImageResponse

MAX_YEAR_BUILT = date.today().year + 5


def _strip_required(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value.strip()


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")


class LocationInput(CamelModel):
    """Listing address."""

    address: str = Field(..., max_length=255, description="Street address")
    city: str = Field(..., max_length=100, description="City")
    state: str = Field(..., max_length=100, description="State")
    zip_code: str = Field(..., max_length=20, description="ZIP code")
    country: str = Field("USA", max_length=100, description="Country")
    coordinates: Optional[Coordinates] = None

    @field_validator("address", "city", "state", "zip_code", "country")
    @classmethod
    def strip_values(cls, v, info):
        return _strip_required(v, info.field_name)


class LocationUpdate(CamelModel):
    """Partial address update; omitted fields keep their current value."""

    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    coordinates: Optional[Coordinates] = None


class FeaturesInput(CamelModel):
    """Physical features of the property."""

    bedrooms: int = Field(0, ge=0, le=100, description="Number of bedrooms")
    bathrooms: float = Field(0, ge=0, le=100, description="Number of bathrooms")
    square_feet: Optional[int] = Field(None, ge=0, description="Living area in square feet")
    year_built: Optional[int] = Field(None, ge=1600, le=MAX_YEAR_BUILT, description="Year of construction")
    parking: ParkingType = Field(ParkingType.NONE, description="Parking availability")
    amenities: List[Amenity] = Field(default_factory=list, description="Advertised amenities")

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, v):
        return list(dict.fromkeys(v))


class FeaturesUpdate(CamelModel):
    bedrooms: Optional[int] = Field(None, ge=0, le=100)
    bathrooms: Optional[float] = Field(None, ge=0, le=100)
    square_feet: Optional[int] = Field(None, ge=0)
    year_built: Optional[int] = Field(None, ge=1600, le=MAX_YEAR_BUILT)
    parking: Optional[ParkingType] = None
    amenities: Optional[List[Amenity]] = None

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, v):
        return list(dict.fromkeys(v)) if v is not None else v


class ContactInfoInput(CamelModel):
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    preferred_contact: PreferredContact = PreferredContact.BOTH


class ContactInfoUpdate(CamelModel):
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    preferred_contact: Optional[PreferredContact] = None


def _location_columns(location: Dict[str, Any]) -> Dict[str, Any]:
    columns = {key: value for key, value in location.items() if key != "coordinates"}
    if "coordinates" in location:
        coordinates = location["coordinates"]
        columns["latitude"] = Decimal(str(coordinates["lat"])) if coordinates else None
        columns["longitude"] = Decimal(str(coordinates["lng"])) if coordinates else None
    return columns


def _features_columns(features: Dict[str, Any]) -> Dict[str, Any]:
    columns = dict(features)
    if columns.get("bathrooms") is not None:
        columns["bathrooms"] = Decimal(str(columns["bathrooms"]))
    if columns.get("amenities") is not None:
        columns["amenities"] = [Amenity(a).value for a in columns["amenities"]]
    return columns


def _contact_columns(contact: Dict[str, Any]) -> Dict[str, Any]:
    mapping = {"phone": "contact_phone", "email": "contact_email", "preferred_contact": "preferred_contact"}
    return {mapping[key]: value for key, value in contact.items()}


class PropertyCreate(CamelModel):
    """Schema for creating a new property. Any owner supplied by the client is ignored."""

    title: str = Field(..., min_length=5, max_length=100, description="Listing title")
    description: str = Field(..., min_length=1, max_length=2000, description="Listing description")
    price: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2, description="Asking price or monthly rent")
    property_type: PropertyType = Field(..., description="Kind of property")
    listing_type: ListingType = Field(..., description="sale or rent")
    status: PropertyStatus = Field(PropertyStatus.AVAILABLE, description="Availability status")
    is_featured: bool = Field(False, description="Highlight the listing")
    location: LocationInput
    features: FeaturesInput = Field(default_factory=FeaturesInput)
    contact_info: ContactInfoInput = Field(default_factory=ContactInfoInput)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v, info):
        return _strip_required(v, info.field_name.capitalize()) if isinstance(v, str) else v

    def to_columns(self) -> Dict[str, Any]:
        """Flatten into Property column values."""
        data = self.model_dump(exclude={"location", "features", "contact_info"})
        data.update(_location_columns(self.location.model_dump()))
        data.update(_features_columns(self.features.model_dump()))
        data.update(_contact_columns(self.contact_info.model_dump()))
        return data


class PropertyUpdate(CamelModel):
    """Schema for updating an existing property. Only supplied fields change."""

    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    property_type: Optional[PropertyType] = None
    listing_type: Optional[ListingType] = None
    status: Optional[PropertyStatus] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    location: Optional[LocationUpdate] = None
    features: Optional[FeaturesUpdate] = None
    contact_info: Optional[ContactInfoUpdate] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v, info):
        return _strip_required(v, info.field_name.capitalize()) if isinstance(v, str) else v

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        """Required columns cannot be cleared by sending null."""
        required = {"title", "description", "price", "property_type", "listing_type", "status",
                    "is_featured", "is_active"}
        for field in required & self.model_fields_set:
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def to_columns(self) -> Dict[str, Any]:
        """Flatten the supplied fields into Property column values."""
        scalar_fields = self.model_fields_set - {"location", "features", "contact_info"}
        data = self.model_dump(include=scalar_fields)
        if self.location is not None:
            data.update(_location_columns(self.location.model_dump(exclude_unset=True)))
        if self.features is not None:
            data.update(_features_columns(self.features.model_dump(exclude_unset=True)))
        if self.contact_info is not None:
            data.update(_contact_columns(self.contact_info.model_dump(exclude_unset=True)))
        return data


class LocationResponse(CamelModel):
    address: str
    city: str
    state: str
    zip_code: str
    country: str
    coordinates: Optional[Coordinates] = None


class FeaturesResponse(CamelModel):
    bedrooms: int
    bathrooms: float
    square_feet: Optional[int] = None
    year_built: Optional[int] = None
    parking: ParkingType
    amenities: List[str]


class ContactInfoResponse(CamelModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    preferred_contact: Optional[PreferredContact] = None


class OwnerSummary(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    avatar: Optional[str] = None


class PropertyResponse(CamelModel):
    """Full listing as returned by the API."""

    id: uuid.UUID
    title: str
    description: str
    price: float
    property_type: PropertyType
    listing_type: ListingType
    status: PropertyStatus
    location: LocationResponse
    features: FeaturesResponse
    contact_info: ContactInfoResponse
    images: List[PropertyImageResponse] = []
    primary_image: str = Field("", description="URL of the primary image, or empty")
    owner: Optional[OwnerSummary] = None
    owner_id: uuid.UUID
    views: int
    favorites_count: int
    is_favorited: Optional[bool] = Field(None, description="Set when the caller is authenticated")
    is_featured: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


PropertyListResponse = PaginatedResponse[PropertyResponse]


class FavoriteToggleData(CamelModel):
    """Result of toggling a favorite."""

    is_favorited: bool
    favorites_count: int
