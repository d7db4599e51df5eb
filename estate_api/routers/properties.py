"""
Property management API endpoints for CRUD operations, search, and filtering.
Listings are created and updated with multipart forms so images travel with the fields.
"""

from fastapi import APIRouter, Depends, Request, status, Query, Path
from typing import List, Optional
from decimal import Decimal
from uuid import UUID

from estate_api.config import settings
from estate_api.models.user import User, UserRole
from estate_api.models.property import Property, PropertyType, ListingType
from estate_api.repositories.property import PropertySearchFilters
from estate_api.services.property import PropertyService
from estate_api.schemas.common import ApiResponse, MessageResponse, Pagination
from estate_api.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    FavoriteToggleData,
)
from estate_api.schemas.error import get_crud_error_responses, get_error_responses
from estate_api.utils.dependencies import (
    get_current_active_user,
    get_optional_current_user,
    get_property_service,
    require_roles,
)
from estate_api.utils.forms import read_listing_form


router = APIRouter(prefix="/properties", tags=["Properties"])

LISTING_FORM_DOC = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "description": {"type": "string"},
                        "price": {"type": "number"},
                        "propertyType": {"type": "string"},
                        "listingType": {"type": "string"},
                        "status": {"type": "string"},
                        "isFeatured": {"type": "boolean"},
                        "location": {"type": "string", "description": "JSON object"},
                        "features": {"type": "string", "description": "JSON object"},
                        "contactInfo": {"type": "string", "description": "JSON object"},
                        "existingImages": {"type": "string", "description": "JSON array of image ids or urls to keep"},
                        "images": {"type": "array", "items": {"type": "string", "format": "binary"}},
                    },
                }
            }
        }
    }
}


def to_property_response(property_obj: Property, is_favorited: Optional[bool] = None) -> PropertyResponse:
    data = property_obj.to_dict()
    data["is_favorited"] = is_favorited
    return PropertyResponse.model_validate(data)


def to_list_response(properties: List[Property], total: int, page: int, limit: int) -> PropertyListResponse:
    return PropertyListResponse(
        data=[to_property_response(p) for p in properties],
        pagination=Pagination.build(page=page, limit=limit, total=total)
    )


@router.get(
    "",
    response_model=PropertyListResponse,
    summary="Search properties",
    description="List active properties with filters, newest first",
    responses=get_error_responses(400, 500)
)
async def search_properties(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Page size"),
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice", description="Minimum price"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice", description="Maximum price"),
    property_type: Optional[PropertyType] = Query(None, alias="propertyType"),
    listing_type: Optional[ListingType] = Query(None, alias="listingType"),
    city: Optional[str] = Query(None, max_length=100, description="City contains (case-insensitive)"),
    state: Optional[str] = Query(None, max_length=100, description="State contains (case-insensitive)"),
    bedrooms: Optional[int] = Query(None, ge=0, description="Minimum bedrooms"),
    bathrooms: Optional[Decimal] = Query(None, ge=0, description="Minimum bathrooms"),
    search: Optional[str] = Query(None, max_length=200, description="Full-text search"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    """
    Search active listings.

    Raises:
        ValidationError: If query parameters are invalid
    """
    filters = PropertySearchFilters(
        min_price=min_price,
        max_price=max_price,
        property_type=property_type,
        listing_type=listing_type,
        city=city,
        state=state,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        search=search,
    )
    properties, total = await property_service.search_properties(filters, page=page, limit=limit)
    return to_list_response(properties, total, page, limit)


@router.get(
    "/user/my-properties",
    response_model=PropertyListResponse,
    summary="Get my properties",
    description="The caller's listings, including inactive ones",
    responses=get_error_responses(400, 401, 403)
)
async def get_my_properties(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    properties, total = await property_service.get_my_properties(current_user, page=page, limit=limit)
    return to_list_response(properties, total, page, limit)


@router.get(
    "/user/favorites",
    response_model=PropertyListResponse,
    summary="Get favorite properties",
    responses=get_error_responses(400, 401, 403)
)
async def get_favorite_properties(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    properties, total = await property_service.get_favorites(current_user, page=page, limit=limit)
    return to_list_response(properties, total, page, limit)


@router.get(
    "/{property_id}",
    response_model=ApiResponse[PropertyResponse],
    summary="Get property by ID",
    description="Get a listing and count the view",
    responses=get_error_responses(400, 404, 500)
)
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ApiResponse[PropertyResponse]:
    property_obj, is_favorited = await property_service.get_property(property_id, current_user)
    return ApiResponse(data=to_property_response(property_obj, is_favorited))


@router.post(
    "",
    response_model=ApiResponse[PropertyResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a listing with images. Requires seller or admin role; the caller becomes the owner.",
    responses=get_error_responses(400, 401, 403, 500),
    openapi_extra=LISTING_FORM_DOC
)
async def create_property(
    request: Request,
    current_user: User = Depends(require_roles(UserRole.SELLER)),
    property_service: PropertyService = Depends(get_property_service)
) -> ApiResponse[PropertyResponse]:
    """
    Create a new property listing.

    Raises:
        ValidationError: If the listing fields are invalid
        FileUploadError: If an image is rejected
        InsufficientPermissionsError: If the caller is a buyer
    """
    form = await read_listing_form(request)
    property_data = PropertyCreate.model_validate(form.payload)

    property_obj = await property_service.create_property(property_data, current_user, form.files)
    return ApiResponse(data=to_property_response(property_obj), message="Property created successfully")


@router.put(
    "/{property_id}",
    response_model=ApiResponse[PropertyResponse],
    summary="Update property",
    description="Partially update a listing. Only the owner or an admin may update it.",
    responses=get_crud_error_responses(),
    openapi_extra=LISTING_FORM_DOC
)
async def update_property(
    request: Request,
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ApiResponse[PropertyResponse]:
    """
    Update a property listing.

    Raises:
        ValidationError: If the listing fields are invalid
        PropertyNotFoundError: If the listing does not exist
        InsufficientPermissionsError: If the caller does not own the listing
    """
    form = await read_listing_form(request)
    update_data = PropertyUpdate.model_validate(form.payload)

    property_obj = await property_service.update_property(
        property_id,
        update_data,
        current_user,
        existing_images=form.existing_images,
        files=form.files
    )
    return ApiResponse(data=to_property_response(property_obj), message="Property updated successfully")


@router.delete(
    "/{property_id}",
    response_model=MessageResponse,
    summary="Delete property",
    description="Hard-delete a listing with its images and favorites",
    responses=get_crud_error_responses()
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> MessageResponse:
    await property_service.delete_property(property_id, current_user)
    return MessageResponse(message="Property deleted successfully")


@router.post(
    "/{property_id}/favorite",
    response_model=ApiResponse[FavoriteToggleData],
    summary="Toggle favorite",
    description="Favorite the listing, or unfavorite it when already favorited",
    responses=get_error_responses(400, 401, 404)
)
async def toggle_favorite(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ApiResponse[FavoriteToggleData]:
    is_favorited, favorites_count = await property_service.toggle_favorite(property_id, current_user)
    return ApiResponse(
        data=FavoriteToggleData(is_favorited=is_favorited, favorites_count=favorites_count),
        message="Property added to favorites" if is_favorited else "Property removed from favorites"
    )
