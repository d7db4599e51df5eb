"""
Tests for service classes.
Covers registration, authentication, profile rules and listing business logic.
"""

import io
import pytest
import uuid
from decimal import Decimal
from datetime import timedelta

from fastapi import UploadFile
from starlette.datastructures import Headers

from estate_api.models.user import User, UserRole, BudgetRange
from estate_api.models.property import PropertyType
from estate_api.repositories.property import PropertySearchFilters
from estate_api.schemas.auth import RegisterRequest
from estate_api.schemas.user import ProfileUpdate
from estate_api.schemas.property import PropertyCreate, PropertyUpdate
from estate_api.services.auth import AuthService
from estate_api.services.property import PropertyService
from estate_api.utils.auth import create_access_token, create_refresh_token
from estate_api.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    DuplicateEmailError,
    BadRequestError,
    ForbiddenError,
    PropertyNotFoundError,
    InsufficientPermissionsError,
    FileUploadError,
    ValidationError,
)
from tests.conftest import TEST_PASSWORD, image_bytes


def make_upload(name: str = "photo.jpg", content: bytes = None, mime_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content if content is not None else image_bytes()),
        filename=name,
        headers=Headers({"content-type": mime_type}),
    )


def listing_input(**overrides) -> PropertyCreate:
    data = {
        "title": "Garden Townhouse",
        "description": "Three levels with a private garden",
        "price": "510000",
        "propertyType": "townhouse",
        "listingType": "sale",
        "location": {"address": "9 Elm Row", "city": "Denver", "state": "Colorado", "zipCode": "80202"},
        "features": {"bedrooms": 3, "bathrooms": 2.5, "amenities": ["garden", "garden", "fireplace"]},
    }
    data.update(overrides)
    return PropertyCreate.model_validate(data)


class TestAuthService:
    """Test AuthService functionality."""

    @pytest.mark.asyncio
    async def test_register_defaults_to_buyer(self, auth_service: AuthService):
        user, access_token, refresh_token = await auth_service.register(RegisterRequest(
            name="New Person", email="New.Person@example.com", password="secret123"
        ))

        assert user.role == UserRole.BUYER
        assert user.email == "new.person@example.com"
        assert access_token and refresh_token

    @pytest.mark.asyncio
    async def test_register_drops_fields_of_other_role(self, auth_service: AuthService):
        user, _, _ = await auth_service.register(RegisterRequest(
            name="Seller Sam",
            email="sam@example.com",
            password="secret123",
            role="seller",
            company_name="Sam Realty",
            budget_range="under-100k",
        ))

        assert user.role == UserRole.SELLER
        assert user.company_name == "Sam Realty"
        assert user.budget_range is None

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, auth_service: AuthService, test_buyer: User):
        with pytest.raises(DuplicateEmailError):
            await auth_service.register(RegisterRequest(
                name="Copy Cat", email="buyer@example.com", password="secret123"
            ))

    @pytest.mark.asyncio
    async def test_authenticate_user_success(self, auth_service: AuthService, test_seller: User):
        authenticated = await auth_service.authenticate_user(test_seller.email, TEST_PASSWORD)
        assert authenticated.id == test_seller.id

    @pytest.mark.asyncio
    async def test_authenticate_user_invalid_credentials(self, auth_service: AuthService, test_seller: User):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user(test_seller.email, "wrongpassword")

        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("nobody@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_authenticate_user_inactive(self, auth_service: AuthService, test_inactive_user: User):
        with pytest.raises(InactiveUserError):
            await auth_service.authenticate_user(test_inactive_user.email, TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_get_current_user_from_token(self, auth_service: AuthService, test_buyer: User):
        token = create_access_token(user_id=test_buyer.id, email=test_buyer.email, role=test_buyer.role)
        assert (await auth_service.get_current_user(token)).id == test_buyer.id

    @pytest.mark.asyncio
    async def test_get_current_user_rejects_refresh_token(self, auth_service: AuthService, test_buyer: User):
        token = create_refresh_token(user_id=test_buyer.id, email=test_buyer.email)
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_user(token)

    @pytest.mark.asyncio
    async def test_get_current_user_expired_token(self, auth_service: AuthService, test_buyer: User):
        token = create_access_token(
            user_id=test_buyer.id, email=test_buyer.email, role=test_buyer.role,
            expires_delta=timedelta(seconds=-10)
        )
        with pytest.raises(TokenExpiredError):
            await auth_service.get_current_user(token)

    @pytest.mark.asyncio
    async def test_get_current_user_unknown_user(self, auth_service: AuthService):
        token = create_access_token(user_id=uuid.uuid4(), email="ghost@example.com", role=UserRole.BUYER)
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_user(token)

    @pytest.mark.asyncio
    async def test_get_current_user_garbage_token(self, auth_service: AuthService):
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_user("not-a-jwt")

    @pytest.mark.asyncio
    async def test_refresh_access_token(self, auth_service: AuthService, test_buyer: User):
        refresh_token = create_refresh_token(user_id=test_buyer.id, email=test_buyer.email)
        access_token, expires_in = await auth_service.refresh_access_token(refresh_token)

        assert expires_in > 0
        assert (await auth_service.get_current_user(access_token)).id == test_buyer.id

    @pytest.mark.asyncio
    async def test_update_profile_applies_buyer_fields_only(self, auth_service: AuthService, test_buyer: User):
        updated = await auth_service.update_profile(test_buyer, ProfileUpdate(
            name="Renamed Buyer",
            budget_range=BudgetRange.FROM_250K_TO_500K,
            preferred_property_type=PropertyType.CONDO,
            company_name="Should Be Ignored",
        ))

        assert updated.name == "Renamed Buyer"
        assert updated.budget_range == BudgetRange.FROM_250K_TO_500K
        assert updated.preferred_property_type == "condo"
        assert updated.company_name is None

    @pytest.mark.asyncio
    async def test_update_profile_email_in_use(self, auth_service: AuthService, test_buyer: User, test_seller: User):
        with pytest.raises(BadRequestError, match="Email already exists"):
            await auth_service.update_profile(test_buyer, ProfileUpdate(email=test_seller.email))

    @pytest.mark.asyncio
    async def test_update_profile_ignores_null_email(self, auth_service: AuthService, test_buyer: User):
        updated = await auth_service.update_profile(test_buyer, ProfileUpdate(email=None, name="Still Buyer"))

        assert updated.email == "buyer@example.com"
        assert updated.name == "Still Buyer"

    @pytest.mark.asyncio
    async def test_change_role(self, auth_service: AuthService, test_buyer: User):
        updated = await auth_service.change_role(test_buyer, UserRole.SELLER)
        assert updated.role == UserRole.SELLER

    @pytest.mark.asyncio
    async def test_change_role_admin_refused(self, auth_service: AuthService, test_admin: User, test_buyer: User):
        with pytest.raises(ForbiddenError):
            await auth_service.change_role(test_admin, UserRole.SELLER)

        with pytest.raises(ForbiddenError):
            await auth_service.change_role(test_buyer, UserRole.ADMIN)


class TestPropertyService:
    """Test PropertyService business rules."""

    @pytest.mark.asyncio
    async def test_create_property_sets_owner_and_images(
        self, property_service: PropertyService, test_seller: User, file_storage
    ):
        property_obj = await property_service.create_property(
            listing_input(),
            test_seller,
            [make_upload("front.jpg"), make_upload("back.png", image_bytes("PNG"), "image/png")]
        )

        assert property_obj.owner_id == test_seller.id
        assert property_obj.city == "Denver"
        assert property_obj.amenities == ["garden", "fireplace"]
        assert len(property_obj.images) == 2
        assert property_obj.images[0].is_primary
        assert property_obj.images[0].filename == "front.jpg"
        for image in property_obj.images:
            assert file_storage.resolve(image.public_id).exists()
            assert image.url == f"/uploads/{image.public_id}"

    @pytest.mark.asyncio
    async def test_create_property_buyer_forbidden(self, property_service: PropertyService, test_buyer: User):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.create_property(listing_input(), test_buyer)

    @pytest.mark.asyncio
    async def test_create_property_invalid_image_writes_nothing(
        self, property_service: PropertyService, test_seller: User, file_storage
    ):
        with pytest.raises(FileUploadError):
            await property_service.create_property(
                listing_input(),
                test_seller,
                [make_upload("good.jpg"), make_upload("bad.jpg", b"not an image")]
            )

        _, total = await property_service.get_my_properties(test_seller)
        assert total == 0
        assert not (file_storage.base_dir / "properties").exists() or not any(
            (file_storage.base_dir / "properties").iterdir()
        )

    @pytest.mark.asyncio
    async def test_get_property_counts_view(self, property_service: PropertyService, test_property, test_buyer):
        first, is_favorited = await property_service.get_property(test_property.id, test_buyer)
        views_after_first = first.views
        second, _ = await property_service.get_property(test_property.id)

        assert views_after_first == 1
        assert second.views == 2
        assert is_favorited is False

    @pytest.mark.asyncio
    async def test_get_property_anonymous_has_no_favorite_flag(self, property_service: PropertyService, test_property):
        _, is_favorited = await property_service.get_property(test_property.id)
        assert is_favorited is None

    @pytest.mark.asyncio
    async def test_get_property_missing(self, property_service: PropertyService):
        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_inactive_property_visible_to_owner_only(
        self, property_service: PropertyService, test_inactive_property, test_seller, test_buyer, test_admin
    ):
        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property(test_inactive_property.id, test_buyer)

        owner_view, _ = await property_service.get_property(test_inactive_property.id, test_seller)
        admin_view, _ = await property_service.get_property(test_inactive_property.id, test_admin)
        assert owner_view.id == admin_view.id == test_inactive_property.id

    @pytest.mark.asyncio
    async def test_search_rejects_inverted_price_range(self, property_service: PropertyService):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.search_properties(
                PropertySearchFilters(min_price=Decimal("500"), max_price=Decimal("100"))
            )
        assert exc_info.value.field_errors[0]["field"] == "minPrice"

    @pytest.mark.asyncio
    async def test_search_forces_active_only(
        self, property_service: PropertyService, test_property, test_inactive_property
    ):
        results, total = await property_service.search_properties(PropertySearchFilters(is_active=None))
        assert total == 1
        assert results[0].id == test_property.id

    @pytest.mark.asyncio
    async def test_update_property_merges_nested_fields(
        self, property_service: PropertyService, test_property, test_seller
    ):
        update = PropertyUpdate.model_validate({
            "price": "375000",
            "location": {"city": "Round Rock"},
            "features": {"bedrooms": 4},
        })

        updated = await property_service.update_property(test_property.id, update, test_seller)

        assert updated.price == Decimal("375000")
        assert updated.city == "Round Rock"
        assert updated.address == "12 Oak Street"
        assert updated.bedrooms == 4
        assert updated.square_feet == 1800
        assert updated.owner_id == test_seller.id

    @pytest.mark.asyncio
    async def test_update_property_image_survivors_and_append(
        self, property_service: PropertyService, test_seller: User, file_storage
    ):
        created = await property_service.create_property(
            listing_input(), test_seller, [make_upload("one.jpg"), make_upload("two.jpg")]
        )
        first, second = created.images
        first_path = file_storage.resolve(first.public_id)

        updated = await property_service.update_property(
            created.id,
            PropertyUpdate(),
            test_seller,
            existing_images=[second.url],
            files=[make_upload("three.jpg")]
        )

        assert [image.filename for image in updated.images] == ["two.jpg", "three.jpg"]
        assert [image.display_order for image in updated.images] == [0, 1]
        assert updated.images[0].is_primary
        assert not first_path.exists()

    @pytest.mark.asyncio
    async def test_update_property_not_owner(
        self, property_service: PropertyService, test_property, other_seller
    ):
        with pytest.raises(InsufficientPermissionsError, match="update this property"):
            await property_service.update_property(test_property.id, PropertyUpdate(title="Stolen Listing"), other_seller)

        unchanged = await property_service.property_repo.get_property_with_details(test_property.id, refresh=True)
        assert unchanged.title == "Sunny Family Home"
        assert unchanged.price == Decimal("350000.00")

    @pytest.mark.asyncio
    async def test_update_missing_property_is_not_found_before_forbidden(
        self, property_service: PropertyService, other_seller
    ):
        with pytest.raises(PropertyNotFoundError):
            await property_service.update_property(uuid.uuid4(), PropertyUpdate(title="Nothing Here"), other_seller)

    @pytest.mark.asyncio
    async def test_update_invalid_upload_checked_before_existence(
        self, property_service: PropertyService, other_seller
    ):
        with pytest.raises(BadRequestError, match="Unsupported file type"):
            await property_service.update_property(
                uuid.uuid4(), PropertyUpdate(), other_seller, files=[make_upload("x.gif", b"GIF89a", "image/gif")]
            )

    @pytest.mark.asyncio
    async def test_admin_can_update_any_property(self, property_service: PropertyService, test_property, test_admin):
        updated = await property_service.update_property(
            test_property.id, PropertyUpdate(is_featured=True), test_admin
        )
        assert updated.is_featured is True

    @pytest.mark.asyncio
    async def test_delete_property(self, property_service: PropertyService, test_seller: User, file_storage):
        created = await property_service.create_property(listing_input(), test_seller, [make_upload()])
        image_path = file_storage.resolve(created.images[0].public_id)

        await property_service.delete_property(created.id, test_seller)

        assert not image_path.exists()
        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property(created.id, test_seller)

    @pytest.mark.asyncio
    async def test_delete_property_not_owner(self, property_service: PropertyService, test_property, other_seller):
        with pytest.raises(InsufficientPermissionsError, match="delete this property"):
            await property_service.delete_property(test_property.id, other_seller)

        assert await property_service.property_repo.exists(test_property.id)

    @pytest.mark.asyncio
    async def test_toggle_favorite_missing_property(self, property_service: PropertyService, test_buyer):
        with pytest.raises(PropertyNotFoundError):
            await property_service.toggle_favorite(uuid.uuid4(), test_buyer)

    @pytest.mark.asyncio
    async def test_toggle_favorite_inactive_property(
        self, property_service: PropertyService, test_inactive_property, test_buyer, test_admin
    ):
        with pytest.raises(PropertyNotFoundError):
            await property_service.toggle_favorite(test_inactive_property.id, test_buyer)

        assert await property_service.toggle_favorite(test_inactive_property.id, test_admin) == (True, 1)

    @pytest.mark.asyncio
    async def test_favorites_listing(self, property_service: PropertyService, test_property, test_buyer):
        await property_service.toggle_favorite(test_property.id, test_buyer)

        results, total = await property_service.get_favorites(test_buyer)
        assert total == 1
        assert results[0].id == test_property.id
