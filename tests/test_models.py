"""
Tests for database models.
Covers password hashing, permission helpers and the nested listing representation.
"""

import pytest
import uuid
from decimal import Decimal
from sqlalchemy.exc import InvalidRequestError

from estate_api.models.user import User, UserRole
from estate_api.models.property import Property, ParkingType
from estate_api.models.image import PropertyImage
from estate_api.repositories.property import PropertyRepository
from tests.conftest import PropertyFactory


class TestUserModel:
    """Test User model helpers."""

    def test_hash_and_verify_password(self):
        hashed = User.hash_password("secret123")
        user = User(name="Jane", email="jane@example.com", hashed_password=hashed, role=UserRole.BUYER)

        assert hashed != "secret123"
        assert user.verify_password("secret123")
        assert not user.verify_password("wrong-password")

    def test_hash_password_too_short(self):
        with pytest.raises(ValueError, match="at least 6 characters"):
            User.hash_password("12345")

    def test_validate_email_format_normalizes(self):
        assert User.validate_email_format("Jane.Doe@Example.COM") == "jane.doe@example.com"

    def test_validate_email_format_invalid(self):
        with pytest.raises(ValueError, match="Invalid email format"):
            User.validate_email_format("not-an-email")

    def test_role_helpers(self):
        buyer = User(role=UserRole.BUYER)
        seller = User(role=UserRole.SELLER)
        admin = User(role=UserRole.ADMIN)

        assert buyer.is_buyer and not buyer.can_publish_listings
        assert seller.is_seller and seller.can_publish_listings
        assert admin.is_admin and admin.can_publish_listings

    def test_can_manage_property(self):
        owner_id = uuid.uuid4()
        owner = User(id=owner_id, role=UserRole.SELLER)
        stranger = User(id=uuid.uuid4(), role=UserRole.SELLER)
        admin = User(id=uuid.uuid4(), role=UserRole.ADMIN)

        assert owner.can_manage_property(owner_id)
        assert not stranger.can_manage_property(owner_id)
        assert admin.can_manage_property(owner_id)

    @pytest.mark.asyncio
    async def test_owned_properties_never_lazy_load(self, test_seller: User):
        """Listings are fetched through the repository, not the user relationship."""
        with pytest.raises(InvalidRequestError):
            test_seller.properties

    @pytest.mark.asyncio
    async def test_to_dict_excludes_password(self, test_seller: User):
        data = test_seller.to_dict()

        assert data["email"] == "seller@example.com"
        assert data["role"] == "seller"
        assert "hashed_password" not in data
        assert "password" not in data


class TestPropertyModel:
    """Test Property model representation."""

    def test_primary_image_url_prefers_primary_flag(self):
        property_obj = Property(title="Test", price=Decimal("1"))
        property_obj.images = [
            PropertyImage(url="/uploads/a.jpg", public_id="a.jpg", is_primary=False, display_order=0),
            PropertyImage(url="/uploads/b.jpg", public_id="b.jpg", is_primary=True, display_order=1),
        ]

        assert property_obj.primary_image_url == "/uploads/b.jpg"

    def test_primary_image_url_falls_back_to_first_image(self):
        property_obj = Property(title="Test", price=Decimal("1"))
        property_obj.images = [
            PropertyImage(url="/uploads/a.jpg", public_id="a.jpg", is_primary=False, display_order=0),
        ]

        assert property_obj.primary_image_url == "/uploads/a.jpg"

    def test_primary_image_url_empty_without_images(self):
        property_obj = Property(title="Test", price=Decimal("1"))
        property_obj.images = []

        assert property_obj.primary_image_url == ""

    @pytest.mark.asyncio
    async def test_to_dict_nested_shape(self, property_repository: PropertyRepository, test_seller: User):
        property_obj = await PropertyFactory.create_property(
            property_repository,
            owner_id=test_seller.id,
            latitude=Decimal("30.2672"),
            longitude=Decimal("-97.7431"),
            contact_phone="5125550100"
        )

        data = property_obj.to_dict()

        assert data["location"]["city"] == "Austin"
        assert data["location"]["zip_code"] == "78701"
        assert data["location"]["coordinates"] == {"lat": pytest.approx(30.2672), "lng": pytest.approx(-97.7431)}
        assert data["features"]["bedrooms"] == 3
        assert data["features"]["bathrooms"] == 2.0
        assert data["features"]["parking"] == ParkingType.NONE.value
        assert data["features"]["amenities"] == ["pool", "gym"]
        assert data["contact_info"]["phone"] == "5125550100"
        assert data["contact_info"]["preferred_contact"] == "both"
        assert data["owner"]["email"] == test_seller.email
        assert data["views"] == 0
        assert data["favorites_count"] == 0
        assert data["images"] == []
        assert data["primary_image"] == ""

    @pytest.mark.asyncio
    async def test_defaults_applied(self, property_repository: PropertyRepository, test_seller: User):
        property_obj = await PropertyFactory.create_property(property_repository, owner_id=test_seller.id)

        assert property_obj.status.value == "available"
        assert property_obj.country == "USA"
        assert property_obj.is_featured is False
        assert property_obj.views == 0
        assert property_obj.created_at is not None
