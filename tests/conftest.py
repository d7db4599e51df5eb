"""
Test configuration and fixtures for the estate marketplace API.
Provides database fixtures, test data factories, and common test utilities.
"""

import os
import tempfile

# Settings are read at import time, so the test environment must be in place first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="estate-uploads-"))
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import io
import json
import uuid
from decimal import Decimal
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from estate_api.main import app
from estate_api.database import Base, get_db
from estate_api.models.user import User, UserRole
from estate_api.models.property import Property, PropertyType, ListingType
from estate_api.repositories.user import UserRepository
from estate_api.repositories.property import PropertyRepository
from estate_api.services.auth import AuthService
from estate_api.services.image import ImageService
from estate_api.services.property import PropertyService
from estate_api.utils.auth import create_access_token
from estate_api.utils.file_utils import FileStorage


TEST_PASSWORD = "testpassword123"

# In-memory SQLite shared by every session of a test
test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False}
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_test_database():
    """Create a fresh schema for every test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Async test client; each request gets its own session from the test engine."""
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    # Unhandled errors still become 500 responses instead of propagating into the test
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def file_storage(tmp_path) -> FileStorage:
    """Storage rooted in a per-test directory."""
    return FileStorage(base_dir=tmp_path / "uploads", url_prefix="/uploads")


@pytest.fixture
def image_service(file_storage: FileStorage) -> ImageService:
    return ImageService(file_storage)


@pytest.fixture
def property_service(db_session: AsyncSession, image_service: ImageService) -> PropertyService:
    return PropertyService(db_session, image_service=image_service)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        name: str = "Test User",
        role: UserRole = UserRole.BUYER,
        is_active: bool = True,
        **profile
    ) -> dict:
        return {
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "name": name,
            "role": role,
            "is_active": is_active,
            **profile
        }

    @staticmethod
    async def create_user(user_repo: UserRepository, **kwargs) -> User:
        """Create a test user in the database."""
        return await user_repo.create_user(UserFactory.create_user_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(owner_id: uuid.UUID, **overrides) -> dict:
        """Column values for a property."""
        data = {
            "title": "Sunny Family Home",
            "description": "A bright three bedroom house close to parks",
            "price": Decimal("350000.00"),
            "property_type": PropertyType.HOUSE,
            "listing_type": ListingType.SALE,
            "address": "12 Oak Street",
            "city": "Austin",
            "state": "Texas",
            "zip_code": "78701",
            "country": "USA",
            "bedrooms": 3,
            "bathrooms": Decimal("2.0"),
            "square_feet": 1800,
            "amenities": ["pool", "gym"],
            "owner_id": owner_id,
            "is_active": True,
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create_property(
        property_repo: PropertyRepository,
        owner_id: uuid.UUID,
        images: Optional[List[Dict]] = None,
        **overrides
    ) -> Property:
        """Create a test property in the database."""
        return await property_repo.create_property(
            PropertyFactory.create_property_data(owner_id, **overrides),
            images
        )

    @staticmethod
    def form_data(**overrides) -> dict:
        """Multipart form fields for the create endpoint."""
        data = {
            "title": "Modern Downtown Condo",
            "description": "Two bedroom condo with a view of the river",
            "price": "425000",
            "propertyType": "condo",
            "listingType": "sale",
            "location": json.dumps({
                "address": "500 Main Street",
                "city": "Portland",
                "state": "Oregon",
                "zipCode": "97204"
            }),
            "features": json.dumps({
                "bedrooms": 2,
                "bathrooms": 2,
                "squareFeet": 1100,
                "parking": "garage",
                "amenities": ["gym", "elevator"]
            }),
            "contactInfo": json.dumps({
                "phone": "5035550100",
                "email": "agent@example.com",
                "preferredContact": "email"
            }),
        }
        data.update(overrides)
        return data


def image_bytes(image_format: str = "JPEG", size=(16, 12), color=(200, 30, 30)) -> bytes:
    """Encode a small solid-colour image in memory."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def image_upload(name: str = "photo.jpg", image_format: str = "JPEG", mime_type: str = "image/jpeg"):
    """A (field, file) tuple for httpx multipart uploads."""
    return ("images", (name, image_bytes(image_format), mime_type))


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


def dated(year: int, month: int = 1, day: int = 1) -> datetime:
    return datetime(year, month, day, 12, 0, 0)


# Common test fixtures
@pytest.fixture
async def test_buyer(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="buyer@example.com",
        name="Test Buyer",
        role=UserRole.BUYER
    )


@pytest.fixture
async def test_seller(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="seller@example.com",
        name="Test Seller",
        role=UserRole.SELLER
    )


@pytest.fixture
async def other_seller(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="other.seller@example.com",
        name="Other Seller",
        role=UserRole.SELLER
    )


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="admin@example.com",
        name="Test Admin",
        role=UserRole.ADMIN
    )


@pytest.fixture
async def test_inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="inactive@example.com",
        name="Inactive User",
        is_active=False
    )


@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_seller: User) -> Property:
    return await PropertyFactory.create_property(property_repository, owner_id=test_seller.id)


@pytest.fixture
async def test_inactive_property(property_repository: PropertyRepository, test_seller: User) -> Property:
    return await PropertyFactory.create_property(
        property_repository,
        owner_id=test_seller.id,
        title="Hidden Listing",
        is_active=False
    )
