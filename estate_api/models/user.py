"""
User model with authentication and role management.
Handles buyer, seller and administrator accounts along with their profile preferences.
"""

from sqlalchemy import String, Boolean, Numeric, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_api.database import Base
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_api.models.property import Property

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class SellerExperience(str, enum.Enum):
    """Self-reported seller experience level."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERIENCED = "experienced"
    EXPERT = "expert"


class BudgetRange(str, enum.Enum):
    """Buyer budget brackets in US dollars."""
    UNDER_100K = "under-100k"
    FROM_100K_TO_250K = "100k-250k"
    FROM_250K_TO_500K = "250k-500k"
    FROM_500K_TO_1M = "500k-1m"
    FROM_1M_TO_2M = "1m-2m"
    OVER_2M = "over-2m"


class User(Base):
    """
    User model for authentication and authorization.
    Buyers browse and favorite listings, sellers publish them, admins manage everything.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Display name"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - must be unique and valid"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.BUYER,
        index=True,
        comment="User role for access control"
    )

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    avatar: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Avatar image URL"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether the user account is active"
    )

    # Buyer preferences
    preferred_property_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    budget_range: Mapped[Optional[BudgetRange]] = mapped_column(SQLEnum(BudgetRange), nullable=True)
    preferred_location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Seller profile
    company_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    license_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    experience: Mapped[Optional[SellerExperience]] = mapped_column(SQLEnum(SellerExperience), nullable=True)
    specialization: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    properties: Mapped[List["Property"]] = relationship(
        "Property",
        back_populates="owner",
        passive_deletes=True,
        lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Args:
            email: Email address to validate

        Returns:
            Normalized email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        """
        Hash a password using bcrypt.

        Raises:
            ValueError: If the password is too short
        """
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return pwd_context.verify(password, self.hashed_password)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role == UserRole.SELLER

    @property
    def is_buyer(self) -> bool:
        return self.role == UserRole.BUYER

    @property
    def can_publish_listings(self) -> bool:
        """Sellers and admins may create listings."""
        return self.role in (UserRole.SELLER, UserRole.ADMIN)

    def can_manage_property(self, property_owner_id: uuid.UUID) -> bool:
        """
        Check if user can manage a specific property.

        Args:
            property_owner_id: UUID of the property's owner

        Returns:
            True if user is the owner or an admin
        """
        if self.is_admin:
            return True

        return self.id == property_owner_id

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excluding sensitive data).

        Returns:
            Dictionary representation of user
        """
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "phone": self.phone,
            "avatar": self.avatar,
            "is_active": self.is_active,
            "preferred_property_type": self.preferred_property_type,
            "budget_range": self.budget_range.value if self.budget_range else None,
            "preferred_location": self.preferred_location,
            "company_name": self.company_name,
            "license_number": self.license_number,
            "experience": self.experience.value if self.experience else None,
            "specialization": self.specialization,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
