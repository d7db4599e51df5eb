"""
User repository for authentication and profile management operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from estate_api.repositories.base import BaseRepository
from estate_api.models.user import User, UserRole
from typing import Optional, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for user accounts.
    Emails are stored lowercase so lookups are case-insensitive.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Dictionary containing user information
                      Must include: name, email, password
                      Optional: role (defaults to buyer) and profile fields

        Returns:
            Created user instance

        Raises:
            ValueError: If the email is invalid or already registered
        """
        try:
            data = dict(user_data)
            email = User.validate_email_format(data.pop("email"))

            existing_user = await self.get_by_email(email)
            if existing_user:
                raise ValueError(f"User with email {email} already exists")

            hashed_password = User.hash_password(data.pop("password"))

            create_data = {
                **data,
                "email": email,
                "hashed_password": hashed_password,
                "role": data.get("role") or UserRole.BUYER,
                "is_active": data.get("is_active", True)
            }

            created_user = await self.create(create_data)
            logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
            return created_user
        except ValueError as e:
            logger.warning(f"User validation failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address.

        Args:
            email: Email address to search for

        Returns:
            User instance if found, None otherwise
        """
        try:
            normalized_email = email.lower().strip()
            result = await self.db.execute(select(User).where(User.email == normalized_email))
            user = result.scalar_one_or_none()

            if not user:
                logger.debug(f"User with email {email} not found")

            return user
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def email_taken(self, email: str, exclude_user_id: Optional[uuid.UUID] = None) -> bool:
        """Check whether an email belongs to an account other than ``exclude_user_id``."""
        try:
            query = select(func.count(User.id)).where(User.email == email.lower().strip())
            if exclude_user_id is not None:
                query = query.where(User.id != exclude_user_id)

            result = await self.db.execute(query)
            return (result.scalar() or 0) > 0
        except Exception as e:
            logger.error(f"Failed to check email availability for {email}: {e}")
            raise

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User instance if the credentials match, None otherwise
        """
        try:
            user = await self.get_by_email(email)

            if not user:
                logger.debug(f"Authentication failed: user {email} not found")
                return None

            if not user.verify_password(password):
                logger.debug(f"Authentication failed: invalid password for {email}")
                return None

            return user
        except Exception as e:
            logger.error(f"Failed to authenticate user {email}: {e}")
            raise

    async def update_role(self, user_id: uuid.UUID, new_role: UserRole) -> Optional[User]:
        """Change a user's role."""
        updated_user = await self.update(user_id, {"role": new_role})
        if updated_user:
            logger.info(f"Updated role for user {user_id} to {new_role.value}")
        return updated_user
