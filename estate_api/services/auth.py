"""
Authentication service for registration, login, token management and profile updates.
"""

from typing import Tuple, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from estate_api.config import settings
from estate_api.repositories.user import UserRepository
from estate_api.models.user import User, UserRole
from estate_api.schemas.auth import RegisterRequest
from estate_api.schemas.user import ProfileUpdate, BuyerPreferences, SellerProfile
from estate_api.utils.auth import create_access_token, create_refresh_token, verify_token
from estate_api.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    DuplicateEmailError,
    ValidationError,
    BadRequestError,
    ForbiddenError,
)
from jose import JWTError, ExpiredSignatureError
import uuid
import logging

logger = logging.getLogger(__name__)

BUYER_FIELDS = set(BuyerPreferences.model_fields)
SELLER_FIELDS = set(SellerProfile.model_fields)


class AuthService:
    """
    Authentication service for managing accounts and tokens.
    Tokens are stateless JWTs; nothing is stored server-side on login or logout.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def register(self, request: RegisterRequest) -> Tuple[User, str, str]:
        """
        Register a new buyer or seller account.

        Returns:
            Tuple of (user, access_token, refresh_token)

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        if await self.user_repo.get_by_email(request.email):
            raise DuplicateEmailError()

        role = request.role or UserRole.BUYER
        user_data = request.model_dump(exclude_none=True, exclude={"role"})
        user_data = self._drop_foreign_profile_fields(user_data, role)
        user_data["role"] = role
        user_data = self._profile_column_values(user_data)

        try:
            user = await self.user_repo.create_user(user_data)
        except ValueError as e:
            if "already exists" in str(e):
                raise DuplicateEmailError()
            raise ValidationError.for_field("email", str(e))

        access_token, refresh_token = self.create_tokens(user)
        logger.info(f"Registered {role.value} account: {user.email}")
        return user, access_token, refresh_token

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid
            InactiveUserError: If user account is inactive
        """
        user = await self.user_repo.authenticate_user(email, password)

        if not user:
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            raise InactiveUserError()

        logger.info(f"User authenticated successfully: {user.email}")
        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """
        Create access and refresh tokens for user.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        """Authenticate user and create tokens."""
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = self.create_tokens(user)
        return user, access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> Tuple[str, int]:
        """
        Create new access token from refresh token.

        Returns:
            Tuple of (access_token, lifetime in seconds)
        """
        user = await self._user_from_token(refresh_token, token_type="refresh")
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        return access_token, settings.access_token_expire_minutes * 60

    async def get_current_user(self, token: str) -> User:
        """
        Get current user from access token.

        Raises:
            InvalidTokenError: If token is invalid or the user no longer exists
            TokenExpiredError: If token is expired
            InactiveUserError: If user account is inactive
        """
        return await self._user_from_token(token, token_type="access")

    async def _user_from_token(self, token: str, token_type: str) -> User:
        try:
            token_payload = verify_token(token, token_type=token_type)
            user_id = uuid.UUID(token_payload.user_id)
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except (JWTError, ValueError) as e:
            logger.debug(f"Rejected {token_type} token: {e}")
            raise InvalidTokenError()

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise InvalidTokenError("Not authorized, user not found")

        if not user.is_active:
            raise InactiveUserError()

        return user

    async def update_profile(self, user: User, request: ProfileUpdate) -> User:
        """
        Apply a partial profile update.

        Buyer preferences are only applied to buyers and seller details only to
        sellers; admins may set both.

        Raises:
            BadRequestError: If the new email belongs to another account
        """
        # Null values leave the stored field as it is
        update_data = request.model_dump(exclude_unset=True, exclude_none=True)
        update_data = self._drop_foreign_profile_fields(update_data, user.role)

        if "email" in update_data and update_data["email"] != user.email:
            if await self.user_repo.email_taken(update_data["email"], exclude_user_id=user.id):
                raise BadRequestError("Email already exists")

        update_data = self._profile_column_values(update_data)
        if not update_data:
            return user

        updated_user = await self.user_repo.update(user.id, update_data)
        logger.info(f"Profile updated for user {user.id}: {sorted(update_data)}")
        return updated_user

    async def change_role(self, user: User, new_role: UserRole) -> User:
        """
        Switch a user between buyer and seller.

        Raises:
            ForbiddenError: If the user is an admin or requests the admin role
        """
        if new_role == UserRole.ADMIN:
            raise ForbiddenError("Admin role cannot be self-assigned")

        if user.is_admin:
            raise ForbiddenError("Admin accounts cannot change role")

        if user.role == new_role:
            return user

        return await self.user_repo.update_role(user.id, new_role)

    @staticmethod
    def _drop_foreign_profile_fields(data: Dict[str, Any], role: UserRole) -> Dict[str, Any]:
        """Remove profile fields that do not apply to the given role."""
        if role == UserRole.ADMIN:
            return data
        excluded = SELLER_FIELDS if role == UserRole.BUYER else BUYER_FIELDS
        return {key: value for key, value in data.items() if key not in excluded}

    @staticmethod
    def _profile_column_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert schema values to the representation stored in user columns."""
        values = dict(data)
        if values.get("preferred_property_type") is not None:
            values["preferred_property_type"] = values["preferred_property_type"].value
        return values
