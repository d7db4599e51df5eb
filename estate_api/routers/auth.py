"""
Authentication API endpoints for registration, login, token refresh and the caller's profile.
Provides JWT-based authentication with role-based access control.
"""

from fastapi import APIRouter, Depends, status
from estate_api.models.user import User
from estate_api.services.auth import AuthService
from estate_api.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    AuthData,
    RefreshTokenRequest,
    AccessTokenData,
)
from estate_api.schemas.common import ApiResponse, MessageResponse
from estate_api.schemas.error import get_error_responses
from estate_api.schemas.user import UserResponse, ProfileUpdate
from estate_api.utils.dependencies import get_auth_service, get_current_active_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


def build_auth_data(user: User, access_token: str, refresh_token: str) -> AuthData:
    user_data = UserResponse.model_validate(user).model_dump()
    return AuthData(**user_data, token=access_token, refresh_token=refresh_token)


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    summary="Register account",
    description="Create a buyer or seller account and return JWT tokens",
    responses=get_error_responses(400, 500)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[AuthData]:
    """
    Register a new account.

    Raises:
        DuplicateEmailError: If the email is already registered
    """
    user, access_token, refresh_token = await auth_service.register(register_data)
    return ApiResponse(
        data=build_auth_data(user, access_token, refresh_token),
        message="User registered successfully"
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens",
    responses=get_error_responses(400, 401, 403, 500)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[AuthData]:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    user, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )
    return ApiResponse(
        data=build_auth_data(user, access_token, refresh_token),
        message="Login successful"
    )


@router.post(
    "/refresh",
    response_model=ApiResponse[AccessTokenData],
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate new access token using refresh token",
    responses=get_error_responses(400, 401, 403)
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[AccessTokenData]:
    access_token, expires_in = await auth_service.refresh_access_token(refresh_data.refresh_token)
    return ApiResponse(data=AccessTokenData(token=access_token, expires_in=expires_in))


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get current user",
    description="Get current authenticated user information",
    responses=get_error_responses(401, 403)
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> ApiResponse[UserResponse]:
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.get(
    "/profile",
    response_model=ApiResponse[UserResponse],
    summary="Get profile",
    responses=get_error_responses(401, 403)
)
async def get_profile(
    current_user: User = Depends(get_current_active_user)
) -> ApiResponse[UserResponse]:
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.put(
    "/profile",
    response_model=ApiResponse[UserResponse],
    summary="Update profile",
    description="Partially update the caller's profile; role-specific fields apply to that role only",
    responses=get_error_responses(400, 401, 403, 500)
)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[UserResponse]:
    user = await auth_service.update_profile(current_user, profile_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="Profile updated successfully")


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="User logout",
    description="Tokens are stateless; the client discards them"
)
async def logout(
    current_user: User = Depends(get_current_active_user)
) -> MessageResponse:
    return MessageResponse(message="Logged out successfully")
