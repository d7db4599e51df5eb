"""
User account endpoints: profile edits and switching between buyer and seller.
"""

from fastapi import APIRouter, Depends
from estate_api.models.user import User
from estate_api.services.auth import AuthService
from estate_api.schemas.common import ApiResponse
from estate_api.schemas.error import get_error_responses
from estate_api.schemas.user import UserResponse, ProfileUpdate, RoleUpdateRequest
from estate_api.utils.dependencies import get_auth_service, get_current_active_user


router = APIRouter(prefix="/users", tags=["Users"])


@router.put(
    "/profile",
    response_model=ApiResponse[UserResponse],
    summary="Update profile",
    responses=get_error_responses(400, 401, 403, 500)
)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[UserResponse]:
    user = await auth_service.update_profile(current_user, profile_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="Profile updated successfully")


@router.put(
    "/role",
    response_model=ApiResponse[UserResponse],
    summary="Change role",
    description="Switch the caller between buyer and seller",
    responses=get_error_responses(400, 401, 403, 500)
)
async def change_role(
    role_data: RoleUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ApiResponse[UserResponse]:
    """
    Raises:
        ForbiddenError: If the caller is an admin
    """
    user = await auth_service.change_role(current_user, role_data.role)
    return ApiResponse(
        data=UserResponse.model_validate(user),
        message=f"Role updated to {user.role.value}"
    )
