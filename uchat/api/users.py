from fastapi import APIRouter, Depends, Query

from uchat.dependencies.auth_dependencies import get_current_user
from uchat.dependencies.service_dependencies import get_user_service
from uchat.models.user import User
from uchat.schemas.user import UpdateProfileRequest, UserListEnvelope, UserProfileResponse
from uchat.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("", response_model=UserListEnvelope)
async def list_users(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    limit: int = Query(50, ge=1, le=100),
):
    """
    List user profiles.
    """
    users = await user_service.list_users(limit=limit)
    return UserListEnvelope(users=[UserProfileResponse.model_validate(u) for u in users])

@router.patch("/me", response_model=UserProfileResponse)
async def update_profile(
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """
    Update the current user's display name, avatar or color.
    """
    user = await user_service.update_profile(current_user, request)
    return UserProfileResponse.model_validate(user)
