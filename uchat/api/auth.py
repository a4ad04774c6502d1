from fastapi import APIRouter, Depends
from uchat.models.user import User
from uchat.schemas.auth import RegisterRequest, LoginRequest, TokenResponse
from uchat.schemas.user import UserProfileResponse
from uchat.dependencies.auth_dependencies import get_current_user
from uchat.dependencies.service_dependencies import get_auth_service
from uchat.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a new user.
    """
    user, access_token = await auth_service.register_user(request)
    return TokenResponse(
        access_token=access_token,
        user_id=user.id,
        username=user.username,
        display_name=user.display_name
    )

@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Authenticate a user and return a JWT.
    """
    user, access_token = await auth_service.login_user(request)
    return TokenResponse(
        access_token=access_token,
        user_id=user.id,
        username=user.username,
        display_name=user.display_name
    )

@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Mark the current user offline.
    """
    await auth_service.logout_user(current_user)
    return {"success": True, "message": "Logged out"}

@router.get("/me", response_model=UserProfileResponse)
async def protected_route(current_user: User = Depends(get_current_user)):
    """
    Get the current authenticated user's details.
    """
    return UserProfileResponse.model_validate(current_user)
