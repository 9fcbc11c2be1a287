from fastapi import APIRouter, Depends
from app.modules.auth.schemas import (
    LoginRequest, SignUpRequest, TokenResponse, SignUpResponse, CurrentUserResponse
)
from app.modules.auth.service import AuthService
from app.core.dependencies import (
    get_access_token, get_auth_service, get_current_user, get_permission_evaluator
)
from app.core.permissions import PermissionEvaluator
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignUpResponse, status_code=201)
async def sign_up(
    sign_up_data: SignUpRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.sign_up(sign_up_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Sign in and get access token"""
    return service.sign_in(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service)
):
    """Sign out and invalidate the session"""
    service.sign_out(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Get current authenticated user and whether they are a system admin (for frontend UI)."""
    return CurrentUserResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        user_metadata=current_user.get("user_metadata", {}),
        is_system_admin=evaluator.is_system_admin(current_user["id"])
    )
