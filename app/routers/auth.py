"""
PeopleDesk HRM - Authentication Router

API endpoints for tenant registration and login.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import CurrentUser, get_current_user
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    TenantRegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.schemas.base import MessageResponse
from app.services.auth_service import AuthService


router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        tenant_id=user.tenant_id,
        name=user.name,
        email=user.email,
        role=user.role.value,
    )


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


@router.post(
    "/register-tenant",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new tenant",
    description="Create a tenant, its first administrator and a trial subscription.",
)
async def register_tenant(
    request: TenantRegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
):
    auth_service = AuthService(db)
    tenant, admin = await auth_service.register_tenant(
        company_name=request.company_name,
        company_email=request.company_email,
        tenant_code=request.tenant_code,
        admin_name=request.admin_name,
        admin_email=request.admin_email,
        password=request.password,
    )

    token = auth_service.create_token(admin)
    _set_auth_cookie(response, token)
    return TokenResponse(access_token=token, user=_user_response(admin))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login",
    description="Authenticate with email and password. The token is returned and set as an httpOnly cookie.",
)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
):
    user, token = await AuthService(db).login(request.email, request.password)
    _set_auth_cookie(response, token)
    return TokenResponse(access_token=token, user=_user_response(user))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(current_user: CurrentUser = Depends(get_current_user)):
    return UserResponse(
        id=current_user.user_id,
        tenant_id=current_user.tenant_id,
        name=current_user.name,
        email=current_user.email,
        role=current_user.role.value,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Clear the auth cookie. Bearer tokens stay valid until they expire.",
)
async def logout(response: Response):
    response.delete_cookie(settings.auth_cookie_name)
    return MessageResponse(message="Logged out successfully")
