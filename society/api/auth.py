"""
Auth API - registration, login, logout and the current account.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from society.api.deps import (
    CurrentUser,
    get_current_user,
    get_token_service,
    require_database,
)
from society.database import get_db
from society.errors import NotFoundError
from society.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserOut
from society.services.token_service import TokenService
from society.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_database)],
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Register a resident account and return a bearer token."""
    user = await UserService(db).register(
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        flat_number=body.flat_number,
        wing=body.wing,
        floor=body.floor,
    )
    return AuthResponse(
        message="User registered successfully",
        user=UserOut.model_validate(user),
        token=tokens.issue(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await UserService(db).authenticate(body.email, body.password)
    logger.info(f"User {user.id} logged in")
    return AuthResponse(
        message="Login successful",
        user=UserOut.model_validate(user),
        token=tokens.issue(user.id),
    )


@router.post("/logout")
async def logout(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Tokens are stateless; logout only records the time."""
    await UserService(db).record_logout(current_user.id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).get_user_by_id(current_user.id)
    if not user:
        raise NotFoundError("User not found")
    return {"success": True, "user": UserOut.model_validate(user)}
