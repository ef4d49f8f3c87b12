"""
Auth API routes — register, login, protected probe.

Route prefix: /users
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id
from auth.jwt import create_token
from auth.password import (
    hash_password_async,
    verify_dummy_async,
    verify_password_async,
)
from database.helpers import create_user, get_user_by_email
from utils.errors import AuthError, DuplicateEmailError
from utils.schemas import (
    LoginRequest,
    ProtectedResponse,
    RegisterRequest,
    TokenResponse,
    UserPublic,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_INVALID_CREDENTIALS = "Invalid credentials"


@router.post("", response_model=UserPublic)
async def register(
    req: RegisterRequest,
    session: AsyncSession = Depends(db_session),
) -> UserPublic:
    """Register a new user."""
    if await get_user_by_email(session, req.email) is not None:
        raise DuplicateEmailError()

    user = await create_user(
        session,
        name=req.name,
        email=req.email,
        password_hash=await hash_password_async(req.password),
        date_of_birth=req.date_of_birth,
        age=req.age,
        gender=req.gender,
    )
    logger.info("Registered user %s", user.id)
    return UserPublic.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    req: LoginRequest,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Login with email + password."""
    user = await get_user_by_email(session, req.email)

    if user is None:
        ok = await verify_dummy_async(req.password)
    else:
        ok = await verify_password_async(req.password, user.password_hash)

    if not ok:
        logger.info("Login failed")
        raise AuthError(_INVALID_CREDENTIALS)

    logger.info("Login: user %s", user.id)
    return {"token": create_token(user.id)}


@router.get("/protected", response_model=ProtectedResponse)
async def protected(user_id: int = Depends(get_current_user_id)) -> Dict[str, Any]:
    return {"message": "Authenticated user", "user_id": user_id}
