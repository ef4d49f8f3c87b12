"""
REST API routes — user CRUD.

Route prefix: /users
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session
from database.helpers import (
    delete_user,
    get_user,
    get_user_by_email,
    list_users,
    update_user,
)
from database.models import User
from utils.errors import DuplicateEmailError, NotFoundError
from utils.schemas import MessageResponse, UpdateUserRequest, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


async def _require_user(session: AsyncSession, user_id: int) -> User:
    user = await get_user(session, user_id)
    if user is None:
        raise NotFoundError()
    return user


@router.get("", response_model=List[UserPublic])
async def get_users(session: AsyncSession = Depends(db_session)) -> List[UserPublic]:
    users = await list_users(session)
    return [UserPublic.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_by_id(
    user_id: int,
    session: AsyncSession = Depends(db_session),
) -> UserPublic:
    return UserPublic.model_validate(await _require_user(session, user_id))


@router.put("/{user_id}", response_model=UserPublic)
async def put_user(
    user_id: int,
    req: UpdateUserRequest,
    session: AsyncSession = Depends(db_session),
) -> UserPublic:
    """Update name and email.  Nothing is created when the id is unknown."""
    user = await _require_user(session, user_id)

    if req.email != user.email:
        owner = await get_user_by_email(session, req.email)
        if owner is not None and owner.id != user.id:
            raise DuplicateEmailError()

    user = await update_user(session, user, name=req.name, email=req.email)
    logger.info("Updated user %s", user.id)
    return UserPublic.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def remove_user(
    user_id: int,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    user = await _require_user(session, user_id)
    await delete_user(session, user)
    logger.info("Deleted user %s", user_id)
    return {"message": "User deleted successfully"}
