"""
Database helper functions — user lookups and writes.

Each helper flushes so constraint violations surface inside the request
handler rather than at commit time.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User
from utils.errors import DuplicateEmailError

logger = logging.getLogger(__name__)


def _is_email_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is the unique index on email."""
    msg = str(exc.orig).lower()
    return "email" in msg and ("unique" in msg or "duplicate" in msg)


async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> List[User]:
    result = await session.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def create_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password_hash: str,
    **profile,
) -> User:
    """
    Insert a user row.

    The caller has already checked the email; a concurrent insert that
    wins the race still trips the unique index and is reported as a
    duplicate.
    """
    user = User(name=name, email=email, password_hash=password_hash, **profile)
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        if _is_email_conflict(exc):
            raise DuplicateEmailError() from exc
        raise
    return user


async def update_user(
    session: AsyncSession,
    user: User,
    *,
    name: str,
    email: str,
) -> User:
    user.name = name
    user.email = email
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        if _is_email_conflict(exc):
            raise DuplicateEmailError() from exc
        raise
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    await session.delete(user)
    await session.flush()
