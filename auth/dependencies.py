"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_current_user_id`` dependencies that
are used across all routes.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify_token
from database.session import get_db_session
from utils.errors import AuthError


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_current_user_id(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> int:
    """
    Verify the token from the ``Authorization`` header and return the
    authenticated user id.

    The header may hold the bare token or ``Bearer <token>``.  A missing
    header is rejected before any signature check.  The id is also left
    on ``request.state.user_id`` for downstream code.
    """
    if not authorization or not authorization.strip():
        raise AuthError()

    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()

    user_id = verify_token(token)
    request.state.user_id = user_id
    return user_id
