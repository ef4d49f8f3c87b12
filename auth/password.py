"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic salting and a
configurable work factor (``config.bcrypt_rounds``).  The ``*_async``
variants push the work onto a thread so a slow hash never blocks the
event loop.
"""

from __future__ import annotations

import asyncio
import logging

import bcrypt

from config.settings import config
from utils.errors import HashingError

logger = logging.getLogger(__name__)

_dummy_hash: str | None = None


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (auto-salted, ``config.bcrypt_rounds``)."""
    try:
        hashed = bcrypt.hashpw(
            password.encode(), bcrypt.gensalt(rounds=config.bcrypt_rounds)
        ).decode()
    except (ValueError, TypeError) as exc:
        logger.error("Password hashing failed: %s", exc)
        raise HashingError() from exc
    if not hashed:
        raise HashingError()
    return hashed


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except (ValueError, TypeError):
        return False


def dummy_hash() -> str:
    """
    A fixed hash to verify against when the user does not exist, so an
    unknown email costs the same bcrypt round as a wrong password.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    return _dummy_hash


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


async def verify_dummy_async(password: str) -> bool:
    """Spend one verification on the dummy hash.  Always False."""
    await asyncio.to_thread(lambda: verify_password(password, dummy_hash()))
    return False
