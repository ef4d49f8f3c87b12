"""
JWT-style token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.
Secret key is loaded from ``config.jwt_secret`` (env var: ``JWT_SECRET``)
by ``init_token_signing`` at startup and dropped again by
``reset_token_signing`` at shutdown.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import logging
import time
from base64 import b64decode, b64encode

from config.settings import config
from utils.errors import AuthError

logger = logging.getLogger(__name__)

_signing_key: bytes | None = None


def init_token_signing(secret: str | None = None) -> None:
    """Load the signing secret once.  An empty secret is a startup error."""
    global _signing_key

    secret = config.jwt_secret if secret is None else secret
    if not secret:
        raise RuntimeError(
            "JWT_SECRET is not set; refusing to issue or verify tokens."
        )
    _signing_key = secret.encode()
    logger.info("Token signing initialised (HMAC-SHA256)")


def reset_token_signing() -> None:
    global _signing_key
    _signing_key = None


def _key() -> bytes:
    if _signing_key is None:
        init_token_signing()
    return _signing_key


def _sign(raw: bytes) -> str:
    return hmac.new(_key(), raw, hashlib.sha256).hexdigest()


def create_token(user_id: int, now: float | None = None) -> str:
    """Create a signed token containing ``user_id``, issue time and expiry."""
    issued_at = int(time.time() if now is None else now)
    payload = {
        "user_id": user_id,
        "iat": issued_at,
        "exp": issued_at + config.jwt_expiry_seconds,
    }
    raw = json.dumps(payload, sort_keys=True).encode()
    return b64encode(raw).decode() + "." + _sign(raw)


def verify_token(token: str) -> int:
    """
    Verify token and return ``user_id``.

    Raises ``AuthError`` on any invalid, tampered or expired token.  The
    reason is logged at debug level and never returned to the client.
    """
    try:
        parts = token.split(".", 1)
        if len(parts) != 2:
            raise ValueError("bad format")
        raw = b64decode(parts[0], validate=True)
        if not hmac.compare_digest(parts[1], _sign(raw)):
            raise ValueError("bad signature")
        payload = json.loads(raw)
        if payload.get("exp", 0) < time.time():
            raise ValueError("token expired")
        user_id = payload["user_id"]
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise ValueError("bad subject")
        return user_id
    except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as exc:
        logger.debug("Token rejected: %s", exc)
        raise AuthError() from exc
