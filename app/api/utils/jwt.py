import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt as pyjwt

from app.api.core.config import DEFAULT_JWT_SECRET, settings

logger = logging.getLogger("app")


def _signing_secret() -> str:
    if settings.JWT_SECRET == DEFAULT_JWT_SECRET and settings.IS_PRODUCTION:
        logger.warning("JWT_SECRET is not configured; session tokens use the default secret")
    return settings.JWT_SECRET


def create_session_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed session token binding an entrant id and email.

    Args:
        user_id: Id of the waitlist entrant
        email: Entrant's normalised email address
        expires_delta: Optional custom lifetime, defaults to SESSION_TOKEN_EXPIRE_DAYS

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS)

    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + expires_delta,
    }

    token = pyjwt.encode(payload, _signing_secret(), algorithm=settings.JWT_ALGORITHM)
    logger.info(f"Issued session token for entrant {user_id}")
    return token


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid
    """
    return pyjwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def verify_session_token(token: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Verify a session token and return its claims.

    A bad signature, an expired token or a malformed one all mean
    "not authenticated"; this function never raises for them.

    Args:
        token: JWT token string, possibly None

    Returns:
        {"user_id": ..., "email": ...} if valid, None otherwise
    """
    if not token:
        return None

    try:
        payload = decode_token(token)
    except pyjwt.ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except pyjwt.InvalidTokenError as e:
        logger.warning(f"Invalid session token: {str(e)}")
        return None

    email = payload.get("email")
    if not email:
        logger.warning("Session token without email claim")
        return None

    return {"user_id": payload["sub"], "email": email}
