"""Cookie management utilities for the waitlist session."""

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import Response

from app.api.core.config import settings

logger = logging.getLogger(__name__)


def get_cookie_settings() -> Dict:
    """
    Determine cookie settings for the current environment.

    Production cookies are Secure; everywhere else they work over plain HTTP
    so local development is not locked out.

    Returns:
        Dictionary with cookie configuration:
            - secure: Whether to set Secure flag
            - samesite: SameSite attribute value

    Examples:
        >>> settings = get_cookie_settings()
        >>> response.set_cookie("token", value, **settings)
    """
    return {
        "secure": settings.IS_PRODUCTION,
        "samesite": "lax",
    }


def set_auth_cookie(response: Response, token: str) -> None:
    """
    Attach the session token as an HTTP-only cookie.

    Args:
        response: FastAPI response object to set cookie on.
        token: Signed session token.

    Examples:
        >>> response = JSONResponse(content={"success": True})
        >>> set_auth_cookie(response, token)
    """
    cookie_settings = get_cookie_settings()
    max_age = settings.SESSION_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=cookie_settings["secure"],
        samesite=cookie_settings["samesite"],
        max_age=max_age,
        path="/",
    )

    logger.debug(
        f"Set auth cookie with secure={cookie_settings['secure']}, "
        f"samesite={cookie_settings['samesite']}"
    )


def get_auth_cookie(request: Request) -> Optional[str]:
    """Return the session token carried by the request, if any."""
    return request.cookies.get(settings.AUTH_COOKIE_NAME)
