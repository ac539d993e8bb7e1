import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from app.api.core.config import settings

logger = logging.getLogger("app")


async def require_admin_key(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")):
    """Dependency guarding operator endpoints with the X-Admin-Key header.

    Raises 403 when ADMIN_API_KEY is unset or the header does not match it.
    """
    if not settings.ADMIN_API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access disabled")

    if not x_admin_key or not hmac.compare_digest(
        x_admin_key.encode(), settings.ADMIN_API_KEY.encode()
    ):
        logger.warning("Rejected admin request with a missing or wrong key")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")
