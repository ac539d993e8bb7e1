"""
ZeroBounce deliverability API client.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.api.core.config import settings

logger = logging.getLogger("app")

STATUS_REASONS = {
    "invalid": "Email address is invalid and cannot receive emails",
    "catch-all": "Email domain accepts all emails (catch-all), cannot verify deliverability",
    "spam": "Email address is flagged as spam",
    "do_not_mail": "Email address is on do-not-mail list",
    "unknown": "Unable to verify email address",
    "toxic": "Email address contains toxic words",
    "disposable": "Email address is from a disposable/temporary email service",
    "role": "Email address is a role-based address (e.g., admin@, info@)",
    "global_suppression": "Email address is globally suppressed",
    "timeout": "Email validation timed out",
}


@dataclass
class DeliverabilityResult:
    """Outcome of a provider call.

    Attributes:
        valid: Provider verdict. Meaningless when provider_error is set.
        reason: Human readable explanation.
        status: Raw provider status, when the provider answered.
        provider_error: True when the provider could not give a verdict
            (transport failure, non-2xx, error body).
    """

    valid: bool
    reason: Optional[str] = None
    status: Optional[str] = None
    provider_error: bool = False


def classify_status(status: Optional[str]) -> DeliverabilityResult:
    """Map a ZeroBounce status string to a verdict."""
    if status == "valid":
        return DeliverabilityResult(True, "Email is valid and deliverable", status)

    if status in STATUS_REASONS:
        return DeliverabilityResult(False, STATUS_REASONS[status], status)

    return DeliverabilityResult(
        False,
        f"Email validation failed with status: {status}",
        status or "unknown",
    )


class DeliverabilityClient:
    """Thin async wrapper around the ZeroBounce v2 endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.ZEROBOUNCE_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.ZEROBOUNCE_API_URL).rstrip("/")
        self.timeout = settings.ZEROBOUNCE_TIMEOUT if timeout is None else timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/{path}",
                params={"api_key": self.api_key, **params},
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"Unexpected response body: {type(data).__name__}")
            return data

    async def validate(self, email: str) -> DeliverabilityResult:
        """
        Ask the provider whether an address can receive mail.

        Args:
            email: Normalised email address.

        Returns:
            DeliverabilityResult. Without an API key the check is skipped and
            the address is reported valid.
        """
        if not self.enabled:
            logger.info("ZeroBounce: No API key provided, skipping validation")
            return DeliverabilityResult(True, "Deliverability check skipped")

        logger.info(f"ZeroBounce: Validating email {email}")

        try:
            data = await self._get("validate", {"email": email, "ip_address": ""})
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"ZeroBounce validation error: {str(e)}")
            return DeliverabilityResult(
                False,
                "Email validation service temporarily unavailable",
                provider_error=True,
            )

        if "error" in data:
            logger.warning(f"ZeroBounce API error: {data['error']}")
            return DeliverabilityResult(
                False,
                "Email validation service unavailable",
                provider_error=True,
            )

        result = classify_status(data.get("status"))
        logger.info(f"ZeroBounce: {email} -> {result.status}")
        return result

    async def get_credits(self) -> int:
        """Remaining credits on the account, 0 when unknown."""
        if not self.enabled:
            return 0

        try:
            data = await self._get("getcredits", {})
            return int(data.get("Credits", data.get("credits", 0)) or 0)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting ZeroBounce credits: {str(e)}")
            return 0

    async def get_usage(self) -> Optional[Dict[str, Any]]:
        """API usage statistics, None when unavailable."""
        if not self.enabled:
            return None

        try:
            return await self._get("getapiusage", {})
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting ZeroBounce usage: {str(e)}")
            return None
