import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from app.api.core.config import settings
from app.api.core.dependencies.admin_auth import require_admin_key
from app.api.modules.v1.waitlist.routes.docs.waitlist_docs import (
    clear_all_rate_limits_responses,
    clear_rate_limit_responses,
    provider_status_responses,
    rate_limit_stats_responses,
)
from app.api.modules.v1.waitlist.schemas.waitlist_schema import (
    ProviderStatusResponse,
    RateLimitStatsResponse,
)
from app.api.modules.v1.waitlist.service.rate_limiter import (
    SignupRateLimiter,
    get_rate_limiter,
)
from app.api.utils.response_payloads import error_response, success_response
from app.api.utils.zerobounce import DeliverabilityClient

router = APIRouter(tags=["Diagnostics"])
logger = logging.getLogger("app")


def get_deliverability_client() -> DeliverabilityClient:
    return DeliverabilityClient()


@router.get(
    "/rate-limit-stats",
    response_model=RateLimitStatsResponse,
    responses=rate_limit_stats_responses,
)
async def rate_limit_stats(rate_limiter: SignupRateLimiter = Depends(get_rate_limiter)):
    """Signup rate limiter configuration and number of tracked IPs."""
    try:
        stats = await rate_limiter.stats()
        return success_response(
            status.HTTP_200_OK,
            data={"stats": stats, "timestamp": datetime.now(timezone.utc)},
        )
    except Exception as e:
        logger.error(f"Error getting rate limit stats: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message="Internal server error",
        )


@router.get(
    "/provider-status",
    response_model=ProviderStatusResponse,
    responses=provider_status_responses,
)
async def provider_status(client: DeliverabilityClient = Depends(get_deliverability_client)):
    """Deliverability provider credits and usage."""
    try:
        credits, usage = await asyncio.gather(client.get_credits(), client.get_usage())
        return success_response(
            status.HTTP_200_OK,
            data={
                "data": {
                    "credits": credits,
                    "usage": usage,
                    "hasApiKey": client.enabled,
                    "environment": settings.ENVIRONMENT,
                }
            },
        )
    except Exception as e:
        logger.error(f"Error getting deliverability provider status: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message="Failed to get deliverability provider status",
        )


@router.delete(
    "/rate-limit/{ip}",
    dependencies=[Depends(require_admin_key)],
    responses=clear_rate_limit_responses,
)
async def clear_rate_limit(ip: str, rate_limiter: SignupRateLimiter = Depends(get_rate_limiter)):
    """Forget the signup attempts recorded for one IP."""
    try:
        cleared = await rate_limiter.clear(ip)
        logger.info(f"Rate limit cleared for {ip} (had_entry={cleared})")
        return success_response(
            status.HTTP_200_OK,
            message="Rate limit cleared",
            data={"ip": ip, "cleared": cleared},
        )
    except Exception as e:
        logger.error(f"Error clearing rate limit for {ip}: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message="Internal server error",
        )


@router.delete(
    "/rate-limit",
    dependencies=[Depends(require_admin_key)],
    responses=clear_all_rate_limits_responses,
)
async def clear_all_rate_limits(rate_limiter: SignupRateLimiter = Depends(get_rate_limiter)):
    """Forget every recorded signup attempt."""
    try:
        await rate_limiter.clear_all()
        logger.info("All signup rate limits cleared")
        return success_response(status.HTTP_200_OK, message="All rate limits cleared")
    except Exception as e:
        logger.error(f"Error clearing rate limits: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message="Internal server error",
        )
