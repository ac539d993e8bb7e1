import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.core.exceptions import RateLimitExceeded, rate_limit_response
from app.api.db.database import get_db
from app.api.modules.v1.waitlist.models.waitlist_model import WaitlistEntrant
from app.api.modules.v1.waitlist.routes.docs.waitlist_docs import (
    check_auth_responses,
    join_waitlist_responses,
    leaderboard_responses,
    user_data_responses,
    user_status_responses,
)
from app.api.modules.v1.waitlist.schemas.waitlist_schema import (
    CheckAuthResponse,
    JoinWaitlistRequest,
    JoinWaitlistResponse,
    LeaderboardResponse,
    UserDataResponse,
    UserStatusResponse,
    WaitlistEntrantResponse,
)
from app.api.modules.v1.waitlist.service.rate_limiter import (
    SignupRateLimiter,
    get_rate_limiter,
)
from app.api.modules.v1.waitlist.service.waitlist_service import waitlist_service
from app.api.utils.client_ip import get_client_ip
from app.api.utils.cookie_helper import get_auth_cookie, set_auth_cookie
from app.api.utils.response_payloads import auth_response, error_response, success_response

router = APIRouter(tags=["Waitlist"])
logger = logging.getLogger("app")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def serialize_entrant(entrant: WaitlistEntrant) -> Dict[str, Any]:
    return WaitlistEntrantResponse.model_validate(entrant).model_dump(mode="json")


def success_redirect_url(email: str) -> str:
    return f"/success?email={quote(email, safe='')}"


@router.post(
    "/join",
    response_model=JoinWaitlistResponse,
    status_code=status.HTTP_201_CREATED,
    responses=join_waitlist_responses,
)
async def join_waitlist(
    payload: JoinWaitlistRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    rate_limiter: SignupRateLimiter = Depends(get_rate_limiter),
):
    """
    Add an email to the waitlist.

    Validates:
    - email: Well formed, not disposable, not a known domain typo, able to receive mail
    - inviteCode: Optional invite code of the entrant who referred this signup

    Returns:
    - 201: Joined the waitlist, session cookie set
    - 200: Email already on the waitlist, session cookie set
    - 400: Missing or rejected email
    - 429: Too many signup attempts from this IP
    - 500: Server error
    """
    client_ip = get_client_ip(request)

    try:
        result = await waitlist_service.join(
            db,
            email=payload.email,
            referral_code=payload.invite_code,
            client_ip=client_ip,
            rate_limiter=rate_limiter,
        )
    except RateLimitExceeded as e:
        return rate_limit_response(e)
    except HTTPException as e:
        logger.warning(
            f"Waitlist join failed - Email: {payload.email}, "
            f"Status: {e.status_code}, Reason: {e.detail}"
        )
        return error_response(status_code=e.status_code, message=e.detail)
    except Exception as e:
        logger.error(
            f"Unexpected error during waitlist join - Email: {payload.email}, Error: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message=UNEXPECTED_ERROR_MESSAGE,
        )

    entrant = result.entrant
    if result.created:
        background_tasks.add_task(
            waitlist_service.send_welcome_email,
            entrant.email,
            entrant.position,
            result.total_users,
            entrant.invite_code,
        )

    response = success_response(
        status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        "Successfully joined the waitlist!" if result.created else "Email already registered",
        data={
            "user": serialize_entrant(entrant),
            "totalUsers": result.total_users,
            "redirectUrl": success_redirect_url(entrant.email),
        },
    )
    set_auth_cookie(response, result.token)
    return response


@router.get("/user-status", response_model=UserStatusResponse, responses=user_status_responses)
async def user_status(
    email: Optional[str] = Query(default=None),
    invite_code: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Look up an entrant by email or invite code."""
    try:
        entrant = await waitlist_service.get_user_status(db, email=email, invite_code=invite_code)
        return success_response(status.HTTP_200_OK, data={"user": serialize_entrant(entrant)})
    except HTTPException as e:
        return error_response(status_code=e.status_code, message=e.detail)
    except Exception as e:
        logger.error(f"Error in user-status lookup: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message=UNEXPECTED_ERROR_MESSAGE,
        )


@router.get("/leaderboard", response_model=LeaderboardResponse, responses=leaderboard_responses)
async def leaderboard(db: AsyncSession = Depends(get_db)):
    """Earliest entrants ordered by position, with the total entrant count."""
    try:
        entrants, total_users = await waitlist_service.get_leaderboard_data(db)
        return success_response(
            status.HTTP_200_OK,
            data={
                "totalUsers": total_users,
                "recentUsers": [serialize_entrant(entrant) for entrant in entrants],
            },
        )
    except Exception as e:
        logger.error(f"Error loading leaderboard: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message=UNEXPECTED_ERROR_MESSAGE,
        )


@router.get("/check-auth", response_model=CheckAuthResponse, responses=check_auth_responses)
async def check_auth(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Report whether the request carries a valid session cookie.

    Always answers 200 with ``authenticated`` set accordingly; only a failure
    of the check itself yields 500.
    """
    try:
        entrant, reason = await waitlist_service.get_authenticated_entrant(
            db, get_auth_cookie(request)
        )
    except Exception as e:
        logger.error(f"Error in check-auth: {str(e)}", exc_info=True)
        return auth_response(
            False,
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if entrant is None:
        return auth_response(False, message=reason)
    return auth_response(True, user=serialize_entrant(entrant))


@router.get("/user-data", response_model=UserDataResponse, responses=user_data_responses)
async def user_data(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Entrant, leaderboard and total count in one call, for the success page."""
    try:
        entrant, entrants, total_users = await waitlist_service.get_user_data(db, email)
        return success_response(
            status.HTTP_200_OK,
            data={
                "user": serialize_entrant(entrant),
                "leaderboard": [serialize_entrant(item) for item in entrants],
                "totalUsers": total_users,
            },
        )
    except HTTPException as e:
        return error_response(status_code=e.status_code, message=e.detail)
    except Exception as e:
        logger.error(f"Error loading user data: {str(e)}", exc_info=True)
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="INTERNAL_SERVER_ERROR",
            message=UNEXPECTED_ERROR_MESSAGE,
        )
