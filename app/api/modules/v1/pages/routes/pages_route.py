import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.core.config import BASE_DIR, settings
from app.api.core.dependencies.send_mail import render_email
from app.api.db.database import get_db
from app.api.modules.v1.waitlist.models.waitlist_model import WaitlistEntrant
from app.api.modules.v1.waitlist.service.waitlist_service import (
    build_referral_link,
    waitlist_service,
)
from app.api.utils.cookie_helper import get_auth_cookie
from app.api.utils.email_verifier import normalize_email

router = APIRouter(include_in_schema=False)
logger = logging.getLogger("app")

templates = Jinja2Templates(directory=str(Path(BASE_DIR) / "app/templates"))
templates.env.globals["APP_NAME"] = settings.APP_NAME
templates.env.globals["APP_TAGLINE"] = settings.APP_TAGLINE

EMAIL_PREVIEW_CONTEXT = {
    "position": 42,
    "total_users": 1337,
    "invite_code": "ABC12345",
}


async def _session_entrant(request: Request, db: AsyncSession) -> Optional[WaitlistEntrant]:
    entrant, _ = await waitlist_service.get_authenticated_entrant(db, get_auth_cookie(request))
    return entrant


@router.get("/", response_class=HTMLResponse)
async def index_page(
    request: Request,
    invite: Optional[str] = Query(default=None),
    ref: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Signup form. Returning visitors with a valid session get a link to their status."""
    invite_code = (invite or ref or "").strip().upper()
    entrant = await _session_entrant(request, db)

    return templates.TemplateResponse(
        request,
        "index.html",
        {"invite_code": invite_code, "entrant": entrant},
    )


@router.get("/success", response_class=HTMLResponse)
async def success_page(
    request: Request,
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Entrant card and leaderboard, for the entrant named by ?email= or the session."""
    entrant = None
    if email:
        entrant = await waitlist_service.repository.get_by_email(db, normalize_email(email))
    if entrant is None:
        entrant = await _session_entrant(request, db)
    if entrant is None:
        logger.info("Success page requested without a known entrant, redirecting")
        return RedirectResponse(url="/", status_code=303)

    leaderboard, total_users = await waitlist_service.get_leaderboard_data(db)

    return templates.TemplateResponse(
        request,
        "success.html",
        {
            "entrant": entrant,
            "leaderboard": leaderboard,
            "total_users": total_users,
            "referral_link": build_referral_link(entrant.invite_code),
        },
    )


@router.get("/email-preview", response_class=HTMLResponse)
async def email_preview():
    """Render the welcome email with sample data."""
    context = {
        **EMAIL_PREVIEW_CONTEXT,
        "referral_link": build_referral_link(EMAIL_PREVIEW_CONTEXT["invite_code"]),
    }
    return HTMLResponse(render_email("waitlist_welcome.html", context))
