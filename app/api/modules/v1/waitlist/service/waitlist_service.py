import asyncio
import logging
import random
import string
from dataclasses import dataclass
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.core.config import settings
from app.api.core.dependencies.send_mail import send_email
from app.api.core.exceptions import RateLimitExceeded
from app.api.modules.v1.waitlist.models.waitlist_model import WaitlistEntrant
from app.api.modules.v1.waitlist.service.rate_limiter import SignupRateLimiter
from app.api.modules.v1.waitlist.service.waitlist_repository import WaitlistCRUD
from app.api.utils.email_verifier import EmailValidator, normalize_email
from app.api.utils.jwt import create_session_token, verify_session_token

logger = logging.getLogger("app")

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_FAILED_MESSAGE = "Failed to add to waitlist"
# Width of the invite_code column
MAX_INVITE_CODE_LENGTH = 16
MAX_LEADERBOARD_SIZE = 10


def generate_invite_code(length: Optional[int] = None) -> str:
    """Draw an invite code from A-Z0-9. Not suitable for secrets."""
    length = length or settings.INVITE_CODE_LENGTH
    return "".join(random.choices(INVITE_CODE_ALPHABET, k=length))


def build_referral_link(invite_code: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/?invite={invite_code}"


@dataclass
class JoinResult:
    """Outcome of a successful join.

    Attributes:
        entrant: The new entrant, or the existing one for a repeated email.
        total_users: Number of entrants after the join.
        created: False when the email was already on the waitlist.
        token: Session token bound to the entrant.
    """

    entrant: WaitlistEntrant
    total_users: int
    created: bool
    token: str


class WaitlistService:
    """Business logic for waitlist admission and lookups"""

    def __init__(
        self,
        validator: Optional[EmailValidator] = None,
        repository=WaitlistCRUD,
        serialize_admissions: Optional[bool] = None,
    ):
        self._validator = validator
        self.repository = repository
        self.serialize_admissions = (
            settings.WAITLIST_SERIALIZE_ADMISSIONS
            if serialize_admissions is None
            else serialize_admissions
        )
        self._admission_lock = asyncio.Lock()

    @property
    def validator(self) -> EmailValidator:
        if self._validator is None:
            self._validator = EmailValidator()
        return self._validator

    async def join(
        self,
        db: AsyncSession,
        email: Optional[str],
        referral_code: Optional[str],
        client_ip: str,
        rate_limiter: SignupRateLimiter,
    ) -> JoinResult:
        """
        Admit an email to the waitlist.

        Handles:
        - Email validation
        - Per-IP rate limiting
        - Duplicate emails (returned as they are, nothing is written)
        - Position and invite code assignment
        - Referral attribution
        - Session token issue

        Every request that carried an email counts as one attempt for the
        client IP, whatever the outcome.

        Raises:
            HTTPException: 400 for a missing or rejected email, 500 on storage failure
            RateLimitExceeded: When the client IP used up its attempts
        """
        if not email or not email.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email is required",
            )

        normalized = normalize_email(email)

        try:
            validation = await self.validator.validate(normalized, check_deliverability=True)
            if not validation.valid:
                logger.info(f"Rejected waitlist email {normalized}: {validation.reason}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=validation.reason or "Invalid email address",
                )

            limit = await rate_limiter.check(client_ip)
            if limit.is_blocked:
                logger.warning(f"Signup rate limit reached for {client_ip}")
                raise RateLimitExceeded(
                    retry_after=limit.retry_after or rate_limiter.window_seconds,
                    detail=limit.message or "Too many signup attempts",
                    reset_time=limit.reset_time,
                )

            existing = await self.repository.get_by_email(db, normalized)
            if existing is not None:
                logger.info(f"Email already on waitlist: {normalized}")
                return await self._existing_result(db, existing)

            if self.serialize_admissions:
                async with self._admission_lock:
                    return await self._admit(db, normalized, referral_code)
            return await self._admit(db, normalized, referral_code)
        finally:
            await rate_limiter.record(client_ip)

    async def _admit(
        self,
        db: AsyncSession,
        email: str,
        referral_code: Optional[str],
    ) -> JoinResult:
        try:
            position = await self.repository.count(db) + 1
            invite_code = await self._unique_invite_code(db, exclude=referral_code)
            referrer = await self._find_referrer(db, referral_code)

            entrant = await self.repository.create(
                db,
                email=email,
                invite_code=invite_code,
                position=position,
                referred_by_code=referrer.invite_code if referrer else None,
            )
            if referrer is not None:
                await self.repository.increment_referral_count(db, referrer)

            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await self.repository.get_by_email(db, email)
            if existing is not None:
                logger.info(f"Concurrent signup for {email}, returning existing entrant")
                return await self._existing_result(db, existing)
            logger.error(f"Integrity error adding {email} to waitlist", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=JOIN_FAILED_MESSAGE,
            )
        except HTTPException:
            await db.rollback()
            raise
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to add to waitlist: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=JOIN_FAILED_MESSAGE,
            )

        total_users = await self._safe_count(db, fallback=entrant.position)
        token = create_session_token(str(entrant.id), entrant.email)
        self._log_signup(entrant)

        return JoinResult(entrant=entrant, total_users=total_users, created=True, token=token)

    async def _existing_result(self, db: AsyncSession, entrant: WaitlistEntrant) -> JoinResult:
        total_users = await self._safe_count(db, fallback=entrant.position)
        token = create_session_token(str(entrant.id), entrant.email)
        return JoinResult(entrant=entrant, total_users=total_users, created=False, token=token)

    async def _safe_count(self, db: AsyncSession, fallback: int) -> int:
        try:
            return await self.repository.count(db)
        except SQLAlchemyError as e:
            logger.warning(f"Could not count waitlist entrants: {str(e)}")
            return fallback

    async def _unique_invite_code(self, db: AsyncSession, exclude: Optional[str] = None) -> str:
        """Generate an invite code not used by any entrant nor equal to ``exclude``."""
        for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            code = generate_invite_code()
            if exclude and code == exclude.upper():
                continue
            if not await self.repository.invite_code_exists(db, code):
                return code
            logger.debug(f"Invite code collision on {code}, regenerating")

        logger.error(
            f"Could not generate a unique invite code in {settings.INVITE_CODE_MAX_ATTEMPTS} attempts"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=JOIN_FAILED_MESSAGE,
        )

    async def _find_referrer(
        self, db: AsyncSession, referral_code: Optional[str]
    ) -> Optional[WaitlistEntrant]:
        """Look up the referrer; any failure means no attribution."""
        if not referral_code:
            return None

        if len(referral_code) > MAX_INVITE_CODE_LENGTH:
            logger.info("Oversized referral code ignored, joining without referral")
            return None

        try:
            referrer = await self.repository.get_by_invite_code(db, referral_code.upper())
        except SQLAlchemyError as e:
            logger.warning(f"Referral lookup failed for {referral_code}: {str(e)}")
            return None

        if referrer is None:
            logger.info(f"Unknown referral code {referral_code}, joining without referral")
        return referrer

    async def get_user_status(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        invite_code: Optional[str] = None,
    ) -> WaitlistEntrant:
        """Find an entrant by email, or by invite code when no email is given."""
        if not email and not invite_code:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email or invite code required",
            )

        if email:
            entrant = await self.repository.get_by_email(db, normalize_email(email))
        else:
            entrant = await self.repository.get_by_invite_code(db, invite_code.strip().upper())

        if entrant is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return entrant

    async def get_leaderboard_data(self, db: AsyncSession) -> Tuple[List[WaitlistEntrant], int]:
        limit = min(settings.LEADERBOARD_SIZE, MAX_LEADERBOARD_SIZE)
        leaderboard = await self.repository.get_leaderboard(db, limit=limit)
        total_users = await self.repository.count(db)
        return leaderboard, total_users

    async def get_user_data(
        self, db: AsyncSession, email: Optional[str]
    ) -> Tuple[WaitlistEntrant, List[WaitlistEntrant], int]:
        """Entrant, leaderboard and total count for the success page."""
        if not email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

        entrant = await self.repository.get_by_email(db, normalize_email(email))
        if entrant is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        leaderboard, total_users = await self.get_leaderboard_data(db)
        return entrant, leaderboard, total_users

    async def get_authenticated_entrant(
        self, db: AsyncSession, token: Optional[str]
    ) -> Tuple[Optional[WaitlistEntrant], Optional[str]]:
        """
        Resolve the session token to a current entrant.

        Returns:
            (entrant, None) when authenticated, otherwise (None, reason)
        """
        if not token:
            return None, "No authentication token found"

        claims = verify_session_token(token)
        if claims is None:
            return None, "Invalid or expired token"

        entrant = await self.repository.get_by_email(db, claims["email"])
        if entrant is None:
            return None, "User not found"
        return entrant, None

    async def send_welcome_email(
        self,
        email: str,
        position: int,
        total_users: int,
        invite_code: str,
    ):
        """Send the welcome email. Runs as a background task; failures are only logged."""
        try:
            context = {
                "position": position,
                "total_users": max(total_users, position),
                "invite_code": invite_code,
                "referral_link": build_referral_link(invite_code),
            }
            sent = await send_email(
                template_name="waitlist_welcome.html",
                subject=f"Welcome to {settings.APP_NAME} - You're #{position} in line!",
                recipient=email,
                context=context,
            )
            if sent:
                logger.info(f"Welcome email sent successfully to {email}")
        except Exception as e:
            logger.error(f"Failed to send welcome email to {email}: {str(e)}", exc_info=True)

    def _log_signup(self, entrant: WaitlistEntrant):
        logger.info(
            f"New waitlist signup: {entrant.email} at position {entrant.position} "
            f"(referred_by={entrant.referred_by_code})"
        )


waitlist_service = WaitlistService()
