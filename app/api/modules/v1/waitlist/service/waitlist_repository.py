import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.modules.v1.waitlist.models.waitlist_model import WaitlistEntrant

logger = logging.getLogger("app")


class WaitlistCRUD:
    """Data access for waitlist entrants.

    Lookups return None when nothing matches. Storage errors are not caught
    here; the admission workflow decides how to report them.
    """

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[WaitlistEntrant]:
        """
        Get an entrant by normalised email address.

        Args:
            db: Database session
            email: Lower-cased, stripped email address

        Returns:
            WaitlistEntrant or None if not found
        """
        result = await db.execute(select(WaitlistEntrant).where(WaitlistEntrant.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_invite_code(db: AsyncSession, invite_code: str) -> Optional[WaitlistEntrant]:
        """
        Get an entrant by invite code.

        Args:
            db: Database session
            invite_code: Invite code, compared exactly

        Returns:
            WaitlistEntrant or None if not found
        """
        result = await db.execute(
            select(WaitlistEntrant).where(WaitlistEntrant.invite_code == invite_code)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def invite_code_exists(db: AsyncSession, invite_code: str) -> bool:
        result = await db.execute(
            select(func.count())
            .select_from(WaitlistEntrant)
            .where(WaitlistEntrant.invite_code == invite_code)
        )
        return result.scalar_one() > 0

    @staticmethod
    async def create(
        db: AsyncSession,
        email: str,
        invite_code: str,
        position: int,
        referred_by_code: Optional[str] = None,
    ) -> WaitlistEntrant:
        """
        Stage a new entrant and flush it so defaults and constraints apply.

        Args:
            db: Async database session
            email: Normalised email address
            invite_code: Freshly generated invite code
            position: Queue position assigned by the caller
            referred_by_code: Invite code of the referrer, if one matched

        Returns:
            WaitlistEntrant: The persisted (not yet committed) entrant

        Raises:
            sqlalchemy.exc.IntegrityError: If the email or invite code is taken
        """
        entrant = WaitlistEntrant(
            email=email,
            invite_code=invite_code,
            position=position,
            referred_by_code=referred_by_code,
        )

        db.add(entrant)
        await db.flush()
        await db.refresh(entrant)

        logger.info(
            "Created waitlist entrant: id=%s, email=%s, position=%s",
            entrant.id,
            entrant.email,
            entrant.position,
        )

        return entrant

    @staticmethod
    async def count(db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(WaitlistEntrant))
        return result.scalar_one()

    @staticmethod
    async def get_leaderboard(db: AsyncSession, limit: int = 10) -> List[WaitlistEntrant]:
        """
        Get the earliest entrants.

        Args:
            db: Database session
            limit: Maximum number of entrants

        Returns:
            Entrants ordered by position, then creation time
        """
        result = await db.execute(
            select(WaitlistEntrant)
            .order_by(WaitlistEntrant.position.asc(), WaitlistEntrant.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def increment_referral_count(db: AsyncSession, entrant: WaitlistEntrant) -> WaitlistEntrant:
        """
        Credit one referral to an entrant within the caller's transaction.

        The increment is computed by the database so concurrent referrals of
        the same entrant are all counted.
        """
        await db.execute(
            update(WaitlistEntrant)
            .where(WaitlistEntrant.id == entrant.id)
            .values(
                referral_count=WaitlistEntrant.referral_count + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await db.flush()
        await db.refresh(entrant)

        logger.info(
            "Incremented referral count: id=%s, referral_count=%s",
            entrant.id,
            entrant.referral_count,
        )

        return entrant
