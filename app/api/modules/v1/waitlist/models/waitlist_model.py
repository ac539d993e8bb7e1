import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class WaitlistEntrant(SQLModel, table=True):
    """A waitlist signup.

    Attributes:
        id: Opaque identifier assigned at creation.
        email: Lower-cased email address, unique across entrants.
        invite_code: Public code the entrant shares; unique.
        referred_by_code: Invite code quoted at signup, if it matched an entrant.
        referral_count: Number of entrants who signed up with this invite_code.
        position: Queue rank assigned at creation (count of rows + 1). Advisory,
            not constrained unique.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
    """

    __tablename__ = "waitlist_users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True, nullable=False)
    email: str = Field(unique=True, index=True, max_length=255, nullable=False)
    invite_code: str = Field(unique=True, index=True, max_length=16, nullable=False)
    referred_by_code: Optional[str] = Field(default=None, index=True, max_length=16)
    referral_count: int = Field(default=0, nullable=False)
    position: int = Field(index=True, nullable=False)

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
