import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class JoinWaitlistRequest(BaseModel):
    """Signup payload.

    The email is optional at the schema level so a missing address is
    reported as a plain 400 by the admission workflow, and format checks use
    the validator's own messages rather than Pydantic's.

    The invite code is not length-checked here: a code that matches no
    entrant, whatever its shape, only means the signup is not attributed.
    """

    email: Optional[str] = None
    invite_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("inviteCode", "invite_code", "referralCode"),
    )

    @field_validator("email", "invite_code", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("invite_code")
    @classmethod
    def normalize_invite_code(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class WaitlistEntrantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    invite_code: str
    referred_by_code: Optional[str] = None
    referral_count: int = 0
    position: int
    created_at: datetime
    updated_at: datetime


class JoinWaitlistResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    user: Optional[WaitlistEntrantResponse] = None
    totalUsers: Optional[int] = None
    redirectUrl: Optional[str] = None


class UserStatusResponse(BaseModel):
    success: bool
    user: Optional[WaitlistEntrantResponse] = None


class LeaderboardResponse(BaseModel):
    success: bool
    totalUsers: int
    recentUsers: List[WaitlistEntrantResponse]


class UserDataResponse(BaseModel):
    success: bool
    user: WaitlistEntrantResponse
    leaderboard: List[WaitlistEntrantResponse]
    totalUsers: int


class CheckAuthResponse(BaseModel):
    authenticated: bool
    user: Optional[WaitlistEntrantResponse] = None
    message: Optional[str] = None


class RateLimitStatsResponse(BaseModel):
    success: bool
    stats: Dict[str, Any]
    timestamp: datetime


class ProviderStatusResponse(BaseModel):
    success: bool
    data: Dict[str, Any]
