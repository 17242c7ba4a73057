"""Domain models for bd_referral: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ReferralCode:
    code: str                         # lower-case, unique
    owner_user_id: str
    reward_amount: int | None = None  # None -> configured default
    max_claims: int | None = None     # None -> configured default
    claim_count: int = 0
    is_active: bool = True
    created_at: datetime | None = None


@dataclass
class ReferralClaim:
    user_id: str                      # the referee; one claim per user
    referral_code: str
    referrer_id: str
    reward_amount: int
    claimed_at: datetime | None = None


@dataclass
class ReferralHistory:
    claims: list[ReferralClaim] = field(default_factory=list)
    coins_by_referee: dict[str, int] = field(default_factory=dict)

    @property
    def coins_earned(self) -> int:
        return sum(self.coins_by_referee.values())
