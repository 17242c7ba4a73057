"""Pydantic schemas for bd_referral API."""

from pydantic import BaseModel, Field


class ClaimReferralRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32, description="Referral code")


class ClaimReferralResponse(BaseModel):
    code: str
    referrer_id: str
    reward_amount: int
    balance: int
    referrer_reward_amount: int = 0


class ReferralCodeResponse(BaseModel):
    referral_code: str
    claim_count: int
    max_claims: int | None


class ReferralHistoryItem(BaseModel):
    user_id: str
    claimed_at: str  # ISO8601 string
    coins_awarded: int


class ReferralTotals(BaseModel):
    referral_count: int
    coins_earned: int


class ReferralHistoryResponse(BaseModel):
    referrals: list[ReferralHistoryItem]
    totals: ReferralTotals
