"""ReferralService: one-time referral claims.

A claim is a single transaction: claim row, quota bump and both BidCoin
credits commit together or not at all. A user can never end up "claimed but
uncredited", and two concurrent claims by the same user resolve through the
referral_claims primary key (exactly one wins).
"""

import logging
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bd_bidcoin.application.service import BidcoinService
from src.bd_common.enums import BidcoinTransactionType
from src.bd_common.errors import (
    AlreadyClaimedError,
    InternalError,
    RateLimitError,
    ReferralCodeExhaustedError,
    ReferralCodeNotFoundError,
    SelfReferralError,
    ValidationError,
)
from src.bd_common.redis_client import FixedWindowThrottle
from src.bd_referral.application.schemas import (
    ClaimReferralResponse,
    ReferralCodeResponse,
    ReferralHistoryItem,
    ReferralHistoryResponse,
    ReferralTotals,
)
from src.bd_referral.domain.models import ReferralClaim, ReferralCode, ReferralHistory
from src.bd_referral.domain.repository import ReferralRepositoryProtocol
from src.bd_referral.infrastructure.persistence import ReferralRepository

logger = logging.getLogger(__name__)

_CODE_BYTES = 4  # 8 hex characters
_CODE_ATTEMPTS = 5


def normalize_code(code: str | None) -> str:
    normalized = (code or "").strip().lower()
    if not normalized:
        raise ValidationError("Referral code is required")
    return normalized


def attempt_key(user_id: str) -> str:
    return f"referral:attempt:{user_id}"


class ReferralService:
    def __init__(
        self,
        repo: ReferralRepositoryProtocol | None = None,
        bidcoins: BidcoinService | None = None,
        throttle: FixedWindowThrottle | None = None,
    ) -> None:
        self._repo: ReferralRepositoryProtocol = repo or ReferralRepository()
        self._bidcoins = bidcoins or BidcoinService()
        self._throttle = throttle or FixedWindowThrottle()

    async def claim(self, db: AsyncSession, user_id: str, code: str) -> ClaimReferralResponse:
        normalized = normalize_code(code)

        allowed = await self._throttle.allow(
            attempt_key(user_id),
            settings.REFERRAL_MAX_ATTEMPTS,
            settings.REFERRAL_ATTEMPT_WINDOW_SECONDS,
        )
        if not allowed:
            logger.warning("Referral attempts throttled: user=%s", user_id)
            raise RateLimitError()

        try:
            referral = await self._repo.get_code(db, normalized)
            if referral is None or not referral.is_active:
                raise ReferralCodeNotFoundError(normalized)
            if referral.owner_user_id == user_id:
                raise SelfReferralError()

            reward = (
                referral.reward_amount
                if referral.reward_amount is not None
                else settings.REFERRAL_BONUS_BIDCOINS
            )
            claim = ReferralClaim(
                user_id=user_id,
                referral_code=normalized,
                referrer_id=referral.owner_user_id,
                reward_amount=reward,
            )
            if not await self._repo.insert_claim(db, claim):
                raise AlreadyClaimedError(user_id)

            max_claims = (
                referral.max_claims
                if referral.max_claims is not None
                else settings.REFERRAL_CODE_MAX_CLAIMS
            )
            if not await self._repo.consume_code(db, normalized, max_claims):
                raise ReferralCodeExhaustedError(normalized)

            credits = [
                (
                    user_id,
                    reward,
                    normalized,
                    "referral_codes",
                    {"direction": "referee", "code": normalized},
                )
            ]
            referrer_reward = settings.REFERRER_BONUS_BIDCOINS
            if referrer_reward > 0:
                credits.append(
                    (
                        referral.owner_user_id,
                        referrer_reward,
                        user_id,
                        "referral_claims",
                        {"direction": "referrer", "code": normalized},
                    )
                )
            # Wallet rows are locked in user id order across concurrent claims
            changes = {}
            for target, amount, reference_id, reference_table, metadata in sorted(
                credits, key=lambda c: c[0]
            ):
                changes[target] = await self._bidcoins.apply_earn(
                    db,
                    target,
                    amount,
                    BidcoinTransactionType.REFERRAL_BONUS,
                    reference_id=reference_id,
                    reference_table=reference_table,
                    metadata=metadata,
                )
            referee_change = changes[user_id]
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Referral claimed: user=%s code=%s referrer=%s reward=%d",
            user_id, normalized, referral.owner_user_id, reward,
        )
        return ClaimReferralResponse(
            code=normalized,
            referrer_id=referral.owner_user_id,
            reward_amount=reward,
            balance=referee_change.balance,
            referrer_reward_amount=max(referrer_reward, 0),
        )

    async def get_or_create_code(self, db: AsyncSession, user_id: str) -> ReferralCodeResponse:
        """Return the user's referral code, issuing one on first request."""
        try:
            referral = await self._repo.get_code_by_owner(db, user_id)
            attempts = 0
            while referral is None:
                attempts += 1
                if attempts > _CODE_ATTEMPTS:
                    raise InternalError("Could not allocate a unique referral code")
                candidate = ReferralCode(code=secrets.token_hex(_CODE_BYTES), owner_user_id=user_id)
                if await self._repo.insert_code(db, candidate):
                    await db.commit()
                    logger.info("Referral code issued: user=%s code=%s", user_id, candidate.code)
                    referral = candidate
                else:
                    # Either the code collided or a concurrent request issued one
                    referral = await self._repo.get_code_by_owner(db, user_id)
        except Exception:
            await db.rollback()
            raise

        return ReferralCodeResponse(
            referral_code=referral.code,
            claim_count=referral.claim_count,
            max_claims=(
                referral.max_claims
                if referral.max_claims is not None
                else settings.REFERRAL_CODE_MAX_CLAIMS
            ),
        )

    async def list_referrals(self, db: AsyncSession, user_id: str) -> ReferralHistoryResponse:
        claims = await self._repo.list_claims_by_referrer(db, user_id)
        earnings = await self._repo.referrer_earnings(db, user_id)
        history = ReferralHistory(claims=claims, coins_by_referee=earnings)
        return ReferralHistoryResponse(
            referrals=[
                ReferralHistoryItem(
                    user_id=c.user_id,
                    claimed_at=c.claimed_at.isoformat() if c.claimed_at else "",
                    coins_awarded=earnings.get(c.user_id, 0),
                )
                for c in history.claims
            ],
            totals=ReferralTotals(
                referral_count=len(history.claims), coins_earned=history.coins_earned
            ),
        )
