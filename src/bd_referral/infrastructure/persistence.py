"""ReferralRepository: concrete implementation of ReferralRepositoryProtocol.

Uniqueness is enforced by the database, not by read-then-write checks:
  - referral_claims.user_id is the primary key, so a second claim by the same
    user is an ON CONFLICT no-op that returns zero rows.
  - the quota bump is a conditional UPDATE that returns zero rows once a
    capped code has been used up.

Transaction ownership: The CALLER (application service) commits/rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.enums import BidcoinTransactionType
from src.bd_referral.domain.models import ReferralClaim, ReferralCode

_CODE_COLUMNS = """
    code, owner_user_id, reward_amount, max_claims, claim_count, is_active, created_at
"""

_GET_CODE_SQL = text(f"""
    SELECT {_CODE_COLUMNS}
    FROM referral_codes
    WHERE code = :code
""")

_GET_CODE_BY_OWNER_SQL = text(f"""
    SELECT {_CODE_COLUMNS}
    FROM referral_codes
    WHERE owner_user_id = :owner_user_id
""")

# No conflict target: a clash on either the code or the owner is a no-op
_INSERT_CODE_SQL = text("""
    INSERT INTO referral_codes (code, owner_user_id, reward_amount, max_claims)
    VALUES (:code, :owner_user_id, :reward_amount, :max_claims)
    ON CONFLICT DO NOTHING
    RETURNING code
""")

_INSERT_CLAIM_SQL = text("""
    INSERT INTO referral_claims (user_id, referral_code, referrer_id, reward_amount)
    VALUES (:user_id, :referral_code, :referrer_id, :reward_amount)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id
""")

_CONSUME_CODE_SQL = text("""
    UPDATE referral_codes
    SET claim_count = claim_count + 1
    WHERE code = :code
      AND is_active
      AND (CAST(:max_claims AS INTEGER) IS NULL OR claim_count < CAST(:max_claims AS INTEGER))
    RETURNING claim_count
""")

_LIST_CLAIMS_SQL = text("""
    SELECT user_id, referral_code, referrer_id, reward_amount, claimed_at
    FROM referral_claims
    WHERE referrer_id = :referrer_id
    ORDER BY claimed_at DESC
""")

_REFERRER_EARNINGS_SQL = text("""
    SELECT reference_id, COALESCE(SUM(delta), 0) AS coins
    FROM bidcoin_transactions
    WHERE user_id = :referrer_id
      AND transaction_type = :transaction_type
      AND metadata ->> 'direction' = 'referrer'
    GROUP BY reference_id
""")


def _row_to_code(row: Any) -> ReferralCode:
    return ReferralCode(
        code=row.code,
        owner_user_id=row.owner_user_id,
        reward_amount=row.reward_amount,
        max_claims=row.max_claims,
        claim_count=int(row.claim_count),
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )


def _row_to_claim(row: Any) -> ReferralClaim:
    return ReferralClaim(
        user_id=row.user_id,
        referral_code=row.referral_code,
        referrer_id=row.referrer_id,
        reward_amount=int(row.reward_amount),
        claimed_at=row.claimed_at,
    )


class ReferralRepository:
    async def get_code(self, db: AsyncSession, code: str) -> ReferralCode | None:
        result = await db.execute(_GET_CODE_SQL, {"code": code})
        row = result.fetchone()
        return _row_to_code(row) if row else None

    async def get_code_by_owner(
        self, db: AsyncSession, owner_user_id: str
    ) -> ReferralCode | None:
        result = await db.execute(_GET_CODE_BY_OWNER_SQL, {"owner_user_id": owner_user_id})
        row = result.fetchone()
        return _row_to_code(row) if row else None

    async def insert_code(self, db: AsyncSession, code: ReferralCode) -> bool:
        result = await db.execute(
            _INSERT_CODE_SQL,
            {
                "code": code.code,
                "owner_user_id": code.owner_user_id,
                "reward_amount": code.reward_amount,
                "max_claims": code.max_claims,
            },
        )
        return result.fetchone() is not None

    async def insert_claim(self, db: AsyncSession, claim: ReferralClaim) -> bool:
        """Record the claim. Returns False when the user already has one."""
        result = await db.execute(
            _INSERT_CLAIM_SQL,
            {
                "user_id": claim.user_id,
                "referral_code": claim.referral_code,
                "referrer_id": claim.referrer_id,
                "reward_amount": claim.reward_amount,
            },
        )
        return result.fetchone() is not None

    async def consume_code(
        self, db: AsyncSession, code: str, max_claims: int | None
    ) -> bool:
        """Use up one claim of ``code``. Returns False when none are left."""
        result = await db.execute(_CONSUME_CODE_SQL, {"code": code, "max_claims": max_claims})
        return result.fetchone() is not None

    async def list_claims_by_referrer(
        self, db: AsyncSession, referrer_id: str
    ) -> list[ReferralClaim]:
        result = await db.execute(_LIST_CLAIMS_SQL, {"referrer_id": referrer_id})
        return [_row_to_claim(row) for row in result.fetchall()]

    async def referrer_earnings(self, db: AsyncSession, referrer_id: str) -> dict[str, int]:
        result = await db.execute(
            _REFERRER_EARNINGS_SQL,
            {
                "referrer_id": referrer_id,
                "transaction_type": BidcoinTransactionType.REFERRAL_BONUS.value,
            },
        )
        return {row.reference_id: int(row.coins) for row in result.fetchall() if row.reference_id}
