"""Repository Protocol: dependency inversion for testability."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_referral.domain.models import ReferralClaim, ReferralCode


class ReferralRepositoryProtocol(Protocol):
    async def get_code(self, db: AsyncSession, code: str) -> ReferralCode | None: ...

    async def get_code_by_owner(
        self, db: AsyncSession, owner_user_id: str
    ) -> ReferralCode | None: ...

    async def insert_code(self, db: AsyncSession, code: ReferralCode) -> bool: ...

    async def insert_claim(self, db: AsyncSession, claim: ReferralClaim) -> bool: ...

    async def consume_code(
        self, db: AsyncSession, code: str, max_claims: int | None
    ) -> bool: ...

    async def list_claims_by_referrer(
        self, db: AsyncSession, referrer_id: str
    ) -> list[ReferralClaim]: ...

    async def referrer_earnings(self, db: AsyncSession, referrer_id: str) -> dict[str, int]: ...
