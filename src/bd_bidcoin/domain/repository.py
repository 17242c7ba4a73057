"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_bidcoin.domain.models import LedgerEntry, LedgerEntryDraft, Wallet


class BidcoinRepositoryProtocol(Protocol):
    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None: ...

    async def read_balance(self, db: AsyncSession, user_id: str) -> int: ...

    async def apply_delta(
        self, db: AsyncSession, user_id: str, delta: int, draft: LedgerEntryDraft
    ) -> tuple[Wallet, LedgerEntry]: ...

    async def find_by_idempotency_key(
        self, db: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[LedgerEntry]: ...

    async def ledger_sum(self, db: AsyncSession, user_id: str) -> int: ...
