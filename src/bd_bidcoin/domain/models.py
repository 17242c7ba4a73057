"""Domain models for bd_bidcoin: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Wallet:
    user_id: str
    balance: int             # BidCoins (1 coin = 1 cent)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    delta: int                       # positive=earn negative=spend
    transaction_type: str            # BidcoinTransactionType value
    resulting_balance: int           # balance snapshot after this entry
    reference_id: str | None = None
    reference_table: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    idempotency_key: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class LedgerEntryDraft:
    """Provenance fields for the entry written alongside a balance change."""

    transaction_type: str
    reference_id: str | None = None
    reference_table: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    idempotency_key: str | None = None


@dataclass
class BalanceChange:
    user_id: str
    balance: int
    delta: int
    entry_id: int
    replayed: bool = False


@dataclass
class BalanceAudit:
    user_id: str
    balance: int
    ledger_sum: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_sum


class DuplicateEntryError(Exception):
    """The idempotency key of a ledger entry already exists.

    Raised by the store; the session is unusable until rolled back.
    """

    def __init__(self, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(f"Duplicate ledger entry for key {idempotency_key}")
