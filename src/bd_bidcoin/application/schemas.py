"""Pydantic schemas and cursor utilities for bd_bidcoin API."""

import base64
import json
from typing import Any

from pydantic import BaseModel, Field

from src.bd_common.cents import cents_to_display
from src.bd_common.enums import BidcoinTransactionType

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SpendRequest(BaseModel):
    amount: int = Field(..., gt=0, strict=True, description="BidCoins to spend")
    type: BidcoinTransactionType
    reference_id: str | None = Field(None, max_length=128)
    reference_table: str | None = Field(None, max_length=64)
    metadata: dict[str, Any] = Field(default_factory=dict)
    idempotent: bool = Field(
        False, description="Apply at most once per (user, type, reference)"
    )


class EarnRequest(SpendRequest):
    user_id: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: int
    usd_display: str

    @classmethod
    def from_balance(cls, user_id: str, balance: int) -> "BalanceResponse":
        return cls(user_id=user_id, balance=balance, usd_display=cents_to_display(balance))


class BalanceChangeResponse(BaseModel):
    balance: int
    usd_display: str
    delta: int
    ledger_entry_id: int
    replayed: bool


class TransactionItem(BaseModel):
    id: int
    delta: int
    transaction_type: str
    resulting_balance: int
    reference_id: str | None
    reference_table: str | None
    metadata: dict[str, Any]
    created_at: str  # ISO8601 string


class TransactionPage(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class WalletSummary(BaseModel):
    balance: int
    usd_display: str
    transactions: list[TransactionItem]


class BalanceAuditResponse(BaseModel):
    user_id: str
    balance: int
    ledger_sum: int
    consistent: bool
