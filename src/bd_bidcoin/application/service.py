"""BidcoinService: the BidCoin ledger's public operations.

earn/spend validate before touching the store, then delegate one signed delta
to the repository and commit. Any failure rolls the whole unit back so no
partial balance change is ever visible.

The service performs no identity checks: callers pass the already-authorized
user id (the caller itself for self-serve spends, or any user for trusted
internal credits).
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bd_bidcoin.application.schemas import (
    BalanceAuditResponse,
    BalanceResponse,
    TransactionItem,
    TransactionPage,
    WalletSummary,
    cursor_decode,
    cursor_encode,
)
from src.bd_bidcoin.domain.invariants import check_balance_audit
from src.bd_bidcoin.domain.models import (
    BalanceAudit,
    BalanceChange,
    DuplicateEntryError,
    LedgerEntry,
    LedgerEntryDraft,
)
from src.bd_bidcoin.domain.repository import BidcoinRepositoryProtocol
from src.bd_bidcoin.infrastructure.persistence import BidcoinRepository
from src.bd_common.cents import cents_to_display, require_positive_amount
from src.bd_common.enums import EARN_TYPES, SPEND_TYPES, BidcoinTransactionType
from src.bd_common.errors import BonusAlreadyClaimedError, InternalError, ValidationError

logger = logging.getLogger(__name__)


def idempotency_key_for(
    user_id: str,
    transaction_type: BidcoinTransactionType,
    reference_table: str | None,
    reference_id: str,
) -> str:
    return f"{user_id}:{transaction_type.value}:{reference_table or '-'}:{reference_id}"


def _coerce_type(
    value: BidcoinTransactionType | str, allowed: frozenset[BidcoinTransactionType], verb: str
) -> BidcoinTransactionType:
    try:
        tx_type = BidcoinTransactionType(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {value!r}") from None
    if tx_type not in allowed:
        raise ValidationError(f"Transaction type {tx_type.value} cannot be used to {verb}")
    return tx_type


def _to_item(entry: LedgerEntry) -> TransactionItem:
    return TransactionItem(
        id=entry.id,
        delta=entry.delta,
        transaction_type=entry.transaction_type,
        resulting_balance=entry.resulting_balance,
        reference_id=entry.reference_id,
        reference_table=entry.reference_table,
        metadata=entry.metadata,
        created_at=entry.created_at.isoformat() if entry.created_at else "",
    )


def _replay(entry: LedgerEntry) -> BalanceChange:
    return BalanceChange(
        user_id=entry.user_id,
        balance=entry.resulting_balance,
        delta=entry.delta,
        entry_id=entry.id,
        replayed=True,
    )


class BidcoinService:
    def __init__(self, repo: BidcoinRepositoryProtocol | None = None) -> None:
        self._repo: BidcoinRepositoryProtocol = repo or BidcoinRepository()

    # ------------------------------------------------------------------
    # Reads (no explicit transaction)
    # ------------------------------------------------------------------

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        wallet = await self._repo.get_wallet(db, user_id)
        return BalanceResponse.from_balance(user_id, wallet.balance if wallet else 0)

    async def get_summary(
        self, db: AsyncSession, user_id: str, limit: int = 50
    ) -> WalletSummary:
        wallet = await self._repo.get_wallet(db, user_id)
        entries = await self._repo.list_entries(db, user_id, None, limit, None)
        balance = wallet.balance if wallet else 0
        return WalletSummary(
            balance=balance,
            usd_display=cents_to_display(balance),
            transactions=[_to_item(e) for e in entries],
        )

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> TransactionPage:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(
            db, user_id, cursor_id, limit + 1, transaction_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionPage(
            items=[_to_item(e) for e in page], next_cursor=next_cursor, has_more=has_more
        )

    async def audit_balance(self, db: AsyncSession, user_id: str) -> BalanceAuditResponse:
        wallet = await self._repo.get_wallet(db, user_id)
        ledger_sum = await self._repo.ledger_sum(db, user_id)
        audit = BalanceAudit(
            user_id=user_id, balance=wallet.balance if wallet else 0, ledger_sum=ledger_sum
        )
        check_balance_audit(audit)
        return BalanceAuditResponse(
            user_id=user_id,
            balance=audit.balance,
            ledger_sum=audit.ledger_sum,
            consistent=audit.consistent,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def earn(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: BidcoinTransactionType | str,
        *,
        reference_id: str | None = None,
        reference_table: str | None = None,
        metadata: dict[str, Any] | None = None,
        idempotent: bool = False,
    ) -> BalanceChange:
        tx_type = _coerce_type(transaction_type, EARN_TYPES, "earn")
        amount = require_positive_amount(amount)
        return await self._commit_delta(
            db, user_id, amount, tx_type, reference_id, reference_table, metadata, idempotent
        )

    async def spend(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: BidcoinTransactionType | str,
        *,
        reference_id: str | None = None,
        reference_table: str | None = None,
        metadata: dict[str, Any] | None = None,
        idempotent: bool = False,
    ) -> BalanceChange:
        tx_type = _coerce_type(transaction_type, SPEND_TYPES, "spend")
        amount = require_positive_amount(amount)
        return await self._commit_delta(
            db, user_id, -amount, tx_type, reference_id, reference_table, metadata, idempotent
        )

    async def apply_earn(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: BidcoinTransactionType | str,
        *,
        reference_id: str | None = None,
        reference_table: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> BalanceChange:
        """Credit inside the caller's open transaction; the caller commits."""
        tx_type = _coerce_type(transaction_type, EARN_TYPES, "earn")
        amount = require_positive_amount(amount)
        draft = LedgerEntryDraft(
            transaction_type=tx_type.value,
            reference_id=reference_id,
            reference_table=reference_table,
            metadata=metadata or {},
        )
        wallet, entry = await self._repo.apply_delta(db, user_id, amount, draft)
        return BalanceChange(
            user_id=user_id, balance=wallet.balance, delta=entry.delta, entry_id=entry.id
        )

    async def grant_signup_bonus(self, db: AsyncSession, user_id: str) -> BalanceChange:
        change = await self.earn(
            db,
            user_id,
            settings.SIGNUP_BONUS_BIDCOINS,
            BidcoinTransactionType.SIGNUP_BONUS,
            reference_id=user_id,
            reference_table="users",
            metadata={"description": "Welcome bonus"},
            idempotent=True,
        )
        if change.replayed:
            raise BonusAlreadyClaimedError()
        return change

    async def _commit_delta(
        self,
        db: AsyncSession,
        user_id: str,
        delta: int,
        tx_type: BidcoinTransactionType,
        reference_id: str | None,
        reference_table: str | None,
        metadata: dict[str, Any] | None,
        idempotent: bool,
    ) -> BalanceChange:
        key: str | None = None
        if idempotent:
            if not reference_id:
                raise ValidationError("reference_id is required for an idempotent request")
            key = idempotency_key_for(user_id, tx_type, reference_table, reference_id)

        draft = LedgerEntryDraft(
            transaction_type=tx_type.value,
            reference_id=reference_id,
            reference_table=reference_table,
            metadata=metadata or {},
            idempotency_key=key,
        )
        try:
            if key is not None:
                existing = await self._repo.find_by_idempotency_key(db, key)
                if existing is not None:
                    logger.info("BidCoin idempotency hit: key=%s", key)
                    await db.rollback()
                    return _replay(existing)
            wallet, entry = await self._repo.apply_delta(db, user_id, delta, draft)
            await db.commit()
        except DuplicateEntryError:
            # Lost the race to a concurrent request with the same key; our
            # balance change is undone by the rollback.
            await db.rollback()
            existing = await self._repo.find_by_idempotency_key(db, draft.idempotency_key or "")
            if existing is None:
                raise InternalError("Idempotency conflict without a stored entry") from None
            logger.info("BidCoin idempotency race resolved as replay: key=%s", key)
            return _replay(existing)
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "BidCoin %s: user=%s delta=%d balance=%d entry=%d",
            tx_type.value, user_id, delta, wallet.balance, entry.id,
        )
        return BalanceChange(
            user_id=user_id, balance=wallet.balance, delta=entry.delta, entry_id=entry.id
        )
