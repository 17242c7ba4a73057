"""BidcoinRepository: concrete implementation of BidcoinRepositoryProtocol.

All balance-mutating operations are a single atomic PostgreSQL statement
(upsert for credits, conditional UPDATE for debits) followed by the ledger
insert. The statement takes the wallet row lock, so concurrent changes to one
wallet serialize while different wallets never contend. A debit returning 0
rows means the balance would have gone negative.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_bidcoin.domain.models import (
    DuplicateEntryError,
    LedgerEntry,
    LedgerEntryDraft,
    Wallet,
)
from src.bd_common.errors import InsufficientFundsError, InternalError

_IDEMPOTENCY_CONSTRAINT = "uq_bidcoin_tx_idempotency_key"

# ---------------------------------------------------------------------------
# SQL: wallet mutations
# ---------------------------------------------------------------------------

_CREDIT_SQL = text("""
    INSERT INTO user_bidcoins (user_id, balance, version)
    VALUES (:user_id, :delta, 1)
    ON CONFLICT (user_id) DO UPDATE
        SET balance = user_bidcoins.balance + EXCLUDED.balance,
            version = user_bidcoins.version + 1,
            updated_at = NOW()
    RETURNING user_id, balance, version, created_at, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE user_bidcoins
    SET balance = balance + :delta,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance + :delta >= 0
    RETURNING user_id, balance, version, created_at, updated_at
""")

_GET_WALLET_SQL = text("""
    SELECT user_id, balance, version, created_at, updated_at
    FROM user_bidcoins
    WHERE user_id = :user_id
""")

# ---------------------------------------------------------------------------
# SQL: ledger (append-only, no UPDATE/DELETE)
# ---------------------------------------------------------------------------

_ENTRY_COLUMNS = """
    id, user_id, delta, transaction_type, resulting_balance,
    reference_id, reference_table, metadata, idempotency_key, created_at
"""

_INSERT_ENTRY_SQL = text(f"""
    INSERT INTO bidcoin_transactions
        (user_id, delta, transaction_type, resulting_balance,
         reference_id, reference_table, metadata, idempotency_key)
    VALUES
        (:user_id, :delta, :transaction_type, :resulting_balance,
         :reference_id, :reference_table, CAST(:metadata AS JSONB), :idempotency_key)
    RETURNING {_ENTRY_COLUMNS}
""")

_FIND_BY_KEY_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM bidcoin_transactions
    WHERE idempotency_key = :idempotency_key
""")

_LIST_ENTRIES_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM bidcoin_transactions
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:transaction_type AS VARCHAR) IS NULL OR transaction_type = :transaction_type)
    ORDER BY id DESC
    LIMIT :limit
""")

_LEDGER_SUM_SQL = text("""
    SELECT COALESCE(SUM(delta), 0)
    FROM bidcoin_transactions
    WHERE user_id = :user_id
""")


def _decode_metadata(raw: Any) -> dict[str, Any]:
    # asyncpg hands JSONB back as text unless a codec is registered
    if raw is None:
        return {}
    if isinstance(raw, str):
        return dict(json.loads(raw))
    return dict(raw)


def _row_to_wallet(row: Any) -> Wallet:
    return Wallet(
        user_id=row.user_id,
        balance=int(row.balance),
        version=int(row.version),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_entry(row: Any) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        user_id=row.user_id,
        delta=int(row.delta),
        transaction_type=row.transaction_type,
        resulting_balance=int(row.resulting_balance),
        reference_id=row.reference_id,
        reference_table=row.reference_table,
        metadata=_decode_metadata(row.metadata),
        idempotency_key=row.idempotency_key,
        created_at=row.created_at,
    )


class BidcoinRepository:
    """Concrete ledger store. Every mutation is atomic at the SQL level."""

    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        result = await db.execute(_GET_WALLET_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def read_balance(self, db: AsyncSession, user_id: str) -> int:
        wallet = await self.get_wallet(db, user_id)
        return wallet.balance if wallet else 0

    async def apply_delta(
        self, db: AsyncSession, user_id: str, delta: int, draft: LedgerEntryDraft
    ) -> tuple[Wallet, LedgerEntry]:
        if delta == 0:
            raise InternalError("Ledger delta must be non-zero")

        sql = _CREDIT_SQL if delta > 0 else _DEBIT_SQL
        result = await db.execute(sql, {"user_id": user_id, "delta": delta})
        row = result.fetchone()
        if row is None:
            raise InsufficientFundsError(-delta, await self.read_balance(db, user_id))
        wallet = _row_to_wallet(row)

        try:
            entry_result = await db.execute(
                _INSERT_ENTRY_SQL,
                {
                    "user_id": user_id,
                    "delta": delta,
                    "transaction_type": draft.transaction_type,
                    "resulting_balance": wallet.balance,
                    "reference_id": draft.reference_id,
                    "reference_table": draft.reference_table,
                    "metadata": json.dumps(draft.metadata, default=str),
                    "idempotency_key": draft.idempotency_key,
                },
            )
        except IntegrityError as exc:
            if draft.idempotency_key and _IDEMPOTENCY_CONSTRAINT in str(exc.orig):
                raise DuplicateEntryError(draft.idempotency_key) from exc
            raise
        entry_row = entry_result.fetchone()
        if entry_row is None:
            raise InternalError("Ledger insert returned no rows")
        return wallet, _row_to_entry(entry_row)

    async def find_by_idempotency_key(
        self, db: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None:
        result = await db.execute(_FIND_BY_KEY_SQL, {"idempotency_key": idempotency_key})
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "transaction_type": transaction_type,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def ledger_sum(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_LEDGER_SUM_SQL, {"user_id": user_id})
        return int(result.scalar_one())
