"""PaymentRepository: raw SQL persistence for the payments mirror.

Every status change is a guarded UPDATE ... WHERE status IN (...) RETURNING.
A returned row means this caller performed the transition; no row means the
mirror was already past it (or never existed), so side effects tied to the
transition run at most once however many confirmations race.

Transaction ownership: The CALLER (application service) commits/rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_payment.domain.models import Payment

_PAYMENT_COLUMNS = """
    id, processor_intent_id, auction_id, payer_id, payee_id, payee_account_id,
    amount, platform_fee, seller_amount, currency, status, client_secret,
    failure_reason, refund_id, refund_reason, created_at, updated_at, refunded_at
"""

_INSERT_PAYMENT_SQL = text("""
    INSERT INTO payments (id, processor_intent_id, auction_id, payer_id, payee_id,
        payee_account_id, amount, platform_fee, seller_amount, currency, status,
        client_secret)
    VALUES (:id, :processor_intent_id, :auction_id, :payer_id, :payee_id,
        :payee_account_id, :amount, :platform_fee, :seller_amount, :currency, :status,
        :client_secret)
    ON CONFLICT (processor_intent_id) DO NOTHING
    RETURNING id
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_PAYMENT_COLUMNS}
    FROM payments WHERE id = :id
""")

_GET_BY_INTENT_SQL = text(f"""
    SELECT {_PAYMENT_COLUMNS}
    FROM payments WHERE processor_intent_id = :processor_intent_id
""")

_LATEST_FOR_AUCTION_SQL = text(f"""
    SELECT {_PAYMENT_COLUMNS}
    FROM payments
    WHERE auction_id = :auction_id AND payer_id = :payer_id
    ORDER BY created_at DESC, id DESC
    LIMIT 1
""")

_MARK_SUCCEEDED_SQL = text(f"""
    UPDATE payments
    SET status = 'succeeded', failure_reason = NULL, updated_at = NOW()
    WHERE processor_intent_id = :processor_intent_id
      AND status NOT IN ('succeeded', 'refunded')
    RETURNING {_PAYMENT_COLUMNS}
""")

_MARK_FAILED_SQL = text(f"""
    UPDATE payments
    SET status = 'failed', failure_reason = :failure_reason, updated_at = NOW()
    WHERE processor_intent_id = :processor_intent_id
      AND status IN ('created', 'requires_confirmation')
    RETURNING {_PAYMENT_COLUMNS}
""")

# A failed intent returns to requires_payment_method at the processor and can
# be retried by the payer, so failed mirrors may reopen.
_MARK_REQUIRES_CONFIRMATION_SQL = text(f"""
    UPDATE payments
    SET status = 'requires_confirmation', updated_at = NOW()
    WHERE processor_intent_id = :processor_intent_id
      AND status IN ('created', 'requires_confirmation', 'failed')
    RETURNING {_PAYMENT_COLUMNS}
""")

_MARK_REFUNDED_SQL = text(f"""
    UPDATE payments
    SET status = 'refunded', refund_id = :refund_id, refund_reason = :refund_reason,
        refunded_at = NOW(), updated_at = NOW()
    WHERE id = :id AND status = 'succeeded'
    RETURNING {_PAYMENT_COLUMNS}
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_PAYMENT_COLUMNS}
    FROM payments
    WHERE payer_id = :user_id OR payee_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_payment(row: Any) -> Payment:
    return Payment(
        id=row.id,
        processor_intent_id=row.processor_intent_id,
        auction_id=row.auction_id,
        payer_id=row.payer_id,
        payee_id=row.payee_id,
        payee_account_id=row.payee_account_id,
        amount=int(row.amount),
        platform_fee=int(row.platform_fee),
        seller_amount=int(row.seller_amount),
        currency=row.currency,
        status=row.status,
        client_secret=row.client_secret,
        failure_reason=row.failure_reason,
        refund_id=row.refund_id,
        refund_reason=row.refund_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
        refunded_at=row.refunded_at,
    )


class PaymentRepository:
    async def get_by_id(self, db: AsyncSession, payment_id: str) -> Payment | None:
        result = await db.execute(_GET_BY_ID_SQL, {"id": payment_id})
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def get_by_intent_id(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None:
        result = await db.execute(
            _GET_BY_INTENT_SQL, {"processor_intent_id": processor_intent_id}
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def find_latest_for_auction(
        self, db: AsyncSession, auction_id: str, payer_id: str
    ) -> Payment | None:
        result = await db.execute(
            _LATEST_FOR_AUCTION_SQL, {"auction_id": auction_id, "payer_id": payer_id}
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def insert(self, db: AsyncSession, payment: Payment) -> bool:
        """Insert the mirror. False when the intent is already mirrored."""
        result = await db.execute(
            _INSERT_PAYMENT_SQL,
            {
                "id": payment.id,
                "processor_intent_id": payment.processor_intent_id,
                "auction_id": payment.auction_id,
                "payer_id": payment.payer_id,
                "payee_id": payment.payee_id,
                "payee_account_id": payment.payee_account_id,
                "amount": payment.amount,
                "platform_fee": payment.platform_fee,
                "seller_amount": payment.seller_amount,
                "currency": payment.currency,
                "status": payment.status,
                "client_secret": payment.client_secret,
            },
        )
        return result.fetchone() is not None

    async def mark_succeeded(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None:
        result = await db.execute(
            _MARK_SUCCEEDED_SQL, {"processor_intent_id": processor_intent_id}
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def mark_failed(
        self, db: AsyncSession, processor_intent_id: str, reason: str | None
    ) -> Payment | None:
        result = await db.execute(
            _MARK_FAILED_SQL,
            {"processor_intent_id": processor_intent_id, "failure_reason": reason},
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def mark_requires_confirmation(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None:
        result = await db.execute(
            _MARK_REQUIRES_CONFIRMATION_SQL, {"processor_intent_id": processor_intent_id}
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def mark_refunded(
        self, db: AsyncSession, payment_id: str, refund_id: str, reason: str | None
    ) -> Payment | None:
        result = await db.execute(
            _MARK_REFUNDED_SQL,
            {"id": payment_id, "refund_id": refund_id, "refund_reason": reason},
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def list_for_user(
        self, db: AsyncSession, user_id: str, limit: int = 100
    ) -> list[Payment]:
        result = await db.execute(_LIST_FOR_USER_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_payment(row) for row in result.fetchall()]
