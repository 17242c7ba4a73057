"""PayoutRepository: seller payout requests and their payment allocations.

A succeeded payment is allocated to at most one payout that is not
cancelled. Requests for one seller serialize on the seller_accounts row
(SELECT ... FOR UPDATE), so two concurrent requests never allocate the same
payment twice.

Transaction ownership: The CALLER (application service) commits/rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_payment.domain.models import Payout, PayoutItem

_PAYOUT_COLUMNS = """
    id, seller_id, status, amount_total, currency, destination_account_id,
    requested_at, completed_at
"""

_COMPLETED_TOTAL_SQL = text("""
    SELECT COALESCE(SUM(seller_amount), 0)
    FROM payments
    WHERE payee_id = :seller_id AND status = 'succeeded' AND currency = :currency
""")

_ALLOCATED_TOTAL_SQL = text("""
    SELECT COALESCE(SUM(i.amount), 0)
    FROM payout_items i
    JOIN payouts o ON o.id = i.payout_id
    WHERE o.seller_id = :seller_id AND o.status <> 'cancelled' AND o.currency = :currency
""")

_LIST_FOR_SELLER_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS}
    FROM payouts
    WHERE seller_id = :seller_id
    ORDER BY requested_at DESC, id DESC
    LIMIT :limit
""")

_LOCK_DESTINATION_SQL = text("""
    SELECT account_id FROM seller_accounts WHERE user_id = :seller_id FOR UPDATE
""")

_LIST_UNALLOCATED_SQL = text("""
    SELECT p.id, p.seller_amount
    FROM payments p
    WHERE p.payee_id = :seller_id
      AND p.status = 'succeeded'
      AND p.currency = :currency
      AND NOT EXISTS (
          SELECT 1
          FROM payout_items i
          JOIN payouts o ON o.id = i.payout_id
          WHERE i.payment_id = p.id AND o.status <> 'cancelled'
      )
    ORDER BY p.created_at, p.id
""")

_INSERT_PAYOUT_SQL = text(f"""
    INSERT INTO payouts (id, seller_id, status, amount_total, currency, destination_account_id)
    VALUES (:id, :seller_id, :status, :amount_total, :currency, :destination_account_id)
    RETURNING {_PAYOUT_COLUMNS}
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO payout_items (payout_id, payment_id, amount)
    VALUES (:payout_id, :payment_id, :amount)
""")


def _row_to_payout(row: Any) -> Payout:
    return Payout(
        id=row.id,
        seller_id=row.seller_id,
        status=row.status,
        amount_total=int(row.amount_total),
        currency=row.currency,
        destination_account_id=row.destination_account_id,
        requested_at=row.requested_at,
        completed_at=row.completed_at,
    )


class PayoutRepository:
    async def totals(self, db: AsyncSession, seller_id: str, currency: str) -> tuple[int, int]:
        """(completed, allocated) seller amounts in cents."""
        params = {"seller_id": seller_id, "currency": currency}
        completed = await db.execute(_COMPLETED_TOTAL_SQL, params)
        allocated = await db.execute(_ALLOCATED_TOTAL_SQL, params)
        return int(completed.scalar_one()), int(allocated.scalar_one())

    async def list_for_seller(
        self, db: AsyncSession, seller_id: str, limit: int = 50
    ) -> list[Payout]:
        result = await db.execute(_LIST_FOR_SELLER_SQL, {"seller_id": seller_id, "limit": limit})
        return [_row_to_payout(row) for row in result.fetchall()]

    async def lock_destination(self, db: AsyncSession, seller_id: str) -> str | None:
        """Lock the seller's account row; returns its processor account id."""
        result = await db.execute(_LOCK_DESTINATION_SQL, {"seller_id": seller_id})
        row = result.fetchone()
        return row.account_id if row else None

    async def list_unallocated(
        self, db: AsyncSession, seller_id: str, currency: str
    ) -> list[PayoutItem]:
        result = await db.execute(
            _LIST_UNALLOCATED_SQL, {"seller_id": seller_id, "currency": currency}
        )
        return [
            PayoutItem(payout_id="", payment_id=row.id, amount=int(row.seller_amount))
            for row in result.fetchall()
        ]

    async def insert(self, db: AsyncSession, payout: Payout, items: list[PayoutItem]) -> Payout:
        result = await db.execute(
            _INSERT_PAYOUT_SQL,
            {
                "id": payout.id,
                "seller_id": payout.seller_id,
                "status": payout.status,
                "amount_total": payout.amount_total,
                "currency": payout.currency,
                "destination_account_id": payout.destination_account_id,
            },
        )
        stored = _row_to_payout(result.fetchone())
        await db.execute(
            _INSERT_ITEM_SQL,
            [
                {"payout_id": payout.id, "payment_id": item.payment_id, "amount": item.amount}
                for item in items
            ],
        )
        return stored
