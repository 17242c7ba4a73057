"""AuctionRepository: read access to auctions plus the "mark paid" effect.

The auctions table belongs to the auction module; settlement only reads it
and flips an ended auction to paid once its payment succeeds.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_payment.domain.models import Auction

_GET_AUCTION_SQL = text("""
    SELECT id, seller_id, status, current_price, highest_bidder_id, currency, paid_at
    FROM auctions WHERE id = :id
""")

_MARK_PAID_SQL = text("""
    UPDATE auctions
    SET status = 'paid', paid_at = NOW(), updated_at = NOW()
    WHERE id = :id AND status = 'ended'
    RETURNING id
""")


def _row_to_auction(row: Any) -> Auction:
    return Auction(
        id=row.id,
        seller_id=row.seller_id,
        status=row.status,
        current_price=int(row.current_price),
        highest_bidder_id=row.highest_bidder_id,
        currency=row.currency,
        paid_at=row.paid_at,
    )


class AuctionRepository:
    async def get(self, db: AsyncSession, auction_id: str) -> Auction | None:
        result = await db.execute(_GET_AUCTION_SQL, {"id": auction_id})
        row = result.fetchone()
        return _row_to_auction(row) if row else None

    async def mark_paid(self, db: AsyncSession, auction_id: str) -> bool:
        result = await db.execute(_MARK_PAID_SQL, {"id": auction_id})
        return result.fetchone() is not None
