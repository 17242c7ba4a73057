"""SQLAlchemy ORM models for bd_bidcoin.

These map to tables created by Alembic migrations 002/003.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.bd_common.database import Base


class WalletORM(Base):
    __tablename__ = "user_bidcoins"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_user_bidcoins_balance_gte_0"),)

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class BidcoinTransactionORM(Base):
    __tablename__ = "bidcoin_transactions"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_bidcoin_tx_delta_nonzero"),
        CheckConstraint("resulting_balance >= 0", name="ck_bidcoin_tx_balance_gte_0"),
        CheckConstraint(
            "transaction_type IN ('signup_bonus', 'referral_bonus', 'auction_sale', "
            "'auction_purchase', 'raffle_purchase', 'plan_purchase', 'bid_fee', "
            "'item_purchase', 'raffle_entry', 'adjustment')",
            name="ck_bidcoin_tx_type",
        ),
        UniqueConstraint("idempotency_key", name="uq_bidcoin_tx_idempotency_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    resulting_balance: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reference_table: Mapped[str | None] = mapped_column(String(64), nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, server_default="{}"
    )
    idempotency_key: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    # NOTE: No updated_at, bidcoin_transactions is append-only
