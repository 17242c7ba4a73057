"""SQLAlchemy ORM models for bd_payment.

These map to tables created by Alembic migrations 005 to 008.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.bd_common.database import Base


class AuctionORM(Base):
    __tablename__ = "auctions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'ended', 'paid', 'cancelled')", name="ck_auctions_status"
        ),
        CheckConstraint("current_price >= 0", name="ck_auctions_price_gte_0"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="active")
    current_price: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    highest_bidder_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="usd")
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class SellerAccountORM(Base):
    __tablename__ = "seller_accounts"
    __table_args__ = (
        CheckConstraint(
            "onboarding_status IN ('pending', 'onboarding', 'active', 'restricted')",
            name="ck_seller_accounts_onboarding_status",
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    onboarding_status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="pending"
    )
    payouts_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    charges_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PaymentORM(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(
            "status IN ('created', 'requires_confirmation', 'succeeded', 'failed', 'refunded')",
            name="ck_payments_status",
        ),
        CheckConstraint("amount > 0", name="ck_payments_amount_gt_0"),
        CheckConstraint("platform_fee >= 0", name="ck_payments_fee_gte_0"),
        CheckConstraint(
            "seller_amount = amount - platform_fee", name="ck_payments_split_balanced"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    processor_intent_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    auction_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payee_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    platform_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)
    seller_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    client_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PayoutORM(Base):
    __tablename__ = "payouts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('requested', 'paid', 'cancelled')", name="ck_payouts_status"
        ),
        CheckConstraint("amount_total > 0", name="ck_payouts_amount_gt_0"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="requested")
    amount_total: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    destination_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class PayoutItemORM(Base):
    __tablename__ = "payout_items"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payout_items_amount_gt_0"),
    )

    payout_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("payouts.id"), primary_key=True
    )
    payment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("payments.id"), primary_key=True, index=True
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
