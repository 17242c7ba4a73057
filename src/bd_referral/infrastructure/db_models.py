"""SQLAlchemy ORM models for bd_referral (tables from Alembic migration 004)."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.bd_common.database import Base


class ReferralCodeORM(Base):
    __tablename__ = "referral_codes"
    __table_args__ = (
        CheckConstraint("code = lower(code)", name="ck_referral_codes_lowercase"),
        CheckConstraint("claim_count >= 0", name="ck_referral_codes_claim_count_gte_0"),
        CheckConstraint(
            "max_claims IS NULL OR claim_count <= max_claims",
            name="ck_referral_codes_within_quota",
        ),
    )

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    reward_amount: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    max_claims: Mapped[int | None] = mapped_column(Integer, nullable=True)
    claim_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ReferralClaimORM(Base):
    __tablename__ = "referral_claims"
    __table_args__ = (
        CheckConstraint("user_id <> referrer_id", name="ck_referral_claims_not_self"),
        CheckConstraint("reward_amount > 0", name="ck_referral_claims_reward_gt_0"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    referral_code: Mapped[str] = mapped_column(
        String(32), ForeignKey("referral_codes.code"), nullable=False
    )
    referrer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reward_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
