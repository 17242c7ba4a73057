"""004: create referral_codes and referral_claims tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE referral_codes (
            code            VARCHAR(32)     PRIMARY KEY,
            owner_user_id   VARCHAR(64)     NOT NULL,
            reward_amount   BIGINT,
            max_claims      INTEGER,
            claim_count     INTEGER         NOT NULL DEFAULT 0,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_referral_codes_owner UNIQUE (owner_user_id),
            CONSTRAINT ck_referral_codes_lowercase CHECK (code = lower(code)),
            CONSTRAINT ck_referral_codes_claim_count_gte_0 CHECK (claim_count >= 0),
            CONSTRAINT ck_referral_codes_within_quota
                CHECK (max_claims IS NULL OR claim_count <= max_claims)
        );
    """)
    op.execute("""
        CREATE TABLE referral_claims (
            user_id         VARCHAR(64)     PRIMARY KEY,
            referral_code   VARCHAR(32)     NOT NULL REFERENCES referral_codes (code),
            referrer_id     VARCHAR(64)     NOT NULL,
            reward_amount   BIGINT          NOT NULL,
            claimed_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_referral_claims_not_self CHECK (user_id <> referrer_id),
            CONSTRAINT ck_referral_claims_reward_gt_0 CHECK (reward_amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_referral_claims_referrer ON referral_claims (referrer_id, claimed_at DESC);")
    op.execute("COMMENT ON TABLE referral_claims IS 'One row per referred user, PK enforces a single claim';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS referral_claims CASCADE;")
    op.execute("DROP TABLE IF EXISTS referral_codes CASCADE;")
