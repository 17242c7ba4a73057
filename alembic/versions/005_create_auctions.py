"""005: create auctions table (settlement subset)

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS auctions (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'active',
            current_price       BIGINT          NOT NULL DEFAULT 0,
            highest_bidder_id   VARCHAR(64),
            currency            VARCHAR(3)      NOT NULL DEFAULT 'usd',
            paid_at             TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_auctions_status CHECK (status IN ('active', 'ended', 'paid', 'cancelled')),
            CONSTRAINT ck_auctions_price_gte_0 CHECK (current_price >= 0)
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_auctions_seller ON auctions (seller_id);")
    op.execute("""
        CREATE TRIGGER trg_auctions_updated_at
            BEFORE UPDATE ON auctions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS auctions CASCADE;")
