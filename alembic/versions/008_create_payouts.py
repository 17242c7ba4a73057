"""008: create payouts and payout_items tables

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payouts (
            id                      VARCHAR(64)     PRIMARY KEY,
            seller_id               VARCHAR(64)     NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'requested',
            amount_total            BIGINT          NOT NULL,
            currency                VARCHAR(3)      NOT NULL,
            destination_account_id  VARCHAR(64)     NOT NULL,
            requested_at            TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            completed_at            TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payouts_status CHECK (status IN ('requested', 'paid', 'cancelled')),
            CONSTRAINT ck_payouts_amount_gt_0 CHECK (amount_total > 0)
        );
    """)
    op.execute("CREATE INDEX idx_payouts_seller ON payouts (seller_id, requested_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_payouts_updated_at
            BEFORE UPDATE ON payouts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE payout_items (
            payout_id       VARCHAR(64)     NOT NULL REFERENCES payouts (id),
            payment_id      VARCHAR(64)     NOT NULL REFERENCES payments (id),
            amount          BIGINT          NOT NULL,
            CONSTRAINT pk_payout_items PRIMARY KEY (payout_id, payment_id),
            CONSTRAINT ck_payout_items_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_payout_items_payment ON payout_items (payment_id);")
    op.execute(
        "COMMENT ON TABLE payout_items IS "
        "'Succeeded payments allocated to a payout; a payment is allocated at most once "
        "across non-cancelled payouts';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payout_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS payouts CASCADE;")
