"""007: create payments table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payments (
            id                      VARCHAR(64)     PRIMARY KEY,
            processor_intent_id     VARCHAR(255)    NOT NULL,
            auction_id              VARCHAR(64)     NOT NULL,
            payer_id                VARCHAR(64)     NOT NULL,
            payee_id                VARCHAR(64)     NOT NULL,
            payee_account_id        VARCHAR(64)     NOT NULL,
            amount                  BIGINT          NOT NULL,
            platform_fee            BIGINT          NOT NULL,
            seller_amount           BIGINT          NOT NULL,
            currency                VARCHAR(3)      NOT NULL,
            status                  VARCHAR(30)     NOT NULL,
            client_secret           VARCHAR(255),
            failure_reason          TEXT,
            refund_id               VARCHAR(255),
            refund_reason           TEXT,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            refunded_at             TIMESTAMPTZ,
            CONSTRAINT uq_payments_processor_intent_id UNIQUE (processor_intent_id),
            CONSTRAINT ck_payments_status CHECK (
                status IN ('created', 'requires_confirmation', 'succeeded', 'failed', 'refunded')
            ),
            CONSTRAINT ck_payments_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_payments_fee_gte_0 CHECK (platform_fee >= 0),
            CONSTRAINT ck_payments_split_balanced CHECK (seller_amount = amount - platform_fee)
        );
    """)
    op.execute("CREATE INDEX idx_payments_auction_payer ON payments (auction_id, payer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_payments_payer ON payments (payer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_payments_payee ON payments (payee_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_payments_updated_at
            BEFORE UPDATE ON payments
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE payments IS 'Local mirror of processor payment intents, amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payments CASCADE;")
