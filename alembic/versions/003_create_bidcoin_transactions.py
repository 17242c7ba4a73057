"""003: create bidcoin_transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bidcoin_transactions (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            delta               BIGINT          NOT NULL,
            transaction_type    VARCHAR(30)     NOT NULL,
            resulting_balance   BIGINT          NOT NULL,
            reference_id        VARCHAR(128),
            reference_table     VARCHAR(64),
            metadata            JSONB           NOT NULL DEFAULT '{}'::jsonb,
            idempotency_key     VARCHAR(320),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_bidcoin_tx_idempotency_key UNIQUE (idempotency_key),
            CONSTRAINT ck_bidcoin_tx_delta_nonzero CHECK (delta <> 0),
            CONSTRAINT ck_bidcoin_tx_balance_gte_0 CHECK (resulting_balance >= 0),
            CONSTRAINT ck_bidcoin_tx_type CHECK (
                transaction_type IN (
                    'signup_bonus', 'referral_bonus',
                    'auction_sale', 'auction_purchase',
                    'raffle_purchase', 'plan_purchase',
                    'bid_fee', 'item_purchase', 'raffle_entry',
                    'adjustment'
                )
            )
        );
    """)
    op.execute("CREATE INDEX idx_bidcoin_tx_user_id ON bidcoin_transactions (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_bidcoin_tx_reference
        ON bidcoin_transactions (reference_table, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_bidcoin_tx_append_only
            BEFORE UPDATE OR DELETE ON bidcoin_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE bidcoin_transactions IS "
        "'BidCoin ledger, append-only; SUM(delta) per user equals user_bidcoins.balance';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bidcoin_transactions CASCADE;")
