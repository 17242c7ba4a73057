"""002: create user_bidcoins table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE user_bidcoins (
            user_id     VARCHAR(64) PRIMARY KEY,
            balance     BIGINT      NOT NULL DEFAULT 0,
            version     BIGINT      NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_bidcoins_balance_gte_0 CHECK (balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_user_bidcoins_updated_at
            BEFORE UPDATE ON user_bidcoins
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE user_bidcoins IS 'BidCoin balances, 1 coin = 1 US cent';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_bidcoins CASCADE;")
