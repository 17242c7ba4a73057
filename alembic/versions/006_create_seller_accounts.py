"""006: create seller_accounts table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_accounts (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            account_id          VARCHAR(64)     NOT NULL,
            email               VARCHAR(255),
            onboarding_status   VARCHAR(20)     NOT NULL DEFAULT 'pending',
            payouts_enabled     BOOLEAN         NOT NULL DEFAULT FALSE,
            charges_enabled     BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            synced_at           TIMESTAMPTZ,
            CONSTRAINT uq_seller_accounts_user_id UNIQUE (user_id),
            CONSTRAINT uq_seller_accounts_account_id UNIQUE (account_id),
            CONSTRAINT ck_seller_accounts_onboarding_status CHECK (
                onboarding_status IN ('pending', 'onboarding', 'active', 'restricted')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_seller_accounts_updated_at
            BEFORE UPDATE ON seller_accounts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE seller_accounts IS 'Processor payee accounts, never deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS seller_accounts CASCADE;")
