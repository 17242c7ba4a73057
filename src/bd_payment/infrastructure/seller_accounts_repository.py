"""SellerAccountRepository: raw SQL persistence for seller payee accounts.

Rows are never deleted. user_id and account_id are both unique, so a
duplicate create is an ON CONFLICT no-op and the caller re-reads the winner.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_payment.domain.models import ProcessorAccount, SellerAccount

_ACCOUNT_COLUMNS = """
    user_id, account_id, email, onboarding_status, payouts_enabled,
    charges_enabled, created_at, updated_at, synced_at
"""

_GET_BY_USER_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM seller_accounts WHERE user_id = :user_id
""")

_GET_BY_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM seller_accounts WHERE account_id = :account_id
""")

_INSERT_ACCOUNT_SQL = text("""
    INSERT INTO seller_accounts (user_id, account_id, email, onboarding_status,
        payouts_enabled, charges_enabled, synced_at)
    VALUES (:user_id, :account_id, :email, :onboarding_status,
        :payouts_enabled, :charges_enabled, NOW())
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id
""")

_UPDATE_FROM_PROCESSOR_SQL = text(f"""
    UPDATE seller_accounts
    SET onboarding_status = :onboarding_status,
        payouts_enabled = :payouts_enabled,
        charges_enabled = :charges_enabled,
        email = COALESCE(:email, email),
        synced_at = NOW(),
        updated_at = NOW()
    WHERE account_id = :account_id
    RETURNING {_ACCOUNT_COLUMNS}
""")


def _row_to_account(row: Any) -> SellerAccount:
    return SellerAccount(
        user_id=row.user_id,
        account_id=row.account_id,
        email=row.email,
        onboarding_status=row.onboarding_status,
        payouts_enabled=bool(row.payouts_enabled),
        charges_enabled=bool(row.charges_enabled),
        created_at=row.created_at,
        updated_at=row.updated_at,
        synced_at=row.synced_at,
    )


class SellerAccountRepository:
    async def get_by_user(self, db: AsyncSession, user_id: str) -> SellerAccount | None:
        result = await db.execute(_GET_BY_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def get_by_account_id(
        self, db: AsyncSession, account_id: str
    ) -> SellerAccount | None:
        result = await db.execute(_GET_BY_ACCOUNT_SQL, {"account_id": account_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def insert(self, db: AsyncSession, account: SellerAccount) -> bool:
        result = await db.execute(
            _INSERT_ACCOUNT_SQL,
            {
                "user_id": account.user_id,
                "account_id": account.account_id,
                "email": account.email,
                "onboarding_status": account.onboarding_status,
                "payouts_enabled": account.payouts_enabled,
                "charges_enabled": account.charges_enabled,
            },
        )
        return result.fetchone() is not None

    async def update_from_processor(
        self, db: AsyncSession, remote: ProcessorAccount, onboarding_status: str
    ) -> SellerAccount | None:
        """Overwrite the mirrored flags. None when the account is not ours."""
        result = await db.execute(
            _UPDATE_FROM_PROCESSOR_SQL,
            {
                "account_id": remote.id,
                "onboarding_status": onboarding_status,
                "payouts_enabled": remote.payouts_enabled,
                "charges_enabled": remote.charges_enabled,
                "email": remote.email,
            },
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None
