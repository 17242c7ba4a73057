"""Unit tests for BidcoinRepository with a mocked AsyncSession."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.bd_bidcoin.domain.models import DuplicateEntryError, LedgerEntryDraft
from src.bd_bidcoin.infrastructure.persistence import BidcoinRepository
from src.bd_common.errors import InsufficientFundsError, InternalError


def _wallet_row(balance: int = 500) -> MagicMock:
    row = MagicMock()
    row.user_id = "user-1"
    row.balance = balance
    row.version = 2
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _entry_row(delta: int = -300, resulting: int = 200, metadata=None) -> MagicMock:
    row = MagicMock()
    row.id = 7
    row.user_id = "user-1"
    row.delta = delta
    row.transaction_type = "bid_fee"
    row.resulting_balance = resulting
    row.reference_id = "auction-1"
    row.reference_table = "auctions"
    row.metadata = metadata
    row.idempotency_key = None
    row.created_at = datetime.now(UTC)
    return row


def _result(row) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    return result


_DRAFT = LedgerEntryDraft(
    transaction_type="bid_fee", reference_id="auction-1", reference_table="auctions"
)


class TestGetWallet:
    async def test_found(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(_wallet_row(500)))

        wallet = await BidcoinRepository().get_wallet(db, "user-1")

        assert wallet is not None
        assert wallet.balance == 500
        assert wallet.version == 2

    async def test_missing(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(None))
        assert await BidcoinRepository().get_wallet(db, "user-1") is None

    async def test_read_balance_defaults_to_zero(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(None))
        assert await BidcoinRepository().read_balance(db, "user-1") == 0

    async def test_read_balance(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(_wallet_row(500)))
        assert await BidcoinRepository().read_balance(db, "user-1") == 500


class TestApplyDelta:
    async def test_debit_writes_entry_with_snapshot(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[_result(_wallet_row(200)), _result(_entry_row(-300, 200, '{"a": 1}'))]
        )

        wallet, entry = await BidcoinRepository().apply_delta(db, "user-1", -300, _DRAFT)

        assert wallet.balance == 200
        assert entry.delta == -300
        assert entry.resulting_balance == 200
        assert entry.metadata == {"a": 1}
        insert_params = db.execute.call_args_list[1].args[1]
        assert insert_params["resulting_balance"] == 200
        assert insert_params["transaction_type"] == "bid_fee"

    async def test_debit_without_rows_is_insufficient_funds(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(_wallet_row(100))])

        with pytest.raises(InsufficientFundsError) as exc_info:
            await BidcoinRepository().apply_delta(db, "user-1", -300, _DRAFT)
        assert exc_info.value.required == 300
        assert exc_info.value.available == 100

    async def test_debit_without_wallet_reports_zero_available(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(None)])

        with pytest.raises(InsufficientFundsError) as exc_info:
            await BidcoinRepository().apply_delta(db, "user-1", -1, _DRAFT)
        assert exc_info.value.available == 0

    async def test_zero_delta_rejected(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock()
        with pytest.raises(InternalError):
            await BidcoinRepository().apply_delta(db, "user-1", 0, _DRAFT)
        db.execute.assert_not_awaited()

    async def test_idempotency_conflict_maps_to_duplicate_entry(self) -> None:
        draft = LedgerEntryDraft(transaction_type="signup_bonus", idempotency_key="k1")
        orig = Exception('duplicate key value violates unique constraint "uq_bidcoin_tx_idempotency_key"')
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[_result(_wallet_row(500)), IntegrityError("INSERT", {}, orig)]
        )

        with pytest.raises(DuplicateEntryError) as exc_info:
            await BidcoinRepository().apply_delta(db, "user-1", 500, draft)
        assert exc_info.value.idempotency_key == "k1"

    async def test_other_integrity_errors_propagate(self) -> None:
        draft = LedgerEntryDraft(transaction_type="signup_bonus", idempotency_key="k1")
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(_wallet_row(500)),
                IntegrityError("INSERT", {}, Exception("ck_bidcoin_tx_type")),
            ]
        )
        with pytest.raises(IntegrityError):
            await BidcoinRepository().apply_delta(db, "user-1", 500, draft)


class TestReads:
    async def test_list_entries_passes_filters(self) -> None:
        result = MagicMock()
        result.fetchall.return_value = [_entry_row(metadata={"k": "v"})]
        db = MagicMock()
        db.execute = AsyncMock(return_value=result)

        entries = await BidcoinRepository().list_entries(db, "user-1", 10, 21, "bid_fee")

        assert entries[0].metadata == {"k": "v"}
        params = db.execute.call_args.args[1]
        assert params == {
            "user_id": "user-1",
            "cursor_id": 10,
            "transaction_type": "bid_fee",
            "limit": 21,
        }

    async def test_ledger_sum(self) -> None:
        result = MagicMock()
        result.scalar_one.return_value = 200
        db = MagicMock()
        db.execute = AsyncMock(return_value=result)
        assert await BidcoinRepository().ledger_sum(db, "user-1") == 200
