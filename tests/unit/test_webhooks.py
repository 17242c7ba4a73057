"""Unit tests for WebhookHandler dispatch."""

from unittest.mock import AsyncMock

from src.bd_common.errors import PaymentNotFoundError
from src.bd_payment.application.webhooks import WebhookHandler
from src.bd_payment.domain.models import ProcessorEvent, SellerAccount


def _event(event_type: str, data: dict) -> ProcessorEvent:
    return ProcessorEvent(id="evt_1", type=event_type, data_object=data)


class TestWebhookHandler:
    async def test_intent_succeeded_confirms(self, db) -> None:
        payments = AsyncMock()
        payments.confirm_payment.return_value = True

        note = await WebhookHandler(payments).handle(
            db, _event("payment_intent.succeeded", {"id": "pi_1", "status": "succeeded"})
        )

        assert note == "confirmed"
        payments.confirm_payment.assert_awaited_once_with(db, "pi_1")

    async def test_intent_succeeded_but_processor_disagrees(self, db) -> None:
        payments = AsyncMock()
        payments.confirm_payment.return_value = False
        note = await WebhookHandler(payments).handle(
            db, _event("payment_intent.succeeded", {"id": "pi_1"})
        )
        assert note == "pending"

    async def test_unknown_intent_is_acknowledged(self, db) -> None:
        payments = AsyncMock()
        payments.confirm_payment.side_effect = PaymentNotFoundError("pi_x")
        note = await WebhookHandler(payments).handle(
            db, _event("payment_intent.succeeded", {"id": "pi_x"})
        )
        assert note.startswith("ignored")

    async def test_payment_failed(self, db) -> None:
        payments = AsyncMock()
        payments.mark_payment_failed.return_value = True

        note = await WebhookHandler(payments).handle(
            db,
            _event(
                "payment_intent.payment_failed",
                {"id": "pi_1", "last_payment_error": {"message": "Card declined"}},
            ),
        )

        assert note == "failed"
        payments.mark_payment_failed.assert_awaited_once_with(db, "pi_1", "Card declined")

    async def test_payment_failed_without_message(self, db) -> None:
        payments = AsyncMock()
        payments.mark_payment_failed.return_value = False
        note = await WebhookHandler(payments).handle(
            db, _event("payment_intent.payment_failed", {"id": "pi_1"})
        )
        assert note == "already settled"
        assert payments.mark_payment_failed.call_args.args[2] == "Unknown error"

    async def test_account_updated_syncs(self, db) -> None:
        payments = AsyncMock()
        payments.sync_seller_account.return_value = SellerAccount(
            user_id="seller", account_id="acct_1", email=None, onboarding_status="active"
        )

        note = await WebhookHandler(payments).handle(
            db,
            _event(
                "account.updated",
                {"id": "acct_1", "charges_enabled": True, "details_submitted": True},
            ),
        )

        assert note == "synced"
        remote = payments.sync_seller_account.call_args.args[1]
        assert remote.id == "acct_1"
        assert remote.charges_enabled is True

    async def test_account_updated_for_foreign_account(self, db) -> None:
        payments = AsyncMock()
        payments.sync_seller_account.return_value = None
        note = await WebhookHandler(payments).handle(
            db, _event("account.updated", {"id": "acct_foreign"})
        )
        assert note == "ignored: account not found"

    async def test_unhandled_type(self, db) -> None:
        payments = AsyncMock()
        note = await WebhookHandler(payments).handle(db, _event("charge.refunded", {"id": "ch_1"}))
        assert note == "ignored: unhandled event type"
        payments.confirm_payment.assert_not_awaited()
