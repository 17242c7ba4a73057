"""Integration tests for the guarded payment transitions (requires PG).

The processor is not involved: rows are seeded directly and the repository
transitions and payout requests are raced on separate sessions.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text

from src.bd_common.database import async_session_factory
from src.bd_common.errors import NoPayoutFundsError
from src.bd_payment.application.service import PaymentService
from src.bd_payment.infrastructure.auctions_repository import AuctionRepository
from src.bd_payment.infrastructure.persistence import PaymentRepository
from tests.integration.conftest import new_user_id

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


async def _seed(session) -> tuple[str, str]:
    suffix = uuid.uuid4().hex[:10]
    auction_id, intent_id = f"auc_{suffix}", f"pi_{suffix}"
    await session.execute(
        text("""
            INSERT INTO auctions (id, seller_id, status, current_price, highest_bidder_id)
            VALUES (:id, 'seller', 'ended', 10000, 'buyer')
        """),
        {"id": auction_id},
    )
    await session.execute(
        text("""
            INSERT INTO payments (id, processor_intent_id, auction_id, payer_id, payee_id,
                payee_account_id, amount, platform_fee, seller_amount, currency, status)
            VALUES (:id, :intent, :auction, 'buyer', 'seller', 'acct_seller',
                10000, 500, 9500, 'usd', 'requires_confirmation')
        """),
        {"id": f"pay_{suffix}", "intent": intent_id, "auction": auction_id},
    )
    await session.commit()
    return auction_id, intent_id


async def _confirm(intent_id: str) -> bool:
    payments, auctions = PaymentRepository(), AuctionRepository()
    async with async_session_factory() as db:
        updated = await payments.mark_succeeded(db, intent_id)
        if updated is not None:
            await auctions.mark_paid(db, updated.auction_id)
        await db.commit()
        return updated is not None


class TestGuardedTransitions:
    async def test_only_one_confirmation_wins(self, session) -> None:
        auction_id, intent_id = await _seed(session)

        winners = await asyncio.gather(*(_confirm(intent_id) for _ in range(5)))

        assert winners.count(True) == 1
        auction = await AuctionRepository().get(session, auction_id)
        assert auction is not None
        assert auction.status == "paid"

    async def test_refund_requires_succeeded(self, session) -> None:
        _, intent_id = await _seed(session)
        repo = PaymentRepository()
        payment = await repo.get_by_intent_id(session, intent_id)
        assert payment is not None

        assert await repo.mark_refunded(session, payment.id, "re_1", "early") is None
        await session.rollback()

        await repo.mark_succeeded(session, intent_id)
        refunded = await repo.mark_refunded(session, payment.id, "re_1", "damaged")
        await session.commit()
        assert refunded is not None
        assert refunded.status == "refunded"
        assert refunded.refunded_at is not None

    async def test_failure_after_success_ignored(self, session) -> None:
        _, intent_id = await _seed(session)
        repo = PaymentRepository()
        await repo.mark_succeeded(session, intent_id)
        await session.commit()

        assert await repo.mark_failed(session, intent_id, "late decline") is None
        await session.rollback()


async def _seed_seller_with_sales(session, sales: int) -> str:
    seller_id = new_user_id("seller")
    await session.execute(
        text("""
            INSERT INTO seller_accounts (user_id, account_id, onboarding_status,
                payouts_enabled, charges_enabled)
            VALUES (:user_id, :account_id, 'active', TRUE, TRUE)
        """),
        {"user_id": seller_id, "account_id": f"acct_{seller_id}"},
    )
    for _ in range(sales):
        suffix = uuid.uuid4().hex[:10]
        await session.execute(
            text("""
                INSERT INTO payments (id, processor_intent_id, auction_id, payer_id, payee_id,
                    payee_account_id, amount, platform_fee, seller_amount, currency, status)
                VALUES (:id, :intent, :auction, 'buyer', :seller, :account,
                    10000, 500, 9500, 'usd', 'succeeded')
            """),
            {
                "id": f"pay_{suffix}",
                "intent": f"pi_{suffix}",
                "auction": f"auc_{suffix}",
                "seller": seller_id,
                "account": f"acct_{seller_id}",
            },
        )
    await session.commit()
    return seller_id


async def _request_payout(service: PaymentService, seller_id: str):
    async with async_session_factory() as db:
        try:
            return await service.request_payout(db, seller_id)
        except NoPayoutFundsError as exc:
            return exc


class TestPayoutAllocation:
    async def test_concurrent_requests_allocate_each_payment_once(self, session) -> None:
        seller_id = await _seed_seller_with_sales(session, sales=3)
        service = PaymentService(processor=AsyncMock())

        results = await asyncio.gather(
            *(_request_payout(service, seller_id) for _ in range(3))
        )

        payouts = [r for r in results if not isinstance(r, NoPayoutFundsError)]
        assert len(payouts) == 1
        assert payouts[0].amount_total == 3 * 9500
        assert len(payouts[0].items) == 3

        summary = await service.get_payout_summary(session, seller_id)
        assert summary.total_completed == 3 * 9500
        assert summary.allocated_total == 3 * 9500
        assert summary.available == 0
