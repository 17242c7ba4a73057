"""Repository and processor Protocols: dependency inversion for testability.

Unit tests inject mocks that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_payment.domain.models import (
    Auction,
    Payment,
    Payout,
    PayoutItem,
    ProcessorAccount,
    ProcessorIntent,
    ProcessorRefund,
    SellerAccount,
)


class PaymentRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, payment_id: str) -> Payment | None: ...

    async def get_by_intent_id(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None: ...

    async def find_latest_for_auction(
        self, db: AsyncSession, auction_id: str, payer_id: str
    ) -> Payment | None: ...

    async def insert(self, db: AsyncSession, payment: Payment) -> bool: ...

    async def mark_succeeded(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None: ...

    async def mark_failed(
        self, db: AsyncSession, processor_intent_id: str, reason: str | None
    ) -> Payment | None: ...

    async def mark_requires_confirmation(
        self, db: AsyncSession, processor_intent_id: str
    ) -> Payment | None: ...

    async def mark_refunded(
        self, db: AsyncSession, payment_id: str, refund_id: str, reason: str | None
    ) -> Payment | None: ...

    async def list_for_user(
        self, db: AsyncSession, user_id: str, limit: int = 100
    ) -> list[Payment]: ...


class SellerAccountRepositoryProtocol(Protocol):
    async def get_by_user(self, db: AsyncSession, user_id: str) -> SellerAccount | None: ...

    async def get_by_account_id(
        self, db: AsyncSession, account_id: str
    ) -> SellerAccount | None: ...

    async def insert(self, db: AsyncSession, account: SellerAccount) -> bool: ...

    async def update_from_processor(
        self, db: AsyncSession, remote: ProcessorAccount, onboarding_status: str
    ) -> SellerAccount | None: ...


class AuctionRepositoryProtocol(Protocol):
    async def get(self, db: AsyncSession, auction_id: str) -> Auction | None: ...

    async def mark_paid(self, db: AsyncSession, auction_id: str) -> bool: ...


class PayoutRepositoryProtocol(Protocol):
    async def totals(
        self, db: AsyncSession, seller_id: str, currency: str
    ) -> tuple[int, int]: ...

    async def list_for_seller(
        self, db: AsyncSession, seller_id: str, limit: int = 50
    ) -> list[Payout]: ...

    async def lock_destination(self, db: AsyncSession, seller_id: str) -> str | None: ...

    async def list_unallocated(
        self, db: AsyncSession, seller_id: str, currency: str
    ) -> list[PayoutItem]: ...

    async def insert(
        self, db: AsyncSession, payout: Payout, items: list[PayoutItem]
    ) -> Payout: ...


class PaymentProcessorProtocol(Protocol):
    async def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        destination_account_id: str,
        application_fee_amount: int,
        idempotency_key: str,
        metadata: dict[str, Any] | None = None,
    ) -> ProcessorIntent: ...

    async def retrieve_payment_intent(self, intent_id: str) -> ProcessorIntent: ...

    async def create_refund(
        self, *, payment_intent_id: str, idempotency_key: str, reason: str | None = None
    ) -> ProcessorRefund: ...

    async def create_account(
        self, *, email: str, user_id: str, idempotency_key: str
    ) -> ProcessorAccount: ...

    async def retrieve_account(self, account_id: str) -> ProcessorAccount: ...

    async def create_account_link(
        self, *, account_id: str, refresh_url: str, return_url: str
    ) -> str: ...
