"""PaymentService: auction settlement through the payment processor.

Local state machine (payments.status):

    created -> requires_confirmation -> succeeded -> refunded
                         |
                         +-> failed (reopens to requires_confirmation if the
                                     payer retries the same intent)

Rules:
  - No store transaction is held open across a processor round trip. Reads
    end with release_transaction(); each local write is its own short
    transaction.
  - Every status change is a guarded UPDATE. The "auction paid" side effect
    and the seller and winner BidCoin rewards run only in the transaction
    whose UPDATE performed succeeded.
  - A payout request locks the seller's account row, then allocates every
    succeeded payment not already held by a live payout.
  - Creates at the processor carry deterministic idempotency keys, so a
    retried request reuses the processor object instead of making another.
    A failed payment whose intent the processor canceled is retried under a
    key that names the failed payment, which yields a fresh intent.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bd_bidcoin.application.service import BidcoinService
from src.bd_common.cents import calculate_fee, calculate_reward
from src.bd_common.database import release_transaction
from src.bd_common.datetime_utils import is_older_than
from src.bd_common.enums import (
    OPEN_PAYMENT_STATUSES,
    AuctionStatus,
    BidcoinTransactionType,
    OnboardingStatus,
    PaymentStatus,
    PayoutStatus,
)
from src.bd_common.errors import (
    AuctionNotFoundError,
    InternalError,
    InvalidAuctionStateError,
    InvalidStateError,
    MissingPayeeAccountError,
    NoPayoutFundsError,
    PaymentNotFoundError,
    ProcessorError,
)
from src.bd_common.id_generator import generate_id
from src.bd_payment.application.schemas import (
    PaymentIntentResponse,
    PaymentItem,
    PayoutItemResponse,
    PayoutResponse,
    PayoutSummaryResponse,
    RefundResponse,
    SellerAccountLinkResponse,
    SellerAccountStatusResponse,
)
from src.bd_payment.domain.models import (
    Payment,
    Payout,
    PayoutItem,
    ProcessorAccount,
    SellerAccount,
)
from src.bd_payment.domain.repository import (
    AuctionRepositoryProtocol,
    PaymentProcessorProtocol,
    PaymentRepositoryProtocol,
    PayoutRepositoryProtocol,
    SellerAccountRepositoryProtocol,
)
from src.bd_payment.domain.status import (
    FAILED_REFUND_STATUSES,
    derive_onboarding_status,
    map_intent_status,
)
from src.bd_payment.infrastructure.auctions_repository import AuctionRepository
from src.bd_payment.infrastructure.persistence import PaymentRepository
from src.bd_payment.infrastructure.payouts_repository import PayoutRepository
from src.bd_payment.infrastructure.processor_client import StripeProcessorClient
from src.bd_payment.infrastructure.seller_accounts_repository import SellerAccountRepository

logger = logging.getLogger(__name__)

_SETTLED_STATUSES = frozenset({PaymentStatus.SUCCEEDED.value, PaymentStatus.REFUNDED.value})
_OPEN_STATUSES = frozenset(s.value for s in OPEN_PAYMENT_STATUSES)


def payment_idempotency_key(
    auction_id: str, winner_id: str, retry_of: str | None = None
) -> str:
    key = f"auction-{auction_id}-{winner_id}"
    return f"{key}-retry-{retry_of}" if retry_of else key


def refund_idempotency_key(payment_id: str) -> str:
    return f"refund-{payment_id}"


def seller_account_idempotency_key(user_id: str) -> str:
    return f"seller-account-{user_id}"


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepositoryProtocol | None = None,
        seller_accounts: SellerAccountRepositoryProtocol | None = None,
        auctions: AuctionRepositoryProtocol | None = None,
        processor: PaymentProcessorProtocol | None = None,
        payouts: PayoutRepositoryProtocol | None = None,
        bidcoins: BidcoinService | None = None,
    ) -> None:
        self._payments: PaymentRepositoryProtocol = payments or PaymentRepository()
        self._seller_accounts: SellerAccountRepositoryProtocol = (
            seller_accounts or SellerAccountRepository()
        )
        self._auctions: AuctionRepositoryProtocol = auctions or AuctionRepository()
        self._processor: PaymentProcessorProtocol = processor or StripeProcessorClient()
        self._payouts: PayoutRepositoryProtocol = payouts or PayoutRepository()
        self._bidcoins = bidcoins or BidcoinService()

    # ------------------------------------------------------------------
    # Auction settlement
    # ------------------------------------------------------------------

    async def process_auction_payment(
        self, db: AsyncSession, auction_id: str, winner_id: str
    ) -> PaymentIntentResponse:
        auction = await self._auctions.get(db, auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)
        if auction.status != AuctionStatus.ENDED.value:
            raise InvalidAuctionStateError(auction_id, f"status is {auction.status}")
        if auction.highest_bidder_id != winner_id:
            raise InvalidAuctionStateError(auction_id, "caller is not the winning bidder")
        if auction.current_price <= 0:
            raise InvalidAuctionStateError(auction_id, "no winning price")

        seller = await self._seller_accounts.get_by_user(db, auction.seller_id)
        if seller is None or seller.onboarding_status != OnboardingStatus.ACTIVE.value:
            raise MissingPayeeAccountError(auction.seller_id)

        existing = await self._payments.find_latest_for_auction(db, auction_id, winner_id)
        await release_transaction(db)
        retry_of: str | None = None
        if existing is not None:
            if existing.status in _OPEN_STATUSES:
                logger.info(
                    "Reusing open payment %s for auction %s", existing.id, auction_id
                )
                return PaymentIntentResponse.from_payment(existing)
            if existing.status in _SETTLED_STATUSES:
                raise InvalidAuctionStateError(auction_id, f"payment already {existing.status}")

            # A failed mirror: reuse its intent unless the processor canceled it
            previous = await self._processor.retrieve_payment_intent(
                existing.processor_intent_id
            )
            if map_intent_status(previous.status) != PaymentStatus.FAILED:
                if await self.confirm_payment(db, existing.processor_intent_id):
                    raise InvalidAuctionStateError(auction_id, "payment already succeeded")
                reopened = await self._payments.get_by_intent_id(
                    db, existing.processor_intent_id
                )
                await release_transaction(db)
                logger.info("Reopened payment %s for auction %s", existing.id, auction_id)
                return PaymentIntentResponse.from_payment(reopened or existing)
            retry_of = existing.id

        amount = auction.current_price
        fee = calculate_fee(amount, settings.PLATFORM_FEE_BPS)
        currency = (auction.currency or settings.PAYMENT_CURRENCY).lower()
        intent = await self._processor.create_payment_intent(
            amount=amount,
            currency=currency,
            destination_account_id=seller.account_id,
            application_fee_amount=fee,
            idempotency_key=payment_idempotency_key(auction_id, winner_id, retry_of),
            metadata={
                "purpose": "auction_payment",
                "auction_id": auction_id,
                "payer_id": winner_id,
                "payee_id": auction.seller_id,
                "platform_fee": fee,
                "seller_amount": amount - fee,
                "retry_of": retry_of,
            },
        )

        payment = Payment(
            id=generate_id("pay"),
            processor_intent_id=intent.id,
            auction_id=auction_id,
            payer_id=winner_id,
            payee_id=auction.seller_id,
            payee_account_id=seller.account_id,
            amount=amount,
            platform_fee=fee,
            seller_amount=amount - fee,
            currency=currency,
            status=PaymentStatus.CREATED.value,
            client_secret=intent.client_secret,
        )
        try:
            if not await self._payments.insert(db, payment):
                # The processor replayed an intent we already mirror
                stored = await self._payments.get_by_intent_id(db, intent.id)
                if stored is None:
                    raise InternalError(f"Payment mirror for {intent.id} vanished")
                payment = stored
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payment created: id=%s intent=%s auction=%s amount=%d fee=%d",
            payment.id, payment.processor_intent_id, auction_id, amount, fee,
        )
        return PaymentIntentResponse.from_payment(payment)

    async def confirm_payment(self, db: AsyncSession, intent_id: str) -> bool:
        """Mirror the processor's view of ``intent_id``. True once it succeeded.

        Safe to call any number of times: the auction is marked paid only by
        the call whose guarded UPDATE moved the payment to succeeded.
        """
        payment = await self._payments.get_by_intent_id(db, intent_id)
        await release_transaction(db)
        if payment is None:
            raise PaymentNotFoundError(intent_id)
        if payment.status in _SETTLED_STATUSES:
            return True

        intent = await self._processor.retrieve_payment_intent(intent_id)
        status = map_intent_status(intent.status)

        try:
            if status == PaymentStatus.SUCCEEDED:
                updated = await self._payments.mark_succeeded(db, intent_id)
                if updated is not None:
                    if not await self._auctions.mark_paid(db, updated.auction_id):
                        logger.warning(
                            "Auction %s was not in ended state when payment %s succeeded",
                            updated.auction_id, updated.id,
                        )
                    await self._award_settlement_rewards(db, updated)
                await db.commit()
                if updated is not None:
                    logger.info("Payment succeeded: id=%s intent=%s", updated.id, intent_id)
                return True

            if status == PaymentStatus.FAILED:
                await self._payments.mark_failed(db, intent_id, intent.last_error or intent.status)
            else:
                await self._payments.mark_requires_confirmation(db, intent_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return False

    async def _award_settlement_rewards(self, db: AsyncSession, payment: Payment) -> None:
        """Credit seller and winner BidCoins inside the settling transaction."""
        rewards = [
            (
                payment.payee_id,
                calculate_reward(payment.amount, settings.AUCTION_SELLER_REWARD_BPS),
                BidcoinTransactionType.AUCTION_SALE,
            ),
            (
                payment.payer_id,
                calculate_reward(payment.amount, settings.AUCTION_WINNER_REWARD_BPS),
                BidcoinTransactionType.AUCTION_PURCHASE,
            ),
        ]
        # Wallet rows are locked in user id order across concurrent settlements
        for user_id, coins, tx_type in sorted(rewards, key=lambda r: r[0]):
            if coins <= 0:
                continue
            await self._bidcoins.apply_earn(
                db,
                user_id,
                coins,
                tx_type,
                reference_id=payment.auction_id,
                reference_table="auctions",
                metadata={"payment_id": payment.id, "amount": payment.amount},
            )
            logger.info(
                "Settlement reward: user=%s type=%s coins=%d auction=%s",
                user_id, tx_type.value, coins, payment.auction_id,
            )

    async def mark_payment_failed(
        self, db: AsyncSession, intent_id: str, reason: str | None
    ) -> bool:
        """Record a processor-reported failure. False when nothing changed."""
        try:
            updated = await self._payments.mark_failed(db, intent_id, reason)
            if updated is None:
                existing = await self._payments.get_by_intent_id(db, intent_id)
                if existing is None:
                    raise PaymentNotFoundError(intent_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if updated is None:
            logger.info(
                "Failure for intent %s ignored, payment already %s", intent_id, existing.status
            )
            return False
        logger.info("Payment failed: id=%s intent=%s reason=%s", updated.id, intent_id, reason)
        return True

    async def process_refund(
        self, db: AsyncSession, payment_id: str, reason: str
    ) -> RefundResponse:
        payment = await self._payments.get_by_id(db, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        if payment.status != PaymentStatus.SUCCEEDED.value:
            raise InvalidStateError(payment_id, payment.status, PaymentStatus.SUCCEEDED.value)

        await release_transaction(db)
        refund = await self._processor.create_refund(
            payment_intent_id=payment.processor_intent_id,
            idempotency_key=refund_idempotency_key(payment_id),
            reason=reason,
        )
        if refund.status in FAILED_REFUND_STATUSES:
            logger.warning(
                "Refund %s for payment %s came back %s", refund.id, payment_id, refund.status
            )
            raise ProcessorError(
                f"refund {refund.id} is {refund.status}", processor_code=refund.status
            )

        try:
            updated = await self._payments.mark_refunded(db, payment_id, refund.id, reason)
            if updated is None:
                current = await self._payments.get_by_id(db, payment_id)
                if current is None or current.status != PaymentStatus.REFUNDED.value:
                    raise InvalidStateError(
                        payment_id,
                        current.status if current else "missing",
                        PaymentStatus.SUCCEEDED.value,
                    )
                # A concurrent refund of the same payment already landed
                updated = current
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Payment refunded: id=%s refund=%s", payment_id, refund.id)
        return RefundResponse(
            payment_id=payment_id,
            refund_id=updated.refund_id,
            status=updated.status,
            refunded_at=updated.refunded_at.isoformat() if updated.refunded_at else None,
        )

    async def list_user_payments(self, db: AsyncSession, user_id: str) -> list[PaymentItem]:
        payments = await self._payments.list_for_user(db, user_id)
        return [PaymentItem.from_payment(p, user_id) for p in payments]

    # ------------------------------------------------------------------
    # Seller payouts
    # ------------------------------------------------------------------

    async def get_payout_summary(self, db: AsyncSession, user_id: str) -> PayoutSummaryResponse:
        currency = settings.PAYMENT_CURRENCY.lower()
        account = await self._seller_accounts.get_by_user(db, user_id)
        completed, allocated = await self._payouts.totals(db, user_id, currency)
        payouts = await self._payouts.list_for_seller(db, user_id)
        return PayoutSummaryResponse.build(
            completed=completed,
            allocated=allocated,
            currency=currency,
            account_id=account.account_id if account else None,
            payouts=payouts,
        )

    async def request_payout(self, db: AsyncSession, user_id: str) -> PayoutResponse:
        """Allocate every unallocated succeeded payment to one new payout."""
        currency = settings.PAYMENT_CURRENCY.lower()
        minimum = max(settings.PAYOUT_MINIMUM_CENTS, 1)
        try:
            destination = await self._payouts.lock_destination(db, user_id)
            if destination is None:
                raise MissingPayeeAccountError(user_id)
            eligible = await self._payouts.list_unallocated(db, user_id, currency)
            total = sum(item.amount for item in eligible)
            if total < minimum:
                raise NoPayoutFundsError(total, minimum)

            payout = Payout(
                id=generate_id("po"),
                seller_id=user_id,
                status=PayoutStatus.REQUESTED.value,
                amount_total=total,
                currency=currency,
                destination_account_id=destination,
            )
            items = [
                PayoutItem(payout_id=payout.id, payment_id=item.payment_id, amount=item.amount)
                for item in eligible
            ]
            stored = await self._payouts.insert(db, payout, items)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payout requested: id=%s seller=%s amount=%d payments=%d",
            stored.id, user_id, total, len(items),
        )
        return PayoutResponse.from_payout(stored, [PayoutItemResponse.from_item(i) for i in items])

    # ------------------------------------------------------------------
    # Seller payee accounts
    # ------------------------------------------------------------------

    async def create_seller_account(
        self, db: AsyncSession, user_id: str, email: str
    ) -> SellerAccountLinkResponse:
        account = await self._seller_accounts.get_by_user(db, user_id)
        await release_transaction(db)

        if account is None:
            remote = await self._processor.create_account(
                email=email,
                user_id=user_id,
                idempotency_key=seller_account_idempotency_key(user_id),
            )
            candidate = SellerAccount(
                user_id=user_id,
                account_id=remote.id,
                email=email,
                onboarding_status=derive_onboarding_status(remote).value,
                payouts_enabled=remote.payouts_enabled,
                charges_enabled=remote.charges_enabled,
            )
            try:
                if await self._seller_accounts.insert(db, candidate):
                    account = candidate
                    logger.info("Seller account created: user=%s account=%s", user_id, remote.id)
                else:
                    account = await self._seller_accounts.get_by_user(db, user_id)
                    if account is None:
                        raise InternalError(f"Seller account for {user_id} vanished")
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        onboarding_url = await self._processor.create_account_link(
            account_id=account.account_id,
            refresh_url=f"{settings.APP_BASE_URL}/seller/onboard/refresh",
            return_url=f"{settings.APP_BASE_URL}/seller/onboard/complete",
        )
        return SellerAccountLinkResponse(
            account_id=account.account_id, onboarding_url=onboarding_url
        )

    async def get_seller_account_status(
        self, db: AsyncSession, user_id: str
    ) -> SellerAccountStatusResponse:
        account = await self._seller_accounts.get_by_user(db, user_id)
        if account is None:
            return SellerAccountStatusResponse(has_account=False)

        fresh = not is_older_than(account.synced_at, settings.SELLER_STATUS_MAX_AGE_SECONDS)
        if fresh and account.onboarding_status == OnboardingStatus.ACTIVE.value:
            return SellerAccountStatusResponse.from_account(account)

        await release_transaction(db)
        remote = await self._processor.retrieve_account(account.account_id)
        refreshed = await self.sync_seller_account(db, remote)
        return SellerAccountStatusResponse.from_account(refreshed or account)

    async def sync_seller_account(
        self, db: AsyncSession, remote: ProcessorAccount
    ) -> SellerAccount | None:
        """Persist the processor's view of a payee account. None if unknown."""
        status = derive_onboarding_status(remote)
        try:
            updated = await self._seller_accounts.update_from_processor(db, remote, status.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if updated is None:
            logger.warning("Processor account %s has no local seller account", remote.id)
            return None
        logger.info(
            "Seller account synced: user=%s account=%s status=%s",
            updated.user_id, remote.id, status.value,
        )
        return updated
