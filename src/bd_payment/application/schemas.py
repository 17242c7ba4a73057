"""Pydantic request/response schemas for bd_payment.

All responses are wrapped in ApiResponse at the router layer.
"""

from pydantic import BaseModel, EmailStr, Field

from src.bd_common.cents import cents_to_display
from src.bd_common.enums import OnboardingStatus
from src.bd_payment.domain.models import Payment, Payout, PayoutItem, SellerAccount

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ProcessPaymentRequest(BaseModel):
    auction_id: str = Field(..., min_length=1, max_length=64)


class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1, max_length=255)


class RefundRequest(BaseModel):
    payment_id: str = Field(..., min_length=1, max_length=64)
    reason: str = Field(..., min_length=1, max_length=500)


class CreateSellerAccountRequest(BaseModel):
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentIntentResponse(BaseModel):
    payment_id: str
    payment_intent_id: str
    client_secret: str | None
    amount: int
    amount_display: str
    currency: str
    status: str

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentIntentResponse":
        return cls(
            payment_id=payment.id,
            payment_intent_id=payment.processor_intent_id,
            client_secret=payment.client_secret,
            amount=payment.amount,
            amount_display=cents_to_display(payment.amount),
            currency=payment.currency,
            status=payment.status,
        )


class ConfirmPaymentResponse(BaseModel):
    payment_intent_id: str
    confirmed: bool


class RefundResponse(BaseModel):
    payment_id: str
    refund_id: str | None
    status: str
    refunded_at: str | None  # ISO8601 string


class PaymentItem(BaseModel):
    id: str
    auction_id: str
    role: str                 # "payer" | "payee" from the caller's side
    amount: int
    platform_fee: int
    seller_amount: int
    currency: str
    status: str
    failure_reason: str | None
    created_at: str           # ISO8601 string

    @classmethod
    def from_payment(cls, payment: Payment, user_id: str) -> "PaymentItem":
        return cls(
            id=payment.id,
            auction_id=payment.auction_id,
            role="payer" if payment.payer_id == user_id else "payee",
            amount=payment.amount,
            platform_fee=payment.platform_fee,
            seller_amount=payment.seller_amount,
            currency=payment.currency,
            status=payment.status,
            failure_reason=payment.failure_reason,
            created_at=payment.created_at.isoformat() if payment.created_at else "",
        )


class SellerAccountLinkResponse(BaseModel):
    account_id: str
    onboarding_url: str


class SellerAccountStatusResponse(BaseModel):
    has_account: bool
    account_id: str | None = None
    onboarding_status: str | None = None
    onboarding_completed: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    synced_at: str | None = None

    @classmethod
    def from_account(cls, account: SellerAccount) -> "SellerAccountStatusResponse":
        return cls(
            has_account=True,
            account_id=account.account_id,
            onboarding_status=account.onboarding_status,
            onboarding_completed=account.onboarding_status == OnboardingStatus.ACTIVE.value,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
            synced_at=account.synced_at.isoformat() if account.synced_at else None,
        )


class PayoutItemResponse(BaseModel):
    payment_id: str
    amount: int

    @classmethod
    def from_item(cls, item: PayoutItem) -> "PayoutItemResponse":
        return cls(payment_id=item.payment_id, amount=item.amount)


class PayoutResponse(BaseModel):
    id: str
    status: str
    amount_total: int
    amount_display: str
    currency: str
    destination_account_id: str
    requested_at: str | None  # ISO8601 string
    items: list[PayoutItemResponse] = []

    @classmethod
    def from_payout(
        cls, payout: Payout, items: list[PayoutItemResponse] | None = None
    ) -> "PayoutResponse":
        return cls(
            id=payout.id,
            status=payout.status,
            amount_total=payout.amount_total,
            amount_display=cents_to_display(payout.amount_total),
            currency=payout.currency,
            destination_account_id=payout.destination_account_id,
            requested_at=payout.requested_at.isoformat() if payout.requested_at else None,
            items=items or [],
        )


class PayoutSummaryResponse(BaseModel):
    total_completed: int
    allocated_total: int
    available: int
    currency: str
    account_id: str | None
    payouts: list[PayoutResponse]

    @classmethod
    def build(
        cls,
        *,
        completed: int,
        allocated: int,
        currency: str,
        account_id: str | None,
        payouts: list[Payout],
    ) -> "PayoutSummaryResponse":
        # Refunds after allocation can push allocated above completed
        return cls(
            total_completed=completed,
            allocated_total=allocated,
            available=max(completed - allocated, 0),
            currency=currency,
            account_id=account_id,
            payouts=[PayoutResponse.from_payout(p) for p in payouts],
        )
