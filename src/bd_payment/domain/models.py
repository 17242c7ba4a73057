"""Domain models for bd_payment: pure dataclasses, no SQLAlchemy dependency.

Local mirrors (Payment, SellerAccount) are what we persist; Processor* types
are the parts of processor API objects the orchestrator reads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Payment:
    id: str                          # snowflake "pay_..."
    processor_intent_id: str
    auction_id: str
    payer_id: str
    payee_id: str
    payee_account_id: str
    amount: int                      # cents
    platform_fee: int                # cents
    seller_amount: int               # amount - platform_fee
    currency: str
    status: str                      # PaymentStatus value
    client_secret: str | None = None
    failure_reason: str | None = None
    refund_id: str | None = None
    refund_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    refunded_at: datetime | None = None


@dataclass
class SellerAccount:
    user_id: str
    account_id: str
    email: str | None
    onboarding_status: str           # OnboardingStatus value
    payouts_enabled: bool = False
    charges_enabled: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    synced_at: datetime | None = None


@dataclass
class Auction:
    id: str
    seller_id: str
    status: str                      # AuctionStatus value
    current_price: int               # cents
    highest_bidder_id: str | None
    currency: str = "usd"
    paid_at: datetime | None = None


@dataclass
class Payout:
    id: str                          # snowflake "po_..."
    seller_id: str
    status: str                      # PayoutStatus value
    amount_total: int                # cents, sum of its items
    currency: str
    destination_account_id: str
    requested_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class PayoutItem:
    payout_id: str
    payment_id: str
    amount: int                      # the payment's seller_amount


@dataclass
class ProcessorIntent:
    id: str
    status: str                      # raw processor status
    amount: int
    currency: str
    client_secret: str | None = None
    last_error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessorRefund:
    id: str
    status: str                      # pending | succeeded | failed | canceled | requires_action
    payment_intent_id: str | None = None


@dataclass
class ProcessorAccount:
    id: str
    email: str | None = None
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    disabled_reason: str | None = None


@dataclass
class ProcessorEvent:
    id: str
    type: str
    data_object: dict[str, Any]
    created: int | None = None
