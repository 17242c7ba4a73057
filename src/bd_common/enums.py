"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class BidcoinTransactionType(str, Enum):
    # Earn reasons
    SIGNUP_BONUS = "signup_bonus"
    REFERRAL_BONUS = "referral_bonus"
    AUCTION_SALE = "auction_sale"
    AUCTION_PURCHASE = "auction_purchase"
    RAFFLE_PURCHASE = "raffle_purchase"
    PLAN_PURCHASE = "plan_purchase"
    # Spend reasons
    BID_FEE = "bid_fee"
    ITEM_PURCHASE = "item_purchase"
    RAFFLE_ENTRY = "raffle_entry"
    # Either direction (admin corrections)
    ADJUSTMENT = "adjustment"


EARN_TYPES = frozenset({
    BidcoinTransactionType.SIGNUP_BONUS,
    BidcoinTransactionType.REFERRAL_BONUS,
    BidcoinTransactionType.AUCTION_SALE,
    BidcoinTransactionType.AUCTION_PURCHASE,
    BidcoinTransactionType.RAFFLE_PURCHASE,
    BidcoinTransactionType.PLAN_PURCHASE,
    BidcoinTransactionType.ADJUSTMENT,
})

SPEND_TYPES = frozenset({
    BidcoinTransactionType.BID_FEE,
    BidcoinTransactionType.ITEM_PURCHASE,
    BidcoinTransactionType.RAFFLE_ENTRY,
    BidcoinTransactionType.ADJUSTMENT,
})


class PaymentStatus(str, Enum):
    CREATED = "created"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


OPEN_PAYMENT_STATUSES = frozenset({
    PaymentStatus.CREATED,
    PaymentStatus.REQUIRES_CONFIRMATION,
})


class OnboardingStatus(str, Enum):
    PENDING = "pending"
    ONBOARDING = "onboarding"
    ACTIVE = "active"
    RESTRICTED = "restricted"


class AuctionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    PAID = "paid"
    CANCELLED = "cancelled"


class PayoutStatus(str, Enum):
    REQUESTED = "requested"
    PAID = "paid"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    USER = "user"
    SELLER = "seller"
    ADMIN = "admin"
