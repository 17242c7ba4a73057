"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Identity
  2xxx: BidCoin ledger
  3xxx: Referral
  4xxx: Payment / auction / seller account
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    """Base for every "referenced thing does not exist" failure."""

    def __init__(self, message: str, code: int = 9004) -> None:
        super().__init__(code, message, 404)


# --- 1xxx: Auth/Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Operation not permitted for this user") -> None:
        super().__init__(1002, detail, 403)


# --- 2xxx: BidCoin ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient BidCoins: required {required}, available {available}",
            422,
        )


class BonusAlreadyClaimedError(AppError):
    def __init__(self) -> None:
        super().__init__(2002, "Bonus already claimed", 409)


# --- 3xxx: Referral ---

class ReferralCodeNotFoundError(NotFoundError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Invalid referral code: {code}", 3001)


class AlreadyClaimedError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(3002, f"Referral already claimed by user {user_id}", 409)


class SelfReferralError(AppError):
    def __init__(self) -> None:
        super().__init__(3003, "Cannot use your own referral code", 422)


class ReferralCodeExhaustedError(AppError):
    def __init__(self, code: str) -> None:
        super().__init__(3004, f"Referral code {code} has no claims left", 409)


# --- 4xxx: Payment / auction / seller account ---

class AuctionNotFoundError(NotFoundError):
    def __init__(self, auction_id: str) -> None:
        super().__init__(f"Auction not found: {auction_id}", 4001)


class InvalidAuctionStateError(AppError):
    def __init__(self, auction_id: str, detail: str) -> None:
        super().__init__(4002, f"Auction {auction_id} cannot be settled: {detail}", 422)


class MissingPayeeAccountError(AppError):
    def __init__(self, seller_id: str) -> None:
        super().__init__(
            4003, f"Seller {seller_id} has no active payee account", 422
        )


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_ref: str) -> None:
        super().__init__(f"Payment not found: {payment_ref}", 4004)


class InvalidStateError(AppError):
    def __init__(self, payment_id: str, status: str, expected: str) -> None:
        super().__init__(
            4005,
            f"Payment {payment_id} is {status}, expected {expected}",
            409,
        )


class ProcessorError(AppError):
    """Payment processor failure.

    ``transient`` marks failures a caller may retry (timeouts, network errors,
    429 and 5xx answers). Everything else is a permanent rejection.
    """

    def __init__(
        self,
        detail: str,
        transient: bool = False,
        processor_code: str | None = None,
    ) -> None:
        self.transient = transient
        self.processor_code = processor_code
        super().__init__(4006, f"Payment processor error: {detail}", 502)


class WebhookSignatureError(AppError):
    def __init__(self, detail: str = "Invalid signature") -> None:
        super().__init__(4007, detail, 400)


class NoPayoutFundsError(AppError):
    def __init__(self, available: int, minimum: int) -> None:
        self.available = available
        super().__init__(
            4008, f"No funds available for payout: available={available}, minimum={minimum}", 422
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 422)
