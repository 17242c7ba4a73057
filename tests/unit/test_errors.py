"""Tests for bd_common.errors and bd_common.response."""

from src.bd_common.errors import (
    AlreadyClaimedError,
    AppError,
    AuctionNotFoundError,
    BonusAlreadyClaimedError,
    InsufficientFundsError,
    InvalidStateError,
    NoPayoutFundsError,
    NotFoundError,
    PaymentNotFoundError,
    ProcessorError,
    RateLimitError,
    ReferralCodeNotFoundError,
    SelfReferralError,
    ValidationError,
    WebhookSignatureError,
)
from src.bd_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=1001, message="Nope", http_status=401)
        assert err.http_status == 401

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestSpecificErrors:
    def test_insufficient_funds(self) -> None:
        err = InsufficientFundsError(required=300, available=200)
        assert err.code == 2001
        assert err.http_status == 422
        assert err.required == 300
        assert err.available == 200
        assert "300" in err.message
        assert "200" in err.message

    def test_bonus_already_claimed(self) -> None:
        err = BonusAlreadyClaimedError()
        assert (err.code, err.http_status) == (2002, 409)

    def test_referral_errors(self) -> None:
        assert ReferralCodeNotFoundError("abc").http_status == 404
        assert AlreadyClaimedError("u1").http_status == 409
        assert SelfReferralError().code == 3003

    def test_not_found_family(self) -> None:
        for err in (
            ReferralCodeNotFoundError("abc"),
            AuctionNotFoundError("a1"),
            PaymentNotFoundError("pay_1"),
        ):
            assert isinstance(err, NotFoundError)
            assert err.http_status == 404

    def test_invalid_state_mentions_statuses(self) -> None:
        err = InvalidStateError("pay_1", "failed", "succeeded")
        assert err.http_status == 409
        assert "failed" in err.message
        assert "succeeded" in err.message

    def test_processor_error_defaults_to_permanent(self) -> None:
        err = ProcessorError("card declined", processor_code="card_declined")
        assert err.transient is False
        assert err.processor_code == "card_declined"
        assert err.http_status == 502

    def test_processor_error_transient(self) -> None:
        assert ProcessorError("timeout", transient=True).transient is True

    def test_no_payout_funds(self) -> None:
        err = NoPayoutFundsError(available=50, minimum=100)
        assert (err.code, err.http_status) == (4008, 422)
        assert err.available == 50
        assert "100" in err.message

    def test_webhook_signature(self) -> None:
        assert WebhookSignatureError().http_status == 400

    def test_rate_limit_and_validation(self) -> None:
        assert RateLimitError().http_status == 429
        assert ValidationError("bad").http_status == 422


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"balance": 500})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"balance": 500}
        assert resp.request_id.startswith("req_")

    def test_error_response(self) -> None:
        resp = error_response(2001, "Insufficient BidCoins")
        assert resp.code == 2001
        assert resp.data is None

    def test_serialization(self) -> None:
        dumped = ApiResponse(data=[1, 2]).model_dump()
        assert set(dumped) == {"code", "message", "data", "timestamp", "request_id"}
