"""StripeProcessorClient: Stripe-compatible REST calls over httpx.

Requests are form encoded (nested keys as ``a[b]``), authenticated with the
secret key as the basic-auth username, and carry an ``Idempotency-Key`` on
every create so a retried call never produces a second object.

Failures surface as ProcessorError:
  - timeouts, connect and protocol errors -> transient=True
  - HTTP 429 and 5xx                      -> transient=True
  - other 4xx                             -> permanent, with the processor's
                                             error code and message
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any

import httpx

from config.settings import settings
from src.bd_common.errors import ProcessorError, ValidationError, WebhookSignatureError
from src.bd_payment.domain.models import (
    ProcessorAccount,
    ProcessorEvent,
    ProcessorIntent,
    ProcessorRefund,
)

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    httpx.NetworkError,
)

WEBHOOK_TOLERANCE_SECONDS = 300


# ---------------------------------------------------------------------------
# Form encoding
# ---------------------------------------------------------------------------


def encode_form(params: dict[str, Any], prefix: str | None = None) -> dict[str, str]:
    """Flatten nested params the way the processor expects.

    {"transfer_data": {"destination": "acct_1"}} -> {"transfer_data[destination]": "acct_1"}
    None values are dropped; booleans become "true"/"false".
    """
    flat: dict[str, str] = {}
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            flat.update(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            flat.update(encode_form({str(i): v for i, v in enumerate(value)}, name))
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        else:
            flat[name] = str(value)
    return flat


# ---------------------------------------------------------------------------
# Payload -> domain mappers (shared with the webhook handler)
# ---------------------------------------------------------------------------


def intent_from_payload(data: dict[str, Any]) -> ProcessorIntent:
    last_error = data.get("last_payment_error") or {}
    return ProcessorIntent(
        id=data["id"],
        status=data.get("status", ""),
        amount=int(data.get("amount") or 0),
        currency=data.get("currency") or "",
        client_secret=data.get("client_secret"),
        last_error=last_error.get("message"),
        metadata=dict(data.get("metadata") or {}),
    )


def refund_from_payload(data: dict[str, Any]) -> ProcessorRefund:
    return ProcessorRefund(
        id=data["id"],
        status=data.get("status", ""),
        payment_intent_id=data.get("payment_intent"),
    )


def account_from_payload(data: dict[str, Any]) -> ProcessorAccount:
    requirements = data.get("requirements") or {}
    return ProcessorAccount(
        id=data["id"],
        email=data.get("email"),
        charges_enabled=bool(data.get("charges_enabled")),
        payouts_enabled=bool(data.get("payouts_enabled")),
        details_submitted=bool(data.get("details_submitted")),
        disabled_reason=requirements.get("disabled_reason"),
    )


# ---------------------------------------------------------------------------
# Webhook signature verification
# ---------------------------------------------------------------------------


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Malformed signature timestamp") from None
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def construct_event(
    payload: bytes,
    sig_header: str | None,
    secret: str | None = None,
    tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
    now: float | None = None,
) -> ProcessorEvent:
    """Verify the signature header and parse the event body."""
    if not sig_header:
        raise WebhookSignatureError("Missing signature")
    timestamp, signatures = _parse_signature_header(sig_header)

    expected = compute_signature(payload, timestamp, secret or settings.STRIPE_WEBHOOK_SECRET)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Invalid signature")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside the tolerance window")

    try:
        body = json.loads(payload)
        return ProcessorEvent(
            id=body["id"],
            type=body["type"],
            data_object=dict(body["data"]["object"]),
            created=body.get("created"),
        )
    except (ValueError, KeyError, TypeError):
        raise ValidationError("Malformed webhook payload") from None


# ---------------------------------------------------------------------------
# REST client
# ---------------------------------------------------------------------------


class StripeProcessorClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or settings.STRIPE_SECRET_KEY
        self._base_url = base_url or settings.STRIPE_API_BASE
        self._timeout = timeout if timeout is not None else settings.PROCESSOR_TIMEOUT_SECONDS
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        data = encode_form(params) if params else None

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                auth=(self._api_key, ""),
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, data=data, headers=headers)
                resp.raise_for_status()
                return resp.json()
        except TRANSIENT_EXCEPTIONS as exc:
            logger.warning("Processor %s %s transport failure: %r", method, path, exc)
            raise ProcessorError(
                f"{method} {path} failed: {exc.__class__.__name__}", transient=True
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            try:
                error = (exc.response.json() or {}).get("error") or {}
            except ValueError:
                error = {}
            transient = status_code == 429 or status_code >= 500
            logger.warning(
                "Processor %s %s answered %d: code=%s message=%s",
                method, path, status_code, error.get("code"), error.get("message"),
            )
            raise ProcessorError(
                error.get("message") or f"{method} {path} answered HTTP {status_code}",
                transient=transient,
                processor_code=error.get("code") or error.get("type"),
            ) from exc
        except ValueError as exc:
            raise ProcessorError(f"{method} {path} returned a non-JSON body") from exc

    async def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        destination_account_id: str,
        application_fee_amount: int,
        idempotency_key: str,
        metadata: dict[str, Any] | None = None,
    ) -> ProcessorIntent:
        data = await self._request(
            "POST",
            "/payment_intents",
            {
                "amount": amount,
                "currency": currency.lower(),
                "application_fee_amount": application_fee_amount,
                "transfer_data": {"destination": destination_account_id},
                "on_behalf_of": destination_account_id,
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata or {},
            },
            idempotency_key=idempotency_key,
        )
        return intent_from_payload(data)

    async def retrieve_payment_intent(self, intent_id: str) -> ProcessorIntent:
        data = await self._request("GET", f"/payment_intents/{intent_id}")
        return intent_from_payload(data)

    async def create_refund(
        self, *, payment_intent_id: str, idempotency_key: str, reason: str | None = None
    ) -> ProcessorRefund:
        data = await self._request(
            "POST",
            "/refunds",
            {"payment_intent": payment_intent_id, "metadata": {"reason": reason}},
            idempotency_key=idempotency_key,
        )
        return refund_from_payload(data)

    async def create_account(
        self, *, email: str, user_id: str, idempotency_key: str
    ) -> ProcessorAccount:
        data = await self._request(
            "POST",
            "/accounts",
            {
                "type": "express",
                "email": email,
                "business_type": "individual",
                "capabilities": {
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                "metadata": {"user_id": user_id, "platform": settings.APP_NAME},
            },
            idempotency_key=idempotency_key,
        )
        return account_from_payload(data)

    async def retrieve_account(self, account_id: str) -> ProcessorAccount:
        data = await self._request("GET", f"/accounts/{account_id}")
        return account_from_payload(data)

    async def create_account_link(
        self, *, account_id: str, refresh_url: str, return_url: str
    ) -> str:
        data = await self._request(
            "POST",
            "/account_links",
            {
                "account": account_id,
                "refresh_url": refresh_url,
                "return_url": return_url,
                "type": "account_onboarding",
            },
        )
        return data["url"]
