"""Processor webhook dispatch.

Events that reference objects we do not mirror are acknowledged (logged at
WARNING) so the processor stops redelivering them. Any other failure
propagates, the endpoint answers non-2xx and the processor retries later.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.errors import PaymentNotFoundError
from src.bd_payment.application.service import PaymentService
from src.bd_payment.domain.models import ProcessorEvent
from src.bd_payment.infrastructure.processor_client import (
    account_from_payload,
    intent_from_payload,
)

logger = logging.getLogger(__name__)


class WebhookHandler:
    def __init__(self, payments: PaymentService | None = None) -> None:
        self._payments = payments or PaymentService()

    async def handle(self, db: AsyncSession, event: ProcessorEvent) -> str:
        """Apply one verified event. Returns a short note for the response body."""
        logger.info("Webhook received: id=%s type=%s", event.id, event.type)

        if event.type == "payment_intent.succeeded":
            intent = intent_from_payload(event.data_object)
            try:
                confirmed = await self._payments.confirm_payment(db, intent.id)
            except PaymentNotFoundError:
                logger.warning("Webhook %s: unknown payment intent %s", event.id, intent.id)
                return "ignored: payment not found"
            return "confirmed" if confirmed else "pending"

        if event.type == "payment_intent.payment_failed":
            intent = intent_from_payload(event.data_object)
            try:
                changed = await self._payments.mark_payment_failed(
                    db, intent.id, intent.last_error or "Unknown error"
                )
            except PaymentNotFoundError:
                logger.warning("Webhook %s: unknown payment intent %s", event.id, intent.id)
                return "ignored: payment not found"
            return "failed" if changed else "already settled"

        if event.type == "account.updated":
            account = account_from_payload(event.data_object)
            synced = await self._payments.sync_seller_account(db, account)
            return "synced" if synced is not None else "ignored: account not found"

        logger.info("Webhook %s: unhandled event type %s", event.id, event.type)
        return "ignored: unhandled event type"
