"""Processor webhook endpoint: authenticated by signature, not by JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.database import get_db_session
from src.bd_common.response import ApiResponse, success_response
from src.bd_payment.application.webhooks import WebhookHandler
from src.bd_payment.infrastructure.processor_client import construct_event

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

_handler = WebhookHandler()


@router.post("/processor")
async def processor_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    # Signature covers the exact raw bytes, so read the body before any parsing
    payload = await request.body()
    event = construct_event(payload, request.headers.get("Stripe-Signature"))
    note = await _handler.handle(db, event)
    return success_response({"received": True, "note": note}, request)
