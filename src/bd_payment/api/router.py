"""bd_payment REST API: payments, seller payee accounts, processor webhooks."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.database import get_db_session
from src.bd_common.response import ApiResponse, success_response
from src.bd_gateway.auth.dependencies import CurrentUser, get_current_user, require_admin
from src.bd_payment.application.schemas import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    ProcessPaymentRequest,
    RefundRequest,
)
from src.bd_payment.application.service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentService()


@router.post("/process")
async def process_auction_payment(
    body: ProcessPaymentRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    # The payer is always the caller; the service checks they won the auction
    data = await _service.process_auction_payment(db, body.auction_id, current_user.user_id)
    return success_response(data.model_dump(), request)


@router.post("/confirm")
async def confirm_payment(
    body: ConfirmPaymentRequest,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    confirmed = await _service.confirm_payment(db, body.payment_intent_id)
    data = ConfirmPaymentResponse(payment_intent_id=body.payment_intent_id, confirmed=confirmed)
    return success_response(data.model_dump(), request)


@router.post("/refund")
async def refund_payment(
    body: RefundRequest,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.process_refund(db, body.payment_id, body.reason)
    return success_response(data.model_dump(), request)


@router.get("/me")
async def list_my_payments(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_user_payments(db, current_user.user_id)
    return success_response({"items": [i.model_dump() for i in items]}, request)
