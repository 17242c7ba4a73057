"""Seller endpoints: payee account and payouts, always for the caller."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.database import get_db_session
from src.bd_common.response import ApiResponse, success_response
from src.bd_gateway.auth.dependencies import CurrentUser, get_current_user
from src.bd_payment.application.schemas import CreateSellerAccountRequest
from src.bd_payment.application.service import PaymentService

router = APIRouter(prefix="/seller", tags=["seller"])

_service = PaymentService()


@router.post("/account")
async def create_seller_account(
    body: CreateSellerAccountRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_seller_account(db, current_user.user_id, str(body.email))
    return success_response(data.model_dump(), request)


@router.get("/account")
async def get_seller_account_status(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_seller_account_status(db, current_user.user_id)
    return success_response(data.model_dump(), request)


@router.get("/payouts")
async def get_payout_summary(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_payout_summary(db, current_user.user_id)
    return success_response(data.model_dump(), request)


@router.post("/payouts")
async def request_payout(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_payout(db, current_user.user_id)
    return success_response(data.model_dump(), request)
