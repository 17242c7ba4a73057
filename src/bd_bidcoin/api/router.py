"""bd_bidcoin REST API: 6 endpoints, all require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_bidcoin.application.schemas import (
    BalanceChangeResponse,
    EarnRequest,
    SpendRequest,
)
from src.bd_bidcoin.application.service import BidcoinService
from src.bd_bidcoin.domain.models import BalanceChange
from src.bd_common.cents import cents_to_display
from src.bd_common.database import get_db_session
from src.bd_common.response import ApiResponse, success_response
from src.bd_gateway.auth.dependencies import (
    CurrentUser,
    ensure_self_or_admin,
    get_current_user,
    require_admin,
)

router = APIRouter(prefix="/bidcoins", tags=["bidcoins"])

_service = BidcoinService()


def _change_payload(change: BalanceChange) -> dict:
    return BalanceChangeResponse(
        balance=change.balance,
        usd_display=cents_to_display(change.balance),
        delta=change.delta,
        ledger_entry_id=change.entry_id,
        replayed=change.replayed,
    ).model_dump()


@router.get("/me")
async def get_my_bidcoins(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_summary(db, current_user.user_id)
    return success_response(data.model_dump(), request)


@router.get("/transactions")
async def list_transactions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    transaction_type: str | None = Query(None, description="Filter by transaction type"),
) -> ApiResponse:
    data = await _service.list_transactions(
        db, current_user.user_id, cursor, limit, transaction_type
    )
    return success_response(data.model_dump(), request)


@router.post("/earn")
async def earn_bidcoins(
    body: EarnRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    ensure_self_or_admin(current_user, body.user_id)
    change = await _service.earn(
        db,
        body.user_id,
        body.amount,
        body.type,
        reference_id=body.reference_id,
        reference_table=body.reference_table,
        metadata=body.metadata,
        idempotent=body.idempotent,
    )
    return success_response(_change_payload(change), request)


@router.post("/spend")
async def spend_bidcoins(
    body: SpendRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    change = await _service.spend(
        db,
        current_user.user_id,
        body.amount,
        body.type,
        reference_id=body.reference_id,
        reference_table=body.reference_table,
        metadata=body.metadata,
        idempotent=body.idempotent,
    )
    return success_response(_change_payload(change), request)


@router.post("/signup-bonus")
async def claim_signup_bonus(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    change = await _service.grant_signup_bonus(db, current_user.user_id)
    return success_response(_change_payload(change), request)


@router.get("/audit/{user_id}")
async def audit_balance(
    user_id: str,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.audit_balance(db, user_id)
    return success_response(data.model_dump(), request)
