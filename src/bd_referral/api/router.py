"""bd_referral REST API: 3 endpoints, all require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bd_common.database import get_db_session
from src.bd_common.response import ApiResponse, success_response
from src.bd_gateway.auth.dependencies import CurrentUser, get_current_user
from src.bd_referral.application.schemas import ClaimReferralRequest
from src.bd_referral.application.service import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])

_service = ReferralService()


@router.post("/claim")
async def claim_referral(
    body: ClaimReferralRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.claim(db, current_user.user_id, body.code)
    return success_response(data.model_dump(), request)


@router.get("/me")
async def get_my_referral_code(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_or_create_code(db, current_user.user_id)
    return success_response(data.model_dump(), request)


@router.get("/history")
async def get_referral_history(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_referrals(db, current_user.user_id)
    return success_response(data.model_dump(), request)
