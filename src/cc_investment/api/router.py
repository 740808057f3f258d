"""cc_investment REST endpoints.

POST   /commit-application        — Application Intake
GET    /applications              — caller's applications
GET    /investments               — caller's confirmed investments
DELETE /investments/{investment_id} — cancel before finalization
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_common.database import get_db_session
from src.cc_common.response import ApiResponse, success_response
from src.cc_gateway.auth.dependencies import get_current_user
from src.cc_investment.application.intake import IntakeService
from src.cc_investment.application.schemas import CommitApplicationRequest
from src.cc_investment.application.service import InvestmentApplicationService

router = APIRouter(tags=["investments"])

_intake = IntakeService()
_service = InvestmentApplicationService()


@router.post("/commit-application")
async def commit_application(
    body: CommitApplicationRequest,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _intake.commit(
        db, current_user, body.user_id, body.property_id, body.requested_shares
    )
    return success_response(result.model_dump(), request)


@router.get("/applications")
async def list_applications(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await _service.list_applications(db, current_user.id, limit)
    return success_response(result.model_dump(), request)


@router.get("/investments")
async def list_investments(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await _service.list_investments(db, current_user.id, limit)
    return success_response(result.model_dump(), request)


@router.delete("/investments/{investment_id}")
async def cancel_investment(
    investment_id: str,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_investment(db, current_user, investment_id)
    return success_response(result.model_dump(), request)
