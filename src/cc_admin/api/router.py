"""Admin REST API — settlement engine triggers and read-only diagnostics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_admin.application.service import AdminService
from src.cc_common.database import get_db_session
from src.cc_common.response import ApiResponse, success_response
from src.cc_gateway.auth.dependencies import require_admin
from src.cc_settlement.application.schemas import ApproveApplicationRequest, FinalizeRequest

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.post("/run-sweep")
async def run_sweep(
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.run_sweep(db, admin.id)
    return success_response(result.model_dump(), request)


@router.post("/finalize")
async def finalize(
    body: FinalizeRequest,
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.finalize(db, body.property_id, admin.id)
    return success_response(result.model_dump(), request)


@router.post("/applications/{application_id}/approve")
async def approve_application(
    application_id: str,
    body: ApproveApplicationRequest,
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.approve(db, application_id, body.approved_shares, admin.id)
    return success_response(result.model_dump(), request)


@router.post("/applications/{application_id}/reject")
async def reject_application(
    application_id: str,
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reject(db, application_id, admin.id)
    return success_response(result.model_dump(), request)


@router.post("/applications/{application_id}/carry")
async def carry_application(
    application_id: str,
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.carry(db, application_id, admin.id)
    return success_response(result.model_dump(), request)


@router.get("/invariants")
async def check_invariants(
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.check_invariants(db)
    return success_response(result.model_dump(), request)


@router.get("/forecast")
async def forecast(
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    start: str = Query(..., description="First month, YYYY-MM"),
    end: str = Query(..., description="Last month, YYYY-MM"),
) -> ApiResponse:
    result = await _service.forecast(db, start, end)
    return success_response(result.model_dump(), request)


@router.get("/properties/{property_id}/audit")
async def list_audit(
    property_id: str,
    request: Request,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    result = await _service.list_audit(db, property_id, limit)
    return success_response(result.model_dump(), request)
