"""cc_property REST endpoints.

GET /properties/{property_id}   — property with its payment plan
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_common.database import get_db_session
from src.cc_common.response import ApiResponse, success_response
from src.cc_gateway.auth.dependencies import get_current_user
from src.cc_property.application.service import PropertyApplicationService

router = APIRouter(prefix="/properties", tags=["properties"])

_service = PropertyApplicationService()


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_property(db, property_id)
    return success_response(result.model_dump(), request)
