"""AdminService — administrator entry points into the settlement engine.

Each operation delegates to the engine service that owns the transition and
records the administrator as the audit actor.
"""

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_forecast.application.schemas import ForecastResponse
from src.cc_forecast.application.service import ForecastService
from src.cc_settlement.application.finalize import FinalizeService
from src.cc_settlement.application.invariants import InvariantChecker
from src.cc_settlement.application.review import ManualReviewService
from src.cc_settlement.application.schemas import (
    FinalizeResult,
    InvariantReport,
    ReviewResult,
    SweepReport,
)
from src.cc_settlement.application.sweep import SweepService


class AuditRecordItem(BaseModel):
    id: int | None
    actor_id: str
    action: str
    reference_id: str | None
    amount_cents: int | None
    shares: int | None
    details: str
    created_at: str


class AuditListResponse(BaseModel):
    property_id: str
    items: list[AuditRecordItem]


class AdminService:
    def __init__(
        self,
        sweep: SweepService | None = None,
        finalize: FinalizeService | None = None,
        review: ManualReviewService | None = None,
        invariants: InvariantChecker | None = None,
        forecast: ForecastService | None = None,
        audit: AuditRepositoryProtocol | None = None,
    ) -> None:
        self._sweep = sweep or SweepService()
        self._finalize = finalize or FinalizeService()
        self._review = review or ManualReviewService()
        self._invariants = invariants or InvariantChecker()
        self._forecast = forecast or ForecastService()
        self._audit: AuditRepositoryProtocol = audit or AuditRepository()

    async def run_sweep(self, db: AsyncSession, admin_id: str) -> SweepReport:
        return await self._sweep.run(db, actor_id=admin_id)

    async def finalize(self, db: AsyncSession, property_id: str, admin_id: str) -> FinalizeResult:
        return await self._finalize.finalize(db, property_id, actor_id=admin_id)

    async def approve(
        self, db: AsyncSession, application_id: str, approved_shares: int, admin_id: str
    ) -> ReviewResult:
        return await self._review.approve(db, application_id, approved_shares, admin_id)

    async def reject(self, db: AsyncSession, application_id: str, admin_id: str) -> ReviewResult:
        return await self._review.reject(db, application_id, admin_id)

    async def carry(self, db: AsyncSession, application_id: str, admin_id: str) -> ReviewResult:
        return await self._review.carry(db, application_id, admin_id)

    async def check_invariants(self, db: AsyncSession) -> InvariantReport:
        return await self._invariants.check_all(db)

    async def forecast(self, db: AsyncSession, start: str, end: str) -> ForecastResponse:
        return await self._forecast.forecast(db, start, end)

    async def list_audit(
        self, db: AsyncSession, property_id: str, limit: int
    ) -> AuditListResponse:
        records = await self._audit.list_records(db, property_id, limit)
        return AuditListResponse(
            property_id=property_id,
            items=[
                AuditRecordItem(
                    id=r.id,
                    actor_id=r.actor_id,
                    action=r.action,
                    reference_id=r.reference_id,
                    amount_cents=r.amount,
                    shares=r.shares,
                    details=r.details,
                    created_at=r.created_at.isoformat() if r.created_at else "",
                )
                for r in records
            ],
        )
