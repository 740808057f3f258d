"""Manual review of open applications (admin-triggered engine transitions).

approve: convert all or part of the reservation into an investment; the
          unapproved remainder is refunded and its shares released
reject:  refund and release everything
carry:   retarget the application at the next tranche; the sweep picks it
          up there like a pending one. A priority claim does not move with it.

Manual approval does not count toward tranche.paid; funding a tranche is
decided by the sweep alone.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord, Notification
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import ApplicationStatus, AuditAction, TrancheStatus
from src.cc_common.errors import (
    ApplicationNotFoundError,
    ApplicationNotPendingError,
    InvalidApprovedSharesError,
    NoNextTrancheError,
    PropertyClosedError,
    PropertyNotFoundError,
    UserNotFoundError,
)
from src.cc_common.locks import PropertyLocks, get_property_locks
from src.cc_investment.domain.models import Application
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.models import Property
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.domain.tranches import tranche_at
from src.cc_property.infrastructure.persistence import PropertyRepository
from src.cc_settlement.application.schemas import ReviewResult
from src.cc_settlement.domain.ledger import SettlementLedger

logger = logging.getLogger(__name__)


class ManualReviewService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        properties: PropertyRepositoryProtocol | None = None,
        investments: InvestmentRepositoryProtocol | None = None,
        audit: AuditRepositoryProtocol | None = None,
        locks: PropertyLocks | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._properties: PropertyRepositoryProtocol = properties or PropertyRepository()
        self._investments: InvestmentRepositoryProtocol = investments or InvestmentRepository()
        self._audit: AuditRepositoryProtocol = audit or AuditRepository()
        self._locks = locks or get_property_locks()
        self._ledger = SettlementLedger(self._accounts, self._investments, self._audit)

    async def approve(
        self,
        db: AsyncSession,
        application_id: str,
        approved_shares: int,
        actor_id: str,
        now: datetime | None = None,
    ) -> ReviewResult:
        now = now or utc_now()
        property_id = await self._property_of(db, application_id)
        async with self._locks.hold(property_id):
            try:
                prop, app = await self._load_open(db, property_id, application_id)
                if not 0 < approved_shares <= app.requested_shares:
                    raise InvalidApprovedSharesError(approved_shares, app.requested_shares)
                if await self._accounts.get_user(db, app.user_id) is None:
                    raise UserNotFoundError(app.user_id)
                investment = await self._ledger.accept(
                    db, prop, app, approved_shares, now, actor_id
                )
                await self._properties.update_property(db, prop)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Review: application %s %s by %s (%d/%d shares)",
            app.id,
            app.status,
            actor_id,
            approved_shares,
            app.requested_shares,
        )
        return ReviewResult(
            application_id=app.id,
            status=app.status,
            target_tranche_index=app.target_tranche_index,
            approved_shares=app.approved_shares,
            approved_amount_cents=app.approved_amount,
            investment_id=investment.id,
            refunded_cents=app.requested_amount - (app.approved_amount or 0),
        )

    async def reject(
        self,
        db: AsyncSession,
        application_id: str,
        actor_id: str,
        now: datetime | None = None,
    ) -> ReviewResult:
        now = now or utc_now()
        property_id = await self._property_of(db, application_id)
        async with self._locks.hold(property_id):
            try:
                prop, app = await self._load_open(db, property_id, application_id)
                await self._ledger.refund(db, prop, app, now, actor_id, "rejected by review")
                await self._ledger.release_orphaned_priority(db, prop, actor_id)
                await self._properties.update_property(db, prop)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Review: application %s rejected by %s", app.id, actor_id)
        return ReviewResult(
            application_id=app.id,
            status=app.status,
            target_tranche_index=app.target_tranche_index,
            approved_shares=0,
            approved_amount_cents=0,
            refunded_cents=app.requested_amount,
        )

    async def carry(
        self,
        db: AsyncSession,
        application_id: str,
        actor_id: str,
    ) -> ReviewResult:
        property_id = await self._property_of(db, application_id)
        async with self._locks.hold(property_id):
            try:
                prop, app = await self._load_open(db, property_id, application_id)
                tranches = await self._properties.list_tranches(db, property_id)
                target = tranche_at(tranches, app.target_tranche_index + 1)
                if target is None or target.status == TrancheStatus.SETTLED.value:
                    raise NoNextTrancheError(app.id)

                app.target_tranche_index += 1
                app.status = ApplicationStatus.CARRIED.value
                # Priority is earned on the founding tranche only
                if app.is_priority:
                    app.is_priority = False
                    if prop.priority_investor_id == app.user_id:
                        await self._ledger.clear_priority(
                            db, prop, actor_id, f"Priority application {app.id} carried"
                        )
                await self._investments.update_application(db, app)
                await self._audit.append(
                    db,
                    AuditRecord(
                        actor_id=actor_id,
                        action=AuditAction.APPLICATION_CARRIED.value,
                        property_id=prop.id,
                        reference_id=app.id,
                        amount=app.requested_amount,
                        shares=app.requested_shares,
                        details=f"Carried to tranche {app.target_tranche_index}",
                    ),
                )
                await self._audit.enqueue_notification(
                    db,
                    Notification(
                        user_id=app.user_id,
                        property_id=prop.id,
                        title="Your application has been carried over",
                        content=(
                            f"Your application for property {prop.title} has been moved "
                            f"to the next stage."
                        ),
                    ),
                )
                await self._properties.update_property(db, prop)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Review: application %s carried to tranche %d by %s",
            app.id,
            app.target_tranche_index,
            actor_id,
        )
        return ReviewResult(
            application_id=app.id,
            status=app.status,
            target_tranche_index=app.target_tranche_index,
        )

    async def _property_of(self, db: AsyncSession, application_id: str) -> str:
        app = await self._investments.get_application(db, application_id)
        if app is None:
            raise ApplicationNotFoundError(application_id)
        return app.property_id

    async def _load_open(
        self, db: AsyncSession, property_id: str, application_id: str
    ) -> tuple[Property, Application]:
        prop = await self._properties.get_property(db, property_id, for_update=True)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        if prop.is_terminal:
            raise PropertyClosedError(property_id, prop.status)
        # Re-read under the lock: the sweep may have settled it meanwhile
        app = await self._investments.get_application(db, application_id)
        if app is None:
            raise ApplicationNotFoundError(application_id)
        if not app.is_open:
            raise ApplicationNotPendingError(app.id, app.status)
        return prop, app
