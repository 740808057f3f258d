"""Milestone Sweep — settle due tranches against pooled applications.

For each property not sold/declined, under its lock and in one unit of work:
open tranches whose window started, then take each due tranche in turn
(earliest by due date, not settled, due date passed) and sum the open
applications targeting its ordinal. A tranche already funded by direct
conversions, or one whose sum covers it, converts every application into an
investment; otherwise every application is refunded and, for the founding
tranche, the priority investor is cleared. Either way the tranche ends
settled, so a second pass finds nothing to do.

A failure on one property rolls back that property only; the sweep moves on
and the next tick retries it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import AuditAction, TrancheStatus
from src.cc_common.locks import PropertyLocks, get_property_locks
from src.cc_common.money import cents_to_display
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.models import Property, Tranche
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.domain.tranches import (
    advance_statuses,
    find_due_tranche,
    founding_tranche,
    ordinal_of,
)
from src.cc_property.infrastructure.persistence import PropertyRepository
from src.cc_settlement.application.schemas import SweepReport
from src.cc_settlement.domain.ledger import SettlementLedger

logger = logging.getLogger(__name__)


@dataclass
class _PropertyOutcome:
    tranches_settled: int = 0
    accepted: int = 0
    rejected: int = 0
    skipped: int = 0


class SweepService:
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

    async def run(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        actor_id: str | None = None,
    ) -> SweepReport:
        now = now or utc_now()
        actor_id = actor_id or settings.SYSTEM_ACTOR_ID
        report = SweepReport()

        property_ids = await self._properties.list_open_property_ids(db)
        for property_id in property_ids:
            report.properties_scanned += 1
            async with self._locks.hold(property_id):
                try:
                    outcome = await self._settle_property(db, property_id, now, actor_id)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    logger.exception("Sweep failed for property %s; will retry", property_id)
                    report.failed_property_ids.append(property_id)
                    continue

            report.tranches_settled += outcome.tranches_settled
            report.applications_accepted += outcome.accepted
            report.applications_rejected += outcome.rejected
            report.applications_skipped += outcome.skipped

        logger.info(
            "Sweep done: scanned=%d settled=%d accepted=%d rejected=%d skipped=%d failed=%d",
            report.properties_scanned,
            report.tranches_settled,
            report.applications_accepted,
            report.applications_rejected,
            report.applications_skipped,
            len(report.failed_property_ids),
        )
        return report

    async def _settle_property(
        self, db: AsyncSession, property_id: str, now: datetime, actor_id: str
    ) -> _PropertyOutcome:
        outcome = _PropertyOutcome()
        prop = await self._properties.get_property(db, property_id, for_update=True)
        if prop is None or prop.is_terminal:
            return outcome

        tranches = await self._properties.list_tranches(db, property_id)
        changed = advance_statuses(tranches, now)
        founding = founding_tranche(tranches)

        # Several tranches can fall due between ticks; settle them oldest first
        while True:
            due = find_due_tranche(tranches, now)
            if due is None:
                break
            await self._settle_tranche(
                db, prop, tranches, due, founding, now, actor_id, outcome
            )
            if due not in changed:
                changed.append(due)

        for tranche in changed:
            await self._properties.update_tranche(db, tranche)
        if outcome.tranches_settled:
            await self._properties.update_property(db, prop)
        return outcome

    async def _settle_tranche(
        self,
        db: AsyncSession,
        prop: Property,
        tranches: list[Tranche],
        due: Tranche,
        founding: Tranche | None,
        now: datetime,
        actor_id: str,
        outcome: _PropertyOutcome,
    ) -> None:
        ordinal = ordinal_of(tranches, due.id)
        candidates = await self._investments.list_open_applications(db, prop.id, ordinal)
        applications = []
        for app in candidates:
            if await self._accounts.get_user(db, app.user_id) is None:
                logger.warning(
                    "Sweep: application %s on property %s references missing user %s; skipped",
                    app.id,
                    prop.id,
                    app.user_id,
                )
                outcome.skipped += 1
                continue
            applications.append(app)

        aggregate = sum(app.requested_amount for app in applications)
        if due.paid > 0 or aggregate >= due.total:
            for app in applications:
                await self._ledger.accept(db, prop, app, app.requested_shares, now, actor_id)
            due.record_payment(aggregate)
            outcome.accepted += len(applications)
            action = AuditAction.TRANCHE_ACCEPTED
        else:
            for app in applications:
                await self._ledger.refund(db, prop, app, now, actor_id, "insufficient funding")
            if founding is not None and founding.id == due.id:
                await self._ledger.clear_priority(
                    db, prop, actor_id, "Founding tranche round failed"
                )
            outcome.rejected += len(applications)
            action = AuditAction.TRANCHE_REJECTED

        due.status = TrancheStatus.SETTLED.value
        outcome.tranches_settled += 1

        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=action.value,
                property_id=prop.id,
                reference_id=due.id,
                amount=aggregate,
                details=(
                    f"Tranche {ordinal} '{due.milestone}': {len(applications)} applications, "
                    f"{cents_to_display(aggregate)} of {cents_to_display(due.total)}"
                ),
            ),
        )
        logger.info(
            "Sweep: property %s tranche %d %s (aggregate=%d total=%d applications=%d)",
            prop.id,
            ordinal,
            "accepted" if action is AuditAction.TRANCHE_ACCEPTED else "rejected",
            aggregate,
            due.total,
            len(applications),
        )
