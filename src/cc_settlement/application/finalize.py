"""Deadline Finalize — resolve ownership once the application deadline passed.

Applications still open at finalize are refunded first, so no reservation
outlives the property's round. Then:

  * priority investor holding a confirmed investment: the remaining pool is
    recorded as a zero-amount buyout investment for them;
  * otherwise the payment plan must be paid to at least FINALIZE_MIN_PAID_BPS
    and the remaining pool is handed out to investments by invested amount,
    largest first, each getting at most its own share count again. Whatever
    is left stays in available_shares.

Both branches end with the property sold.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord, Notification
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.datetime_utils import ensure_utc, utc_now
from src.cc_common.enums import AuditAction, InvestmentKind, PropertyStatus
from src.cc_common.errors import (
    DeadlineNotReachedError,
    PaymentPlanUnderfundedError,
    PropertyClosedError,
    PropertyNotFoundError,
    UserNotFoundError,
)
from src.cc_common.locks import PropertyLocks, get_property_locks
from src.cc_common.money import paid_ratio_bps
from src.cc_investment.domain.models import Investment
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.models import Property
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.infrastructure.persistence import PropertyRepository
from src.cc_settlement.application.schemas import FinalizeResult
from src.cc_settlement.domain.ledger import SettlementLedger

logger = logging.getLogger(__name__)

BRANCH_PRIORITY_BUYOUT = "priority_buyout"
BRANCH_GREEDY_ALLOCATION = "greedy_allocation"


class FinalizeService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        properties: PropertyRepositoryProtocol | None = None,
        investments: InvestmentRepositoryProtocol | None = None,
        audit: AuditRepositoryProtocol | None = None,
        locks: PropertyLocks | None = None,
        min_paid_bps: int | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._properties: PropertyRepositoryProtocol = properties or PropertyRepository()
        self._investments: InvestmentRepositoryProtocol = investments or InvestmentRepository()
        self._audit: AuditRepositoryProtocol = audit or AuditRepository()
        self._locks = locks or get_property_locks()
        self._ledger = SettlementLedger(self._accounts, self._investments, self._audit)
        self._min_paid_bps = (
            settings.FINALIZE_MIN_PAID_BPS if min_paid_bps is None else min_paid_bps
        )

    async def finalize(
        self,
        db: AsyncSession,
        property_id: str,
        now: datetime | None = None,
        actor_id: str | None = None,
    ) -> FinalizeResult:
        now = now or utc_now()
        actor_id = actor_id or settings.SYSTEM_ACTOR_ID

        async with self._locks.hold(property_id):
            try:
                result = await self._finalize_locked(db, property_id, now, actor_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Finalize: property %s sold via %s (allocated=%d stranded=%d refunded_apps=%d)",
            property_id,
            result.branch,
            result.allocated_shares,
            result.stranded_shares,
            result.refunded_applications,
        )
        return result

    async def _finalize_locked(
        self, db: AsyncSession, property_id: str, now: datetime, actor_id: str
    ) -> FinalizeResult:
        prop = await self._properties.get_property(db, property_id, for_update=True)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        if prop.is_terminal:
            raise PropertyClosedError(property_id, prop.status)
        if now <= ensure_utc(prop.application_deadline):
            raise DeadlineNotReachedError(property_id)

        refunded = await self._refund_open_applications(db, prop, now, actor_id)
        await self._ledger.release_orphaned_priority(db, prop, actor_id)

        holder = prop.priority_investor_id
        if holder is not None and await self._investments.has_investment(db, prop.id, holder):
            branch = BRANCH_PRIORITY_BUYOUT
            allocated = await self._priority_buyout(db, prop, holder)
        else:
            branch = BRANCH_GREEDY_ALLOCATION
            await self._check_payment_plan(db, prop)
            allocated = await self._greedy_allocation(db, prop)

        stranded = prop.available_shares
        prop.status = PropertyStatus.SOLD.value
        await self._properties.update_property(db, prop)

        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=AuditAction.PROPERTY_FINALIZED.value,
                property_id=prop.id,
                shares=allocated,
                details=f"branch={branch} stranded_shares={stranded}",
            ),
        )
        if stranded:
            logger.warning(
                "Finalize: property %s left %d shares unallocated", prop.id, stranded
            )
        return FinalizeResult(
            property_id=prop.id,
            status=prop.status,
            branch=branch,
            allocated_shares=allocated,
            stranded_shares=stranded,
            refunded_applications=refunded,
        )

    async def _refund_open_applications(
        self, db: AsyncSession, prop: Property, now: datetime, actor_id: str
    ) -> int:
        refunded = 0
        for app in await self._investments.list_open_applications(db, prop.id):
            if await self._accounts.get_user(db, app.user_id) is None:
                # No reservation may outlive the round
                logger.error(
                    "Finalize: application %s on property %s references missing user %s",
                    app.id,
                    prop.id,
                    app.user_id,
                )
                raise UserNotFoundError(app.user_id)
            await self._ledger.refund(
                db, prop, app, now, actor_id, "application deadline passed"
            )
            refunded += 1
        return refunded

    async def _priority_buyout(self, db: AsyncSession, prop: Property, holder: str) -> int:
        remaining = prop.available_shares
        if remaining == 0:
            return 0
        investment = await self._investments.insert_investment(
            db,
            Investment(
                id=str(uuid.uuid4()),
                user_id=holder,
                property_id=prop.id,
                shares=remaining,
                invested_amount=0,
                kind=InvestmentKind.BUYOUT.value,
            ),
        )
        prop.available_shares = 0
        await self._audit.enqueue_notification(
            db,
            Notification(
                user_id=holder,
                property_id=prop.id,
                title="Property buyout completed",
                content=(
                    f"As priority investor you received the remaining {remaining} shares "
                    f"of property {prop.title} (allocation {investment.id})."
                ),
            ),
        )
        return remaining

    async def _check_payment_plan(self, db: AsyncSession, prop: Property) -> None:
        tranches = await self._properties.list_tranches(db, prop.id)
        total = sum(t.total for t in tranches)
        paid = sum(t.paid for t in tranches)
        # A property without a payment plan has nothing to be underfunded against
        if total > 0 and paid * 10_000 < self._min_paid_bps * total:
            raise PaymentPlanUnderfundedError(paid_ratio_bps(paid, total), self._min_paid_bps)

    async def _greedy_allocation(self, db: AsyncSession, prop: Property) -> int:
        allocated_total = 0
        for investment in await self._investments.list_property_investments(db, prop.id):
            if prop.available_shares == 0:
                break
            extra = min(investment.shares, prop.available_shares)
            if extra <= 0:
                continue
            investment.shares += extra
            prop.available_shares -= extra
            allocated_total += extra
            await self._investments.update_investment_shares(db, investment)
            await self._audit.enqueue_notification(
                db,
                Notification(
                    user_id=investment.user_id,
                    property_id=prop.id,
                    title="Additional shares allocated",
                    content=(
                        f"You were allocated {extra} additional shares of property "
                        f"{prop.title} at finalization."
                    ),
                ),
            )
        return allocated_total
