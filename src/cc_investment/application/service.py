"""InvestmentApplicationService — caller's own rows and investment cancellation.

Cancellation is allowed to the owner or an admin while the property is not
closed and its application deadline has not passed. The invested amount is
refunded, the shares go back to the pool, and tranche.paid is left as is
(money already applied to a capital call is not clawed back from it).
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.datetime_utils import ensure_utc, utc_now
from src.cc_common.enums import AuditAction, InvestmentKind, LedgerEntryType
from src.cc_common.errors import (
    ActingForOtherUserError,
    InvestmentNotCancellableError,
    InvestmentNotFoundError,
    PropertyNotFoundError,
)
from src.cc_common.locks import PropertyLocks, get_property_locks
from src.cc_investment.application.schemas import (
    ApplicationItem,
    ApplicationListResponse,
    CancelInvestmentResponse,
    InvestmentItem,
    InvestmentListResponse,
)
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.infrastructure.persistence import PropertyRepository
from src.cc_settlement.domain.ledger import SettlementLedger

logger = logging.getLogger(__name__)


class InvestmentApplicationService:
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

    async def list_applications(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> ApplicationListResponse:
        apps = await self._investments.list_user_applications(db, user_id, limit)
        return ApplicationListResponse(items=[ApplicationItem.from_domain(a) for a in apps])

    async def list_investments(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> InvestmentListResponse:
        investments = await self._investments.list_user_investments(db, user_id, limit)
        return InvestmentListResponse(
            items=[InvestmentItem.from_domain(i) for i in investments]
        )

    async def cancel_investment(
        self,
        db: AsyncSession,
        actor: User,
        investment_id: str,
        now: datetime | None = None,
    ) -> CancelInvestmentResponse:
        now = now or utc_now()
        investment = await self._investments.get_investment(db, investment_id)
        if investment is None:
            raise InvestmentNotFoundError(investment_id)
        if investment.user_id != actor.id and not actor.is_admin:
            raise ActingForOtherUserError()

        async with self._locks.hold(investment.property_id):
            try:
                prop = await self._properties.get_property(
                    db, investment.property_id, for_update=True
                )
                if prop is None:
                    raise PropertyNotFoundError(investment.property_id)
                # Re-read under the lock: a concurrent cancel may have won
                investment = await self._investments.get_investment(db, investment_id)
                if investment is None:
                    raise InvestmentNotFoundError(investment_id)
                if prop.is_terminal:
                    raise InvestmentNotCancellableError(f"property is {prop.status}")
                if now > ensure_utc(prop.application_deadline):
                    raise InvestmentNotCancellableError("application deadline has passed")
                if investment.kind == InvestmentKind.BUYOUT.value:
                    raise InvestmentNotCancellableError("buyout allocations are final")

                if investment.invested_amount > 0:
                    await self._accounts.credit_wallet(
                        db,
                        investment.user_id,
                        investment.invested_amount,
                        LedgerEntryType.INVESTMENT_REFUND.value,
                        "INVESTMENT",
                        investment.id,
                        "Investment cancelled",
                    )
                prop.release_shares(investment.shares)
                await self._investments.delete_investment(db, investment.id)
                await self._audit.append(
                    db,
                    AuditRecord(
                        actor_id=actor.id,
                        action=AuditAction.INVESTMENT_CANCELLED.value,
                        property_id=prop.id,
                        reference_id=investment.id,
                        amount=investment.invested_amount,
                        shares=investment.shares,
                        details=f"Cancelled investment of user {investment.user_id}",
                    ),
                )
                await self._ledger.release_orphaned_priority(db, prop, actor.id)
                await self._properties.update_property(db, prop)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Investment %s cancelled by %s: refunded=%d shares=%d",
            investment.id,
            actor.id,
            investment.invested_amount,
            investment.shares,
        )
        return CancelInvestmentResponse(
            investment_id=investment.id,
            refunded_cents=investment.invested_amount,
            released_shares=investment.shares,
            available_shares=prop.available_shares,
        )
