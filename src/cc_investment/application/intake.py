"""Application Intake — commit capital toward a property's active tranche.

Founding tranche: the wallet debit and the shares are reserved and a pending
Application is recorded; the milestone sweep decides it later. Any later
tranche: the debit converts straight into a confirmed Investment and counts
toward the tranche's paid amount.

The whole commit runs under the property lock and a FOR UPDATE of the
property row, validates before it writes, and commits once.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import (
    ApplicationStatus,
    AuditAction,
    InvestmentKind,
    LedgerEntryType,
)
from src.cc_common.errors import (
    ActingForOtherUserError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidShareQuantityError,
    NoActiveTrancheError,
    PropertyClosedError,
    PropertyNotFoundError,
    UserNotFoundError,
)
from src.cc_common.locks import PropertyLocks, get_property_locks
from src.cc_common.money import cents_to_display, share_cost
from src.cc_investment.application.schemas import CommitResult
from src.cc_investment.domain.models import Application, Investment
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.models import Property
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.domain.tranches import (
    advance_statuses,
    find_active_tranche,
    founding_tranche,
    ordinal_of,
)
from src.cc_property.infrastructure.persistence import PropertyRepository

logger = logging.getLogger(__name__)


class IntakeService:
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

    async def commit(
        self,
        db: AsyncSession,
        actor: User,
        user_id: str,
        property_id: str,
        requested_shares: int,
        now: datetime | None = None,
    ) -> CommitResult:
        if actor.id != user_id and not actor.is_admin:
            raise ActingForOtherUserError()
        if requested_shares <= 0:
            raise InvalidShareQuantityError(requested_shares)
        now = now or utc_now()

        async with self._locks.hold(property_id):
            try:
                result = await self._commit_locked(
                    db, actor.id, user_id, property_id, requested_shares, now
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Intake: %s %s user=%s property=%s shares=%d amount=%d tranche=%d",
            result.kind,
            result.id,
            user_id,
            property_id,
            result.shares,
            result.amount_cents,
            result.tranche_ordinal,
        )
        return result

    async def _commit_locked(
        self,
        db: AsyncSession,
        actor_id: str,
        user_id: str,
        property_id: str,
        requested_shares: int,
        now: datetime,
    ) -> CommitResult:
        prop = await self._properties.get_property(db, property_id, for_update=True)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        if prop.is_terminal:
            raise PropertyClosedError(property_id, prop.status)

        user = await self._accounts.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        tranches = await self._properties.list_tranches(db, property_id)
        changed = advance_statuses(tranches, now)
        active = find_active_tranche(tranches, now)
        if active is None:
            raise NoActiveTrancheError(property_id)

        expected = share_cost(requested_shares, prop.price, prop.total_shares)
        if user.wallet_balance < expected:
            raise InsufficientFundsError(expected, user.wallet_balance)
        if prop.available_shares < requested_shares:
            raise InsufficientSharesError(requested_shares, prop.available_shares)

        founding = founding_tranche(tranches)
        ordinal = ordinal_of(tranches, active.id)
        prop.reserve_shares(requested_shares)

        if founding is not None and active.id == founding.id:
            result = await self._record_application(
                db, actor_id, prop, active.total, user_id, requested_shares, expected, ordinal
            )
        else:
            result = await self._record_investment(
                db, actor_id, prop, user_id, requested_shares, expected, ordinal
            )
            active.record_payment(expected)
            if active not in changed:
                changed.append(active)

        for tranche in changed:
            await self._properties.update_tranche(db, tranche)
        await self._properties.update_property(db, prop)
        result.available_shares = prop.available_shares
        return result

    async def _record_application(
        self,
        db: AsyncSession,
        actor_id: str,
        prop: Property,
        tranche_total: int,
        user_id: str,
        shares: int,
        amount: int,
        ordinal: int,
    ) -> CommitResult:
        application_id = str(uuid.uuid4())
        await self._accounts.debit_wallet(
            db,
            user_id,
            amount,
            LedgerEntryType.APPLICATION_RESERVE.value,
            "APPLICATION",
            application_id,
            f"Reserve for {shares} shares of property {prop.id}",
        )

        # Covering the founding tranche alone claims priority, once per property
        is_priority = amount >= tranche_total and prop.priority_investor_id is None
        if is_priority:
            prop.priority_investor_id = user_id

        await self._investments.insert_application(
            db,
            Application(
                id=application_id,
                user_id=user_id,
                property_id=prop.id,
                target_tranche_index=ordinal,
                requested_amount=amount,
                requested_shares=shares,
                status=ApplicationStatus.PENDING.value,
                is_priority=is_priority,
            ),
        )
        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=AuditAction.APPLICATION_SUBMITTED.value,
                property_id=prop.id,
                reference_id=application_id,
                amount=amount,
                shares=shares,
                details=f"User {user_id} applied for {shares} shares ({cents_to_display(amount)})",
            ),
        )
        if is_priority:
            await self._audit.append(
                db,
                AuditRecord(
                    actor_id=actor_id,
                    action=AuditAction.PRIORITY_ASSIGNED.value,
                    property_id=prop.id,
                    reference_id=user_id,
                    amount=amount,
                    details=f"Founding tranche of {cents_to_display(tranche_total)} covered alone",
                ),
            )
        return CommitResult(
            kind="application",
            id=application_id,
            user_id=user_id,
            property_id=prop.id,
            tranche_ordinal=ordinal,
            shares=shares,
            amount_cents=amount,
            amount_display=cents_to_display(amount),
            is_priority=is_priority,
            available_shares=0,
        )

    async def _record_investment(
        self,
        db: AsyncSession,
        actor_id: str,
        prop: Property,
        user_id: str,
        shares: int,
        amount: int,
        ordinal: int,
    ) -> CommitResult:
        investment_id = str(uuid.uuid4())
        await self._accounts.debit_wallet(
            db,
            user_id,
            amount,
            LedgerEntryType.INVESTMENT_PAYMENT.value,
            "INVESTMENT",
            investment_id,
            f"Payment for {shares} shares of property {prop.id}",
        )
        await self._investments.insert_investment(
            db,
            Investment(
                id=investment_id,
                user_id=user_id,
                property_id=prop.id,
                shares=shares,
                invested_amount=amount,
                kind=InvestmentKind.SUBSCRIPTION.value,
            ),
        )
        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=AuditAction.INVESTMENT_CONFIRMED.value,
                property_id=prop.id,
                reference_id=investment_id,
                amount=amount,
                shares=shares,
                details=f"Tranche {ordinal} direct conversion for user {user_id}",
            ),
        )
        return CommitResult(
            kind="investment",
            id=investment_id,
            user_id=user_id,
            property_id=prop.id,
            tranche_ordinal=ordinal,
            shares=shares,
            amount_cents=amount,
            amount_display=cents_to_display(amount),
            available_shares=0,
        )
