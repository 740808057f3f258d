"""Application settlement primitives shared by sweep, finalize and manual review.

Every helper works inside the caller's transaction and mutates the loaded
Property in memory; the caller flushes the property and commits once.
Wallet movements always go through the account repository so each one
appends a ledger entry.
"""

import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_audit.domain.models import AuditRecord, Notification
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_common.enums import (
    ApplicationStatus,
    AuditAction,
    InvestmentKind,
    LedgerEntryType,
)
from src.cc_common.money import cents_to_display, share_cost
from src.cc_investment.domain.models import Application, Investment
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_property.domain.models import Property


class SettlementLedger:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        investments: InvestmentRepositoryProtocol,
        audit: AuditRepositoryProtocol,
    ) -> None:
        self._accounts = accounts
        self._investments = investments
        self._audit = audit

    async def accept(
        self,
        db: AsyncSession,
        prop: Property,
        app: Application,
        shares: int,
        now: datetime,
        actor_id: str,
    ) -> Investment:
        """Convert `shares` of an open application's reservation into an investment.

        Shares and money were reserved at intake, so only the unapproved
        remainder moves: its cost goes back to the wallet and its shares back
        to the pool.
        """
        if shares == app.requested_shares:
            amount = app.requested_amount
        else:
            amount = share_cost(shares, prop.price, prop.total_shares)

        investment = await self._investments.insert_investment(
            db,
            Investment(
                id=str(uuid.uuid4()),
                user_id=app.user_id,
                property_id=prop.id,
                shares=shares,
                invested_amount=amount,
                kind=InvestmentKind.SUBSCRIPTION.value,
            ),
        )

        refund = app.requested_amount - amount
        if refund > 0:
            await self._accounts.credit_wallet(
                db,
                app.user_id,
                refund,
                LedgerEntryType.APPLICATION_REFUND.value,
                "APPLICATION",
                app.id,
                "Refund of unapproved application amount",
            )
        unapproved_shares = app.requested_shares - shares
        if unapproved_shares > 0:
            prop.release_shares(unapproved_shares)

        full = shares == app.requested_shares
        app.status = (ApplicationStatus.ACCEPTED if full else ApplicationStatus.PARTIAL).value
        app.approved_shares = shares
        app.approved_amount = amount
        app.settled_at = now
        await self._investments.update_application(db, app)

        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=(
                    AuditAction.APPLICATION_ACCEPTED if full else AuditAction.APPLICATION_PARTIAL
                ).value,
                property_id=prop.id,
                reference_id=app.id,
                amount=amount,
                shares=shares,
                details=f"Investment {investment.id} for user {app.user_id}",
            ),
        )
        await self._audit.enqueue_notification(
            db,
            Notification(
                user_id=app.user_id,
                property_id=prop.id,
                title="Your investment application was approved",
                content=f"You were allocated {shares} shares for property {prop.title}.",
            ),
        )
        return investment

    async def refund(
        self,
        db: AsyncSession,
        prop: Property,
        app: Application,
        now: datetime,
        actor_id: str,
        reason: str,
    ) -> None:
        """Reject an open application: wallet refund and reserved shares back to the pool."""
        if app.requested_amount > 0:
            await self._accounts.credit_wallet(
                db,
                app.user_id,
                app.requested_amount,
                LedgerEntryType.APPLICATION_REFUND.value,
                "APPLICATION",
                app.id,
                f"Application refund: {reason}",
            )
        prop.release_shares(app.requested_shares)

        app.status = ApplicationStatus.REJECTED.value
        app.approved_shares = 0
        app.approved_amount = 0
        app.settled_at = now
        await self._investments.update_application(db, app)

        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=AuditAction.APPLICATION_REJECTED.value,
                property_id=prop.id,
                reference_id=app.id,
                amount=app.requested_amount,
                shares=app.requested_shares,
                details=f"Refunded {cents_to_display(app.requested_amount)}: {reason}",
            ),
        )
        await self._audit.enqueue_notification(
            db,
            Notification(
                user_id=app.user_id,
                property_id=prop.id,
                title="Application rejected",
                content=f"Your application for property {prop.title} was rejected: {reason}.",
            ),
        )

    async def clear_priority(
        self, db: AsyncSession, prop: Property, actor_id: str, reason: str
    ) -> bool:
        if prop.priority_investor_id is None:
            return False
        previous = prop.priority_investor_id
        prop.priority_investor_id = None
        await self._audit.append(
            db,
            AuditRecord(
                actor_id=actor_id,
                action=AuditAction.PRIORITY_CLEARED.value,
                property_id=prop.id,
                reference_id=previous,
                details=reason,
            ),
        )
        return True

    async def release_orphaned_priority(
        self, db: AsyncSession, prop: Property, actor_id: str
    ) -> bool:
        """Clear priority when its holder has neither an investment nor an open priority claim."""
        holder = prop.priority_investor_id
        if holder is None:
            return False
        if await self._investments.has_investment(db, prop.id, holder):
            return False
        if await self._investments.has_open_priority_application(db, prop.id, holder):
            return False
        return await self.clear_priority(
            db, prop, actor_id, f"Priority holder {holder} no longer has a stake"
        )
