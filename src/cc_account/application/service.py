"""AccountApplicationService — thin composition layer over the wallet.

Deposit commits its own unit of work; balance and ledger reads run without
an explicit transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.application.schemas import (
    BalanceResponse,
    DepositResponse,
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_audit.domain.models import AuditRecord
from src.cc_audit.domain.repository import AuditRepositoryProtocol
from src.cc_audit.infrastructure.persistence import AuditRepository
from src.cc_common.enums import AuditAction, LedgerEntryType
from src.cc_common.errors import InvalidAmountError, UserNotFoundError
from src.cc_common.money import cents_to_display


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        audit: AuditRepositoryProtocol | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._audit: AuditRepositoryProtocol = audit or AuditRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        user = await self._repo.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return BalanceResponse.from_cents(user_id=user_id, balance=user.wallet_balance)

    async def deposit(
        self, db: AsyncSession, user_id: str, amount_cents: int
    ) -> DepositResponse:
        """Simulated top-up; there is no payment gateway behind it."""
        if amount_cents <= 0:
            raise InvalidAmountError(amount_cents)
        try:
            user, entry = await self._repo.credit_wallet(
                db,
                user_id,
                amount_cents,
                LedgerEntryType.DEPOSIT.value,
                "DEPOSIT",
                None,
                "Simulated deposit",
            )
            await self._audit.append(
                db,
                AuditRecord(
                    actor_id=user_id,
                    action=AuditAction.WALLET_DEPOSIT.value,
                    amount=amount_cents,
                    details=f"Deposit of {cents_to_display(amount_cents)}",
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return DepositResponse.from_result(
            balance=user.wallet_balance, amount=amount_cents, entry_id=entry.id
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                amount_cents=e.amount,
                amount_display=cents_to_display(e.amount),
                balance_after_cents=e.balance_after,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
