"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory store that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import LedgerEntry, User


class AccountRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> User | None: ...

    async def debit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[User, LedgerEntry]: ...

    async def credit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[User, LedgerEntry]: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...

    async def count_negative_wallets(self, db: AsyncSession) -> int: ...
