"""Repository Protocol for applications and confirmed investments."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_investment.domain.models import Application, Investment


class InvestmentRepositoryProtocol(Protocol):
    # --- applications ---
    async def insert_application(self, db: AsyncSession, app: Application) -> Application: ...

    async def get_application(
        self, db: AsyncSession, application_id: str
    ) -> Application | None: ...

    async def update_application(self, db: AsyncSession, app: Application) -> None: ...

    async def list_open_applications(
        self, db: AsyncSession, property_id: str, target_tranche_index: int | None = None
    ) -> list[Application]: ...

    async def list_open_applications_all(self, db: AsyncSession) -> list[Application]: ...

    async def list_user_applications(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Application]: ...

    async def has_open_priority_application(
        self, db: AsyncSession, property_id: str, user_id: str
    ) -> bool: ...

    # --- investments ---
    async def insert_investment(self, db: AsyncSession, inv: Investment) -> Investment: ...

    async def get_investment(self, db: AsyncSession, investment_id: str) -> Investment | None: ...

    async def update_investment_shares(self, db: AsyncSession, inv: Investment) -> None: ...

    async def delete_investment(self, db: AsyncSession, investment_id: str) -> None: ...

    async def list_property_investments(
        self, db: AsyncSession, property_id: str
    ) -> list[Investment]: ...

    async def list_user_investments(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Investment]: ...

    async def has_investment(self, db: AsyncSession, property_id: str, user_id: str) -> bool: ...
