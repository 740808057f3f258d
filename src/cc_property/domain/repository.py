from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_property.domain.models import Property, Tranche


class PropertyRepositoryProtocol(Protocol):
    async def get_property(
        self, db: AsyncSession, property_id: str, for_update: bool = False
    ) -> Property | None: ...

    async def list_open_property_ids(self, db: AsyncSession) -> list[str]: ...

    async def list_all_property_ids(self, db: AsyncSession) -> list[str]: ...

    async def update_property(self, db: AsyncSession, prop: Property) -> None: ...

    async def list_tranches(self, db: AsyncSession, property_id: str) -> list[Tranche]: ...

    async def update_tranche(self, db: AsyncSession, tranche: Tranche) -> None: ...
