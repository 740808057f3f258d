"""PropertyApplicationService — read-only view over the ledger primitives."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.errors import PropertyNotFoundError
from src.cc_property.application.schemas import PropertyDetail
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.infrastructure.persistence import PropertyRepository


class PropertyApplicationService:
    def __init__(self, repo: PropertyRepositoryProtocol | None = None) -> None:
        self._repo: PropertyRepositoryProtocol = repo or PropertyRepository()

    async def get_property(self, db: AsyncSession, property_id: str) -> PropertyDetail:
        prop = await self._repo.get_property(db, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        tranches = await self._repo.list_tranches(db, property_id)
        return PropertyDetail.from_domain(prop, tranches)
