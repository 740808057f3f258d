"""InvariantChecker — run the ledger invariants over every property."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.infrastructure.persistence import PropertyRepository
from src.cc_settlement.application.schemas import InvariantReport
from src.cc_settlement.domain.invariants import check_property

logger = logging.getLogger(__name__)


class InvariantChecker:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        properties: PropertyRepositoryProtocol | None = None,
        investments: InvestmentRepositoryProtocol | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._properties: PropertyRepositoryProtocol = properties or PropertyRepository()
        self._investments: InvestmentRepositoryProtocol = investments or InvestmentRepository()

    async def check_all(self, db: AsyncSession) -> InvariantReport:
        violations: list[str] = []
        property_ids = await self._properties.list_all_property_ids(db)
        for property_id in property_ids:
            prop = await self._properties.get_property(db, property_id)
            if prop is None:
                continue
            violations += check_property(
                prop,
                await self._properties.list_tranches(db, property_id),
                await self._investments.list_property_investments(db, property_id),
                await self._investments.list_open_applications(db, property_id),
            )

        negative = await self._accounts.count_negative_wallets(db)
        if negative:
            violations.append(f"INV-W violated: {negative} wallets have a negative balance")

        for msg in violations:
            logger.error(msg)
        return InvariantReport(
            ok=not violations,
            properties_checked=len(property_ids),
            violations=violations,
        )
