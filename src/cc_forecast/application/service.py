"""ForecastService — read-only cash-flow projection for administrators."""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cc_account.domain.repository import AccountRepositoryProtocol
from src.cc_account.infrastructure.persistence import AccountRepository
from src.cc_common.datetime_utils import parse_month
from src.cc_common.errors import InvalidForecastRangeError
from src.cc_forecast.application.schemas import ForecastResponse
from src.cc_forecast.domain.forecast import build_forecast
from src.cc_investment.domain.repository import InvestmentRepositoryProtocol
from src.cc_investment.infrastructure.persistence import InvestmentRepository
from src.cc_property.domain.repository import PropertyRepositoryProtocol
from src.cc_property.infrastructure.persistence import PropertyRepository

MAX_FORECAST_MONTHS = 120


class ForecastService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        properties: PropertyRepositoryProtocol | None = None,
        investments: InvestmentRepositoryProtocol | None = None,
        platform_user_id: str | None = None,
        conversion_bps: int | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._properties: PropertyRepositoryProtocol = properties or PropertyRepository()
        self._investments: InvestmentRepositoryProtocol = investments or InvestmentRepository()
        self._platform_user_id = platform_user_id or settings.PLATFORM_USER_ID
        self._conversion_bps = (
            settings.FORECAST_USER_INFLOW_BPS if conversion_bps is None else conversion_bps
        )

    async def forecast(self, db: AsyncSession, start: str, end: str) -> ForecastResponse:
        try:
            start_month = parse_month(start)
            end_month = parse_month(end)
        except ValueError as exc:
            raise InvalidForecastRangeError(f"expected YYYY-MM ({exc})") from exc
        if end_month < start_month:
            raise InvalidForecastRangeError(f"end {end} is before start {start}")
        span = (end_month.year - start_month.year) * 12 + end_month.month - start_month.month + 1
        if span > MAX_FORECAST_MONTHS:
            raise InvalidForecastRangeError(f"at most {MAX_FORECAST_MONTHS} months, got {span}")

        platform = await self._accounts.get_user(db, self._platform_user_id)
        platform_balance = platform.wallet_balance if platform else 0

        properties = []
        tranches_by_property = {}
        platform_shares: dict[str, int] = {}
        for property_id in await self._properties.list_all_property_ids(db):
            prop = await self._properties.get_property(db, property_id)
            if prop is None:
                continue
            properties.append(prop)
            tranches_by_property[property_id] = await self._properties.list_tranches(
                db, property_id
            )
            investments = await self._investments.list_property_investments(db, property_id)
            platform_shares[property_id] = sum(
                i.shares for i in investments if i.user_id == self._platform_user_id
            )

        forecast = build_forecast(
            start_month,
            end_month,
            platform_balance,
            properties,
            tranches_by_property,
            await self._investments.list_open_applications_all(db),
            platform_shares,
            self._conversion_bps,
        )
        return ForecastResponse.from_domain(forecast)
