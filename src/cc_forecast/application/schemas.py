"""Pydantic response schemas for the cash-flow forecast."""

from pydantic import BaseModel

from src.cc_common.money import cents_to_display
from src.cc_forecast.domain.models import Forecast, LineItem, Period


class LineItemResponse(BaseModel):
    date: str
    property_id: str
    kind: str
    label: str
    amount_cents: int

    @classmethod
    def from_domain(cls, item: LineItem) -> "LineItemResponse":
        return cls(
            date=item.date.isoformat(),
            property_id=item.property_id,
            kind=item.kind,
            label=item.label,
            amount_cents=item.amount,
        )


class PeriodResponse(BaseModel):
    period: str                      # YYYY-MM
    required_outflow_cents: int
    available_on_date_cents: int
    shortfall_cents: int
    shortfall_display: str
    items: list[LineItemResponse]

    @classmethod
    def from_domain(cls, period: Period) -> "PeriodResponse":
        return cls(
            period=period.start.strftime("%Y-%m"),
            required_outflow_cents=period.required_outflow,
            available_on_date_cents=period.available_on_date,
            shortfall_cents=period.shortfall,
            shortfall_display=cents_to_display(period.shortfall),
            items=[LineItemResponse.from_domain(i) for i in period.items],
        )


class ForecastResponse(BaseModel):
    platform_balance_cents: int
    total_shortfall_cents: int
    periods: list[PeriodResponse]

    @classmethod
    def from_domain(cls, forecast: Forecast) -> "ForecastResponse":
        return cls(
            platform_balance_cents=forecast.platform_balance,
            total_shortfall_cents=forecast.total_shortfall,
            periods=[PeriodResponse.from_domain(p) for p in forecast.periods],
        )
