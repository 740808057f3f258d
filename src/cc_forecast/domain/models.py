"""Forecast value objects — pure dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime

KIND_OUTFLOW_TRANCHE = "outflow:tranche"
KIND_INFLOW_USER = "inflow:user"
KIND_INFLOW_RENT = "inflow:rent"


@dataclass
class LineItem:
    date: datetime
    property_id: str
    kind: str
    label: str
    amount: int                      # cents, negative for outflows


@dataclass
class Period:
    start: datetime
    required_outflow: int
    available_on_date: int
    shortfall: int
    items: list[LineItem] = field(default_factory=list)


@dataclass
class Forecast:
    platform_balance: int
    periods: list[Period] = field(default_factory=list)

    @property
    def total_shortfall(self) -> int:
        return sum(p.shortfall for p in self.periods)
