"""Pydantic response schemas for cc_property API."""

from pydantic import BaseModel

from src.cc_common.money import cents_to_display
from src.cc_property.domain.models import Property, Tranche
from src.cc_property.domain.tranches import order_by_due_date


class TrancheItem(BaseModel):
    id: str
    ordinal: int
    milestone: str
    event_date: str
    due_date: str
    total_cents: int
    paid_cents: int
    outstanding_cents: int
    outstanding_display: str
    status: str

    @classmethod
    def from_domain(cls, tranche: Tranche, ordinal: int) -> "TrancheItem":
        return cls(
            id=tranche.id,
            ordinal=ordinal,
            milestone=tranche.milestone,
            event_date=tranche.event_date.isoformat(),
            due_date=tranche.due_date.isoformat(),
            total_cents=tranche.total,
            paid_cents=tranche.paid,
            outstanding_cents=tranche.outstanding,
            outstanding_display=cents_to_display(tranche.outstanding),
            status=tranche.status,
        )


class PropertyDetail(BaseModel):
    id: str
    title: str
    price_cents: int
    price_display: str
    total_shares: int
    available_shares: int
    status: str
    application_deadline: str
    priority_investor_id: str | None
    monthly_rental_income_cents: int
    tranches: list[TrancheItem]

    @classmethod
    def from_domain(cls, prop: Property, tranches: list[Tranche]) -> "PropertyDetail":
        return cls(
            id=prop.id,
            title=prop.title,
            price_cents=prop.price,
            price_display=cents_to_display(prop.price),
            total_shares=prop.total_shares,
            available_shares=prop.available_shares,
            status=prop.status,
            application_deadline=prop.application_deadline.isoformat(),
            priority_investor_id=prop.priority_investor_id,
            monthly_rental_income_cents=prop.monthly_rental_income,
            tranches=[
                TrancheItem.from_domain(t, i)
                for i, t in enumerate(order_by_due_date(tranches), start=1)
            ],
        )
