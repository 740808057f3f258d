"""Pydantic schemas for cc_investment API."""

from typing import Literal

from pydantic import BaseModel, Field

from src.cc_common.money import cents_to_display
from src.cc_investment.domain.models import Application, Investment

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CommitApplicationRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    property_id: str = Field(..., min_length=1, max_length=64)
    # Non-positive values are rejected by the service with InvalidShareQuantity
    requested_shares: int


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CommitResult(BaseModel):
    kind: Literal["application", "investment"]
    id: str
    user_id: str
    property_id: str
    tranche_ordinal: int
    shares: int
    amount_cents: int
    amount_display: str
    is_priority: bool = False
    available_shares: int


class ApplicationItem(BaseModel):
    id: str
    property_id: str
    target_tranche_index: int
    requested_shares: int
    requested_amount_cents: int
    status: str
    is_priority: bool
    approved_shares: int | None
    approved_amount_cents: int | None
    created_at: str

    @classmethod
    def from_domain(cls, app: Application) -> "ApplicationItem":
        return cls(
            id=app.id,
            property_id=app.property_id,
            target_tranche_index=app.target_tranche_index,
            requested_shares=app.requested_shares,
            requested_amount_cents=app.requested_amount,
            status=app.status,
            is_priority=app.is_priority,
            approved_shares=app.approved_shares,
            approved_amount_cents=app.approved_amount,
            created_at=app.created_at.isoformat() if app.created_at else "",
        )


class InvestmentItem(BaseModel):
    id: str
    property_id: str
    shares: int
    invested_amount_cents: int
    invested_amount_display: str
    kind: str
    created_at: str

    @classmethod
    def from_domain(cls, inv: Investment) -> "InvestmentItem":
        return cls(
            id=inv.id,
            property_id=inv.property_id,
            shares=inv.shares,
            invested_amount_cents=inv.invested_amount,
            invested_amount_display=cents_to_display(inv.invested_amount),
            kind=inv.kind,
            created_at=inv.created_at.isoformat() if inv.created_at else "",
        )


class ApplicationListResponse(BaseModel):
    items: list[ApplicationItem]


class InvestmentListResponse(BaseModel):
    items: list[InvestmentItem]


class CancelInvestmentResponse(BaseModel):
    investment_id: str
    refunded_cents: int
    released_shares: int
    available_shares: int
