"""Pydantic schemas for cc_settlement (sweep, finalize, manual review, invariants)."""

from pydantic import BaseModel, Field


class SweepReport(BaseModel):
    properties_scanned: int = 0
    tranches_settled: int = 0
    applications_accepted: int = 0
    applications_rejected: int = 0
    applications_skipped: int = 0
    failed_property_ids: list[str] = Field(default_factory=list)


class FinalizeRequest(BaseModel):
    property_id: str = Field(..., min_length=1, max_length=64)


class FinalizeResult(BaseModel):
    property_id: str
    status: str
    branch: str                      # "priority_buyout" | "greedy_allocation"
    allocated_shares: int
    stranded_shares: int
    refunded_applications: int


class ApproveApplicationRequest(BaseModel):
    approved_shares: int


class ReviewResult(BaseModel):
    application_id: str
    status: str
    target_tranche_index: int
    approved_shares: int | None = None
    approved_amount_cents: int | None = None
    investment_id: str | None = None
    refunded_cents: int = 0


class InvariantReport(BaseModel):
    ok: bool
    properties_checked: int
    violations: list[str]
