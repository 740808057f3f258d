"""Domain models for cc_property — the passive ledger primitives.

Property and Tranche are loaded, mutated in memory by the engine services,
and flushed back by the repository within one unit of work.
"""

from dataclasses import dataclass
from datetime import datetime

from src.cc_common.enums import TERMINAL_PROPERTY_STATUSES, TrancheStatus
from src.cc_common.errors import InsufficientSharesError, InternalError


@dataclass
class Property:
    id: str
    title: str
    price: int                       # cents
    total_shares: int
    available_shares: int
    status: str                      # PropertyStatus value
    application_deadline: datetime
    priority_investor_id: str | None = None
    monthly_rental_income: int = 0   # cents
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PROPERTY_STATUSES

    def reserve_shares(self, shares: int) -> None:
        if shares > self.available_shares:
            raise InsufficientSharesError(shares, self.available_shares)
        self.available_shares -= shares

    def release_shares(self, shares: int) -> None:
        if self.available_shares + shares > self.total_shares:
            raise InternalError(
                f"Releasing {shares} shares would exceed total_shares on property {self.id}"
            )
        self.available_shares += shares


@dataclass
class Tranche:
    id: str
    property_id: str
    milestone: str
    event_date: datetime             # window opens
    due_date: datetime               # window closes, settlement trigger
    total: int                       # cents required
    paid: int = 0                    # cents settled so far
    status: str = TrancheStatus.UPCOMING.value
    created_at: datetime | None = None

    @property
    def outstanding(self) -> int:
        return self.total - self.paid

    def record_payment(self, amount: int) -> int:
        """Add to paid without exceeding total. Returns the amount actually applied."""
        applied = min(amount, self.total - self.paid)
        self.paid += applied
        return applied
