"""Domain models for cc_investment — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.cc_common.enums import OPEN_APPLICATION_STATUSES, ApplicationStatus, InvestmentKind


@dataclass
class Application:
    id: str
    user_id: str
    property_id: str
    target_tranche_index: int        # 1-based ordinal by due_date
    requested_amount: int            # cents, debited from the wallet at intake
    requested_shares: int            # reserved from available_shares at intake
    status: str = ApplicationStatus.PENDING.value
    is_priority: bool = False
    approved_amount: int | None = None
    approved_shares: int | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_APPLICATION_STATUSES


@dataclass
class Investment:
    id: str
    user_id: str
    property_id: str
    shares: int
    invested_amount: int             # cents
    kind: str = InvestmentKind.SUBSCRIPTION.value
    created_at: datetime | None = None
