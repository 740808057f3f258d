"""Payment-plan helpers over a property's tranche list.

Ordinals are 1-based positions by due_date; the founding tranche is the one
with the earliest event_date (ties broken by due_date). Status moves
upcoming → open when the window opens; open → settled only through the
sweep, which also settles windows that were funded by direct conversions.
"""

from collections.abc import Sequence
from datetime import datetime

from src.cc_common.enums import TrancheStatus
from src.cc_property.domain.models import Tranche


def order_by_due_date(tranches: Sequence[Tranche]) -> list[Tranche]:
    return sorted(tranches, key=lambda t: (t.due_date, t.event_date, t.id))


def ordinal_of(tranches: Sequence[Tranche], tranche_id: str) -> int:
    for index, tranche in enumerate(order_by_due_date(tranches), start=1):
        if tranche.id == tranche_id:
            return index
    raise ValueError(f"Tranche {tranche_id} not in payment plan")


def tranche_at(tranches: Sequence[Tranche], ordinal: int) -> Tranche | None:
    ordered = order_by_due_date(tranches)
    if 1 <= ordinal <= len(ordered):
        return ordered[ordinal - 1]
    return None


def founding_tranche(tranches: Sequence[Tranche]) -> Tranche | None:
    if not tranches:
        return None
    return min(tranches, key=lambda t: (t.event_date, t.due_date, t.id))


def advance_statuses(tranches: Sequence[Tranche], now: datetime) -> list[Tranche]:
    """Open the tranches whose window has started. Returns the ones that changed."""
    changed: list[Tranche] = []
    for tranche in tranches:
        if tranche.status == TrancheStatus.UPCOMING.value and tranche.event_date <= now:
            tranche.status = TrancheStatus.OPEN.value
            changed.append(tranche)
    return changed


def find_active_tranche(tranches: Sequence[Tranche], now: datetime) -> Tranche | None:
    """The open tranche whose [event_date, due_date] window contains now."""
    for tranche in order_by_due_date(tranches):
        if (
            tranche.status == TrancheStatus.OPEN.value
            and tranche.event_date <= now <= tranche.due_date
        ):
            return tranche
    return None


def find_due_tranche(tranches: Sequence[Tranche], now: datetime) -> Tranche | None:
    """Earliest unsettled tranche whose due date has passed."""
    for tranche in order_by_due_date(tranches):
        if tranche.status != TrancheStatus.SETTLED.value and tranche.due_date <= now:
            return tranche
    return None
