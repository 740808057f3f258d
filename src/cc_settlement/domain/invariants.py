"""Ledger invariants over one property's rows.

INV-S: available_shares + Σ investment shares + Σ open-application shares == total_shares
INV-A: 0 <= available_shares <= total_shares
INV-T: 0 <= tranche.paid <= tranche.total
INV-P: a priority investor holds an investment or an open priority application,
       and every open priority application belongs to the priority investor

Each check returns violation strings; an empty list means the invariant holds.
"""

from collections.abc import Sequence

from src.cc_investment.domain.models import Application, Investment
from src.cc_property.domain.models import Property, Tranche


def check_share_conservation(
    prop: Property,
    investments: Sequence[Investment],
    open_applications: Sequence[Application],
) -> list[str]:
    violations: list[str] = []
    invested = sum(i.shares for i in investments)
    reserved = sum(a.requested_shares for a in open_applications)
    if prop.available_shares + invested + reserved != prop.total_shares:
        violations.append(
            f"INV-S violated on property {prop.id}: available({prop.available_shares}) + "
            f"invested({invested}) + reserved({reserved}) != total_shares({prop.total_shares})"
        )
    if not 0 <= prop.available_shares <= prop.total_shares:
        violations.append(
            f"INV-A violated on property {prop.id}: available_shares={prop.available_shares} "
            f"outside [0, {prop.total_shares}]"
        )
    return violations


def check_tranche_bounds(tranches: Sequence[Tranche]) -> list[str]:
    return [
        f"INV-T violated on tranche {t.id}: paid={t.paid} outside [0, {t.total}]"
        for t in tranches
        if not 0 <= t.paid <= t.total
    ]


def check_priority(
    prop: Property,
    investments: Sequence[Investment],
    open_applications: Sequence[Application],
) -> list[str]:
    violations: list[str] = []
    holder = prop.priority_investor_id
    priority_apps = [a for a in open_applications if a.is_priority]
    for app in priority_apps:
        if app.user_id != holder:
            violations.append(
                f"INV-P violated on property {prop.id}: open priority application {app.id} "
                f"belongs to {app.user_id}, priority investor is {holder}"
            )
    if holder is not None:
        has_stake = any(i.user_id == holder for i in investments) or any(
            a.user_id == holder for a in priority_apps
        )
        if not has_stake:
            violations.append(
                f"INV-P violated on property {prop.id}: priority investor {holder} "
                f"holds no investment and no open priority application"
            )
    return violations


def check_property(
    prop: Property,
    tranches: Sequence[Tranche],
    investments: Sequence[Investment],
    open_applications: Sequence[Application],
) -> list[str]:
    return (
        check_share_conservation(prop, investments, open_applications)
        + check_tranche_bounds(tranches)
        + check_priority(prop, investments, open_applications)
    )
