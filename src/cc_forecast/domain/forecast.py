"""Cash-flow projection over the tranche ledger. Pure functions, no I/O.

Outflows are the unpaid remainder of every tranche falling due in a month.
Inflows are (a) open applications, scaled by the expected conversion rate
and dated at the due date of the tranche they target, and (b) rent on the
platform's own holdings, booked at the start of each month. Money available
in a month is the platform wallet plus every inflow up to the month's end.
"""

from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import datetime

from src.cc_common.datetime_utils import add_months
from src.cc_forecast.domain.models import (
    KIND_INFLOW_RENT,
    KIND_INFLOW_USER,
    KIND_OUTFLOW_TRANCHE,
    Forecast,
    LineItem,
    Period,
)
from src.cc_investment.domain.models import Application
from src.cc_property.domain.models import Property, Tranche
from src.cc_property.domain.tranches import tranche_at


def month_range(start: datetime, end: datetime) -> list[datetime]:
    """Month starts from start to end inclusive."""
    months: list[datetime] = []
    cursor = start
    while cursor <= end:
        months.append(cursor)
        cursor = add_months(cursor, 1)
    return months


def tranche_outflows(
    tranches_by_property: Mapping[str, Sequence[Tranche]],
    start: datetime,
    stop: datetime,
) -> list[LineItem]:
    items: list[LineItem] = []
    for property_id, tranches in tranches_by_property.items():
        for tranche in tranches:
            if tranche.outstanding <= 0 or not start <= tranche.due_date < stop:
                continue
            items.append(
                LineItem(
                    date=tranche.due_date,
                    property_id=property_id,
                    kind=KIND_OUTFLOW_TRANCHE,
                    label=tranche.milestone,
                    amount=-tranche.outstanding,
                )
            )
    return items


def user_inflows(
    applications: Sequence[Application],
    tranches_by_property: Mapping[str, Sequence[Tranche]],
    start: datetime,
    stop: datetime,
    conversion_bps: int,
) -> list[LineItem]:
    grouped: dict[tuple[str, datetime], int] = defaultdict(int)
    for app in applications:
        target = tranche_at(tranches_by_property.get(app.property_id, ()), app.target_tranche_index)
        if target is None or not start <= target.due_date < stop:
            continue
        gross = app.approved_amount or app.requested_amount
        if gross > 0:
            grouped[(app.property_id, target.due_date)] += gross

    return [
        LineItem(
            date=due_date,
            property_id=property_id,
            kind=KIND_INFLOW_USER,
            label="Expected application conversions",
            amount=gross * conversion_bps // 10_000,
        )
        for (property_id, due_date), gross in sorted(grouped.items(), key=lambda kv: kv[0][1])
    ]


def rent_inflows(
    properties: Sequence[Property],
    platform_shares: Mapping[str, int],
    months: Sequence[datetime],
) -> list[LineItem]:
    items: list[LineItem] = []
    for month in months:
        for prop in properties:
            shares = platform_shares.get(prop.id, 0)
            if prop.monthly_rental_income <= 0 or shares <= 0 or prop.total_shares <= 0:
                continue
            amount = prop.monthly_rental_income * shares // prop.total_shares
            if amount <= 0:
                continue
            items.append(
                LineItem(
                    date=month,
                    property_id=prop.id,
                    kind=KIND_INFLOW_RENT,
                    label=f"Rent on {shares}/{prop.total_shares} shares of {prop.title}",
                    amount=amount,
                )
            )
    return items


def build_forecast(
    start: datetime,
    end: datetime,
    platform_balance: int,
    properties: Sequence[Property],
    tranches_by_property: Mapping[str, Sequence[Tranche]],
    open_applications: Sequence[Application],
    platform_shares: Mapping[str, int],
    conversion_bps: int,
) -> Forecast:
    """Monthly forecast for the months start..end (both month starts, inclusive)."""
    months = month_range(start, end)
    stop = add_months(end, 1)

    outflows = tranche_outflows(tranches_by_property, start, stop)
    inflows = user_inflows(
        open_applications, tranches_by_property, start, stop, conversion_bps
    ) + rent_inflows(properties, platform_shares, months)

    forecast = Forecast(platform_balance=platform_balance)
    for month in months:
        month_end = add_months(month, 1)
        due_items = [i for i in outflows if month <= i.date < month_end]
        required = -sum(i.amount for i in due_items)
        available = platform_balance + sum(i.amount for i in inflows if i.date < month_end)
        items = due_items + [i for i in inflows if month <= i.date < month_end]
        forecast.periods.append(
            Period(
                start=month,
                required_outflow=required,
                available_on_date=available,
                shortfall=max(0, required - available),
                items=sorted(items, key=lambda i: (i.date, i.kind)),
            )
        )
    return forecast
