"""Integer arithmetic utilities for cents-based share accounting.

All prices, amounts, and balances use int (cents). No float, no Decimal.
One share is priced at nominally $1,000 of the property price.
"""

SHARE_UNIT_CENTS = 100_000  # $1,000


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division for non-negative operands."""
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    return (numerator + denominator - 1) // denominator


def total_shares_for_price(price_cents: int) -> int:
    """totalShares = ceil(price / $1000)."""
    if price_cents <= 0:
        raise ValueError(f"price must be positive, got {price_cents}")
    return ceil_div(price_cents, SHARE_UNIT_CENTS)


def share_cost(shares: int, price_cents: int, total_shares: int) -> int:
    """Cost of `shares` at price/total_shares per share, rounded up (platform never loses)."""
    return ceil_div(shares * price_cents, total_shares)


def paid_ratio_bps(paid_cents: int, total_cents: int) -> int:
    """Paid share of a payment plan in basis points, 0 when nothing is due."""
    if total_cents <= 0:
        return 0
    return paid_cents * 10_000 // total_cents


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
