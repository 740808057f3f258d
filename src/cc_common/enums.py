"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class PropertyStatus(str, Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    DECLINED = "declined"


# Properties in these states are skipped by the sweep and refuse new commitments
TERMINAL_PROPERTY_STATUSES = frozenset({PropertyStatus.SOLD.value, PropertyStatus.DECLINED.value})


class TrancheStatus(str, Enum):
    UPCOMING = "upcoming"
    OPEN = "open"
    SETTLED = "settled"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PARTIAL = "partial"
    REJECTED = "rejected"
    CARRIED = "carried"


# Applications still holding a wallet + share reservation
OPEN_APPLICATION_STATUSES = frozenset(
    {ApplicationStatus.PENDING.value, ApplicationStatus.CARRIED.value}
)


class InvestmentKind(str, Enum):
    SUBSCRIPTION = "subscription"
    BUYOUT = "buyout"


class LedgerEntryType(str, Enum):
    DEPOSIT = "DEPOSIT"
    # Founding-tranche reservation and its refund
    APPLICATION_RESERVE = "APPLICATION_RESERVE"
    APPLICATION_REFUND = "APPLICATION_REFUND"
    # Direct conversion on later tranches and cancellation refund
    INVESTMENT_PAYMENT = "INVESTMENT_PAYMENT"
    INVESTMENT_REFUND = "INVESTMENT_REFUND"


class AuditAction(str, Enum):
    WALLET_DEPOSIT = "WALLET_DEPOSIT"
    APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED"
    PRIORITY_ASSIGNED = "PRIORITY_ASSIGNED"
    PRIORITY_CLEARED = "PRIORITY_CLEARED"
    INVESTMENT_CONFIRMED = "INVESTMENT_CONFIRMED"
    INVESTMENT_CANCELLED = "INVESTMENT_CANCELLED"
    APPLICATION_ACCEPTED = "APPLICATION_ACCEPTED"
    APPLICATION_PARTIAL = "APPLICATION_PARTIAL"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    APPLICATION_CARRIED = "APPLICATION_CARRIED"
    TRANCHE_ACCEPTED = "TRANCHE_ACCEPTED"
    TRANCHE_REJECTED = "TRANCHE_REJECTED"
    PROPERTY_FINALIZED = "PROPERTY_FINALIZED"
