"""Append-only audit trail and notification outbox rows."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class AuditRecord:
    actor_id: str
    action: str                      # AuditAction value
    property_id: str | None = None
    reference_id: str | None = None  # application / investment / tranche id
    amount: int | None = None        # cents
    shares: int | None = None
    details: str = ""
    created_at: datetime | None = None
    id: int | None = None


@dataclass
class Notification:
    user_id: str
    title: str
    content: str
    property_id: str | None = None
    created_at: datetime | None = None
    id: int | None = None
