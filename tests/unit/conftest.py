"""In-memory doubles for the repository Protocols.

Reads hand out copies and writes store copies, the way rows round-trip
through PostgreSQL, so a service that forgets to flush a change is caught.
FakeSession.commit snapshots the store and rollback restores the snapshot.
The table CHECK constraints the engine leans on are enforced here too.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from src.cc_account.domain.models import LedgerEntry, User
from src.cc_audit.domain.models import AuditRecord, Notification
from src.cc_common.enums import PropertyStatus
from src.cc_common.errors import (
    ConcurrentUpdateError,
    InsufficientFundsError,
    UserNotFoundError,
)
from src.cc_common.locks import PropertyLocks
from src.cc_common.money import total_shares_for_price
from src.cc_forecast.application.service import ForecastService
from src.cc_investment.application.intake import IntakeService
from src.cc_investment.application.service import InvestmentApplicationService
from src.cc_investment.domain.models import Application, Investment
from src.cc_property.domain.models import Property, Tranche
from src.cc_property.domain.tranches import tranche_at
from src.cc_settlement.application.finalize import FinalizeService
from src.cc_settlement.application.invariants import InvariantChecker
from src.cc_settlement.application.review import ManualReviewService
from src.cc_settlement.application.sweep import SweepService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)

# $100,000 property -> 100 shares at $1,000
PRICE = 10_000_000
SHARE = 100_000


@dataclass
class InMemoryStore:
    users: dict[str, User] = field(default_factory=dict)
    ledger: list[LedgerEntry] = field(default_factory=list)
    properties: dict[str, Property] = field(default_factory=dict)
    tranches: dict[str, Tranche] = field(default_factory=dict)
    applications: dict[str, Application] = field(default_factory=dict)
    investments: dict[str, Investment] = field(default_factory=dict)
    audit: list[AuditRecord] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    seq: int = 0

    def next_timestamp(self) -> datetime:
        self.seq += 1
        return _EPOCH + timedelta(seconds=self.seq)


class FakeSession:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._snapshot = copy.deepcopy(store)
        self.commits = 0
        self.rollbacks = 0

    def checkpoint(self) -> None:
        self._snapshot = copy.deepcopy(self._store)

    async def commit(self) -> None:
        self.commits += 1
        self.checkpoint()

    async def rollback(self) -> None:
        self.rollbacks += 1
        restored = copy.deepcopy(self._snapshot)
        self._store.__dict__.update(restored.__dict__)


class FakeAccountRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._s = store

    async def get_user(self, db, user_id):
        user = self._s.users.get(user_id)
        return copy.copy(user) if user else None

    async def debit_wallet(self, db, user_id, amount, entry_type, ref_type, ref_id, description):
        user = self._s.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if user.wallet_balance < amount:
            raise InsufficientFundsError(amount, user.wallet_balance)
        user.wallet_balance -= amount
        entry = self._append(user, entry_type, -amount, ref_type, ref_id, description)
        return copy.copy(user), entry

    async def credit_wallet(self, db, user_id, amount, entry_type, ref_type, ref_id, description):
        user = self._s.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        user.wallet_balance += amount
        entry = self._append(user, entry_type, amount, ref_type, ref_id, description)
        return copy.copy(user), entry

    async def list_ledger_entries(self, db, user_id, cursor_id, limit, entry_type):
        entries = [
            e
            for e in reversed(self._s.ledger)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return entries[:limit]

    async def count_negative_wallets(self, db):
        return sum(1 for u in self._s.users.values() if u.wallet_balance < 0)

    def _append(self, user, entry_type, amount, ref_type, ref_id, description):
        entry = LedgerEntry(
            id=len(self._s.ledger) + 1,
            user_id=user.id,
            entry_type=entry_type,
            amount=amount,
            balance_after=user.wallet_balance,
            reference_type=ref_type,
            reference_id=ref_id,
            description=description,
            created_at=self._s.next_timestamp(),
        )
        self._s.ledger.append(entry)
        return entry


class FakePropertyRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._s = store

    def _ordered(self) -> list[Property]:
        return sorted(self._s.properties.values(), key=lambda p: (p.created_at, p.id))

    async def get_property(self, db, property_id, for_update=False):
        prop = self._s.properties.get(property_id)
        return copy.deepcopy(prop) if prop else None

    async def list_open_property_ids(self, db):
        return [p.id for p in self._ordered() if not p.is_terminal]

    async def list_all_property_ids(self, db):
        return [p.id for p in self._ordered()]

    async def update_property(self, db, prop):
        stored = self._s.properties.get(prop.id)
        if stored is None or stored.version != prop.version:
            raise ConcurrentUpdateError("property", prop.id)
        assert 0 <= prop.available_shares <= prop.total_shares, "ck_properties_available"
        saved = copy.deepcopy(prop)
        saved.version += 1
        self._s.properties[prop.id] = saved
        prop.version = saved.version

    async def list_tranches(self, db, property_id):
        tranches = [t for t in self._s.tranches.values() if t.property_id == property_id]
        tranches.sort(key=lambda t: (t.due_date, t.event_date, t.id))
        return [copy.deepcopy(t) for t in tranches]

    async def update_tranche(self, db, tranche):
        assert tranche.id in self._s.tranches
        assert 0 <= tranche.paid <= tranche.total, "ck_tranches_paid_bounds"
        self._s.tranches[tranche.id] = copy.deepcopy(tranche)


class FakeInvestmentRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._s = store

    # --- applications ---

    async def insert_application(self, db, app):
        if app.is_priority:
            assert not any(
                a.property_id == app.property_id and a.is_priority and a.is_open
                for a in self._s.applications.values()
            ), "uq_applications_open_priority"
        saved = copy.deepcopy(app)
        saved.created_at = saved.created_at or self._s.next_timestamp()
        self._s.applications[saved.id] = saved
        return copy.deepcopy(saved)

    async def get_application(self, db, application_id):
        app = self._s.applications.get(application_id)
        return copy.deepcopy(app) if app else None

    async def update_application(self, db, app):
        stored = self._s.applications[app.id]
        for name in (
            "status",
            "target_tranche_index",
            "is_priority",
            "approved_amount",
            "approved_shares",
            "settled_at",
        ):
            setattr(stored, name, getattr(app, name))

    async def list_open_applications(self, db, property_id, target_tranche_index=None):
        apps = [
            a
            for a in self._s.applications.values()
            if a.property_id == property_id
            and a.is_open
            and (target_tranche_index is None or a.target_tranche_index == target_tranche_index)
        ]
        apps.sort(key=lambda a: (not a.is_priority, a.created_at, a.id))
        return [copy.deepcopy(a) for a in apps]

    async def list_open_applications_all(self, db):
        apps = [a for a in self._s.applications.values() if a.is_open]
        apps.sort(key=lambda a: (a.property_id, a.created_at, a.id))
        return [copy.deepcopy(a) for a in apps]

    async def list_user_applications(self, db, user_id, limit):
        apps = [a for a in self._s.applications.values() if a.user_id == user_id]
        apps.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return [copy.deepcopy(a) for a in apps[:limit]]

    async def has_open_priority_application(self, db, property_id, user_id):
        return any(
            a.property_id == property_id and a.user_id == user_id and a.is_priority and a.is_open
            for a in self._s.applications.values()
        )

    # --- investments ---

    async def insert_investment(self, db, inv):
        assert inv.shares > 0, "ck_investments_shares_gt_0"
        assert inv.invested_amount >= 0, "ck_investments_amount_gte_0"
        saved = copy.deepcopy(inv)
        saved.created_at = saved.created_at or self._s.next_timestamp()
        self._s.investments[saved.id] = saved
        return copy.deepcopy(saved)

    async def get_investment(self, db, investment_id):
        inv = self._s.investments.get(investment_id)
        return copy.deepcopy(inv) if inv else None

    async def update_investment_shares(self, db, inv):
        self._s.investments[inv.id].shares = inv.shares

    async def delete_investment(self, db, investment_id):
        self._s.investments.pop(investment_id, None)

    async def list_property_investments(self, db, property_id):
        invs = [i for i in self._s.investments.values() if i.property_id == property_id]
        invs.sort(key=lambda i: (-i.invested_amount, i.created_at, i.id))
        return [copy.deepcopy(i) for i in invs]

    async def list_user_investments(self, db, user_id, limit):
        invs = [i for i in self._s.investments.values() if i.user_id == user_id]
        invs.sort(key=lambda i: (i.created_at, i.id), reverse=True)
        return [copy.deepcopy(i) for i in invs[:limit]]

    async def has_investment(self, db, property_id, user_id):
        return any(
            i.property_id == property_id and i.user_id == user_id
            for i in self._s.investments.values()
        )


class FakeAuditRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._s = store

    async def append(self, db, record):
        saved = copy.deepcopy(record)
        saved.id = len(self._s.audit) + 1
        saved.created_at = self._s.next_timestamp()
        self._s.audit.append(saved)

    async def enqueue_notification(self, db, notification):
        saved = copy.deepcopy(notification)
        saved.id = len(self._s.notifications) + 1
        self._s.notifications.append(saved)

    async def list_records(self, db, property_id, limit):
        records = [r for r in reversed(self._s.audit) if r.property_id == property_id]
        return [copy.deepcopy(r) for r in records[:limit]]


def default_plan() -> list[tuple[str, datetime, datetime, int]]:
    """Three calls on a $100,000 property: founding $50k, then $30k and $20k.

    The founding window is open at NOW; the later ones open after it closes.
    """
    return [
        ("Deposit", NOW - timedelta(days=30), NOW + timedelta(days=10), 5_000_000),
        ("Construction", NOW + timedelta(days=20), NOW + timedelta(days=60), 3_000_000),
        ("Handover", NOW + timedelta(days=70), NOW + timedelta(days=120), 2_000_000),
    ]


class Harness:
    """One store, one session, every engine service wired to the fakes."""

    now = NOW
    price = PRICE
    share = SHARE

    def __init__(self) -> None:
        self.store = InMemoryStore()
        self.accounts = FakeAccountRepository(self.store)
        self.properties = FakePropertyRepository(self.store)
        self.investments = FakeInvestmentRepository(self.store)
        self.audit = FakeAuditRepository(self.store)
        self.locks = PropertyLocks()
        self.db = FakeSession(self.store)

    # --- seeding ---

    def add_user(self, user_id: str, balance: int = 0, is_admin: bool = False) -> User:
        user = User(id=user_id, username=user_id, wallet_balance=balance, is_admin=is_admin)
        self.store.users[user_id] = user
        self.db.checkpoint()
        return copy.copy(user)

    def add_property(
        self,
        property_id: str = "prop-1",
        price: int = PRICE,
        tranches: list[tuple[str, datetime, datetime, int]] | None = None,
        deadline: datetime | None = None,
        status: str = PropertyStatus.AVAILABLE.value,
        monthly_rental_income: int = 0,
        title: str | None = None,
    ) -> Property:
        """tranches: (milestone, event_date, due_date, total) rows."""
        total_shares = total_shares_for_price(price)
        prop = Property(
            id=property_id,
            title=title or f"Property {property_id}",
            price=price,
            total_shares=total_shares,
            available_shares=total_shares,
            status=status,
            application_deadline=deadline or NOW + timedelta(days=150),
            monthly_rental_income=monthly_rental_income,
            created_at=self.store.next_timestamp(),
        )
        self.store.properties[property_id] = prop
        if tranches is None:
            tranches = default_plan()
        for n, (milestone, event_date, due_date, total) in enumerate(tranches, start=1):
            tranche_id = f"{property_id}-t{n}"
            self.store.tranches[tranche_id] = Tranche(
                id=tranche_id,
                property_id=property_id,
                milestone=milestone,
                event_date=event_date,
                due_date=due_date,
                total=total,
            )
        self.db.checkpoint()
        return copy.deepcopy(prop)

    # --- services ---

    def intake(self) -> IntakeService:
        return IntakeService(
            self.accounts, self.properties, self.investments, self.audit, self.locks
        )

    def sweep(self) -> SweepService:
        return SweepService(
            self.accounts, self.properties, self.investments, self.audit, self.locks
        )

    def finalizer(self, min_paid_bps: int = 4000) -> FinalizeService:
        return FinalizeService(
            self.accounts,
            self.properties,
            self.investments,
            self.audit,
            self.locks,
            min_paid_bps=min_paid_bps,
        )

    def review(self) -> ManualReviewService:
        return ManualReviewService(
            self.accounts, self.properties, self.investments, self.audit, self.locks
        )

    def investment_service(self) -> InvestmentApplicationService:
        return InvestmentApplicationService(
            self.accounts, self.properties, self.investments, self.audit, self.locks
        )

    def checker(self) -> InvariantChecker:
        return InvariantChecker(self.accounts, self.properties, self.investments)

    def forecaster(self, conversion_bps: int = 7000) -> ForecastService:
        return ForecastService(
            self.accounts,
            self.properties,
            self.investments,
            platform_user_id="PLATFORM",
            conversion_bps=conversion_bps,
        )

    # --- inspection ---

    async def commit(
        self, user: User, shares: int, property_id: str = "prop-1", now: datetime = NOW
    ):
        return await self.intake().commit(self.db, user, user.id, property_id, shares, now=now)

    def balance(self, user_id: str) -> int:
        return self.store.users[user_id].wallet_balance

    def property(self, property_id: str = "prop-1") -> Property:
        return self.store.properties[property_id]

    def tranche(self, ordinal: int, property_id: str = "prop-1") -> Tranche:
        tranches = [t for t in self.store.tranches.values() if t.property_id == property_id]
        found = tranche_at(tranches, ordinal)
        assert found is not None
        return found

    def application(self, application_id: str) -> Application:
        return self.store.applications[application_id]

    def investments_of(self, user_id: str, property_id: str = "prop-1") -> list[Investment]:
        return [
            i
            for i in self.store.investments.values()
            if i.user_id == user_id and i.property_id == property_id
        ]

    def audit_actions(self, property_id: str = "prop-1") -> list[str]:
        return [r.action for r in self.store.audit if r.property_id == property_id]

    async def violations(self) -> list[str]:
        return (await self.checker().check_all(self.db)).violations


@pytest.fixture
def harness() -> Harness:
    return Harness()
