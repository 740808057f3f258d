"""Unit tests for IntakeService against the in-memory ledger."""

from datetime import timedelta

import pytest

from src.cc_common.errors import (
    ActingForOtherUserError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidShareQuantityError,
    NoActiveTrancheError,
    PropertyClosedError,
    PropertyNotFoundError,
    UserNotFoundError,
)


class TestFoundingTranche:
    async def test_covering_the_founding_tranche_alone_claims_priority(self, harness) -> None:
        harness.add_property()
        alice = harness.add_user("alice", 10_000_000)

        result = await harness.commit(alice, 60)

        assert result.kind == "application"
        assert result.is_priority is True
        assert result.tranche_ordinal == 1
        assert result.amount_cents == 6_000_000
        assert result.amount_display == "$60,000.00"
        assert result.available_shares == 40

        prop = harness.property()
        assert prop.available_shares == 40
        assert prop.priority_investor_id == "alice"
        assert harness.balance("alice") == 4_000_000
        app = harness.application(result.id)
        assert app.status == "pending"
        assert app.is_priority is True
        assert app.requested_shares == 60
        assert harness.audit_actions() == ["APPLICATION_SUBMITTED", "PRIORITY_ASSIGNED"]
        assert harness.db.commits == 1

    async def test_partial_cover_is_a_plain_application(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 10_000_000)

        result = await harness.commit(bob, 25)

        assert result.is_priority is False
        assert harness.property().priority_investor_id is None
        assert harness.property().available_shares == 75
        assert harness.balance("bob") == 7_500_000
        # The founding tranche is decided by the sweep, not by intake
        assert harness.tranche(1).paid == 0

    async def test_priority_is_assigned_once(self, harness) -> None:
        harness.add_property()
        alice = harness.add_user("alice", 10_000_000)
        carol = harness.add_user("carol", 10_000_000)

        await harness.commit(alice, 50)
        second = await harness.commit(carol, 50)

        assert second.is_priority is False
        assert harness.property().priority_investor_id == "alice"
        assert harness.property().available_shares == 0

    async def test_ledger_entry_references_the_application(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 3_000_000)

        result = await harness.commit(bob, 10)

        entry = harness.store.ledger[-1]
        assert entry.entry_type == "APPLICATION_RESERVE"
        assert entry.amount == -1_000_000
        assert entry.balance_after == 2_000_000
        assert entry.reference_id == result.id

    async def test_opens_the_founding_tranche(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 3_000_000)

        await harness.commit(bob, 10)

        assert harness.tranche(1).status == "open"
        assert harness.tranche(2).status == "upcoming"


class TestLaterTranche:
    async def test_converts_directly_into_an_investment(self, harness) -> None:
        harness.add_property()
        dave = harness.add_user("dave", 5_000_000)
        later = harness.now + timedelta(days=25)

        result = await harness.commit(dave, 20, now=later)

        assert result.kind == "investment"
        assert result.tranche_ordinal == 2
        assert harness.tranche(2).paid == 2_000_000
        assert harness.tranche(2).status == "open"
        assert harness.property().available_shares == 80
        assert harness.balance("dave") == 3_000_000
        investments = harness.investments_of("dave")
        assert len(investments) == 1
        assert investments[0].shares == 20
        assert investments[0].kind == "subscription"
        assert harness.store.ledger[-1].entry_type == "INVESTMENT_PAYMENT"
        assert harness.audit_actions() == ["INVESTMENT_CONFIRMED"]

    async def test_paid_never_exceeds_the_tranche_total(self, harness) -> None:
        harness.add_property()
        dave = harness.add_user("dave", 10_000_000)

        await harness.commit(dave, 40, now=harness.now + timedelta(days=25))

        tranche = harness.tranche(2)
        assert tranche.paid == tranche.total == 3_000_000
        # The investor still paid for every share they took
        assert harness.balance("dave") == 6_000_000

    async def test_direct_conversion_does_not_claim_priority(self, harness) -> None:
        harness.add_property()
        dave = harness.add_user("dave", 10_000_000)

        await harness.commit(dave, 40, now=harness.now + timedelta(days=25))

        assert harness.property().priority_investor_id is None


class TestRejections:
    async def test_acting_for_another_user(self, harness) -> None:
        harness.add_property()
        alice = harness.add_user("alice", 10_000_000)
        harness.add_user("bob", 10_000_000)

        with pytest.raises(ActingForOtherUserError):
            await harness.intake().commit(harness.db, alice, "bob", "prop-1", 5, now=harness.now)

    async def test_admin_may_commit_for_a_user(self, harness) -> None:
        harness.add_property()
        admin = harness.add_user("admin", is_admin=True)
        harness.add_user("bob", 10_000_000)

        result = await harness.intake().commit(
            harness.db, admin, "bob", "prop-1", 5, now=harness.now
        )

        assert result.user_id == "bob"
        assert harness.balance("bob") == 9_500_000
        assert harness.store.audit[0].actor_id == "admin"

    @pytest.mark.parametrize("shares", [0, -3])
    async def test_non_positive_shares(self, harness, shares: int) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 10_000_000)

        with pytest.raises(InvalidShareQuantityError):
            await harness.commit(bob, shares)

    async def test_unknown_property(self, harness) -> None:
        bob = harness.add_user("bob", 10_000_000)

        with pytest.raises(PropertyNotFoundError):
            await harness.commit(bob, 5, property_id="nope")
        assert harness.db.rollbacks == 1

    @pytest.mark.parametrize("status", ["sold", "declined"])
    async def test_closed_property(self, harness, status: str) -> None:
        harness.add_property(status=status)
        bob = harness.add_user("bob", 10_000_000)

        with pytest.raises(PropertyClosedError):
            await harness.commit(bob, 5)

    async def test_unknown_user(self, harness) -> None:
        harness.add_property()
        admin = harness.add_user("admin", is_admin=True)

        with pytest.raises(UserNotFoundError):
            await harness.intake().commit(
                harness.db, admin, "ghost", "prop-1", 5, now=harness.now
            )

    async def test_no_window_open(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 10_000_000)

        # Founding window closed, next one not yet open
        with pytest.raises(NoActiveTrancheError):
            await harness.commit(bob, 5, now=harness.now + timedelta(days=15))

    async def test_insufficient_funds_leaves_everything_untouched(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 999_999)

        with pytest.raises(InsufficientFundsError):
            await harness.commit(bob, 10)

        assert harness.balance("bob") == 999_999
        assert harness.property().available_shares == 100
        assert harness.store.applications == {}
        assert harness.store.ledger == []

    async def test_insufficient_shares(self, harness) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 20_000_000)

        with pytest.raises(InsufficientSharesError):
            await harness.commit(bob, 101)
        assert harness.balance("bob") == 20_000_000

    async def test_failure_after_debit_rolls_back(self, harness, monkeypatch) -> None:
        harness.add_property()
        bob = harness.add_user("bob", 10_000_000)

        async def broken_append(db, record):
            raise RuntimeError("audit store down")

        monkeypatch.setattr(harness.audit, "append", broken_append)
        with pytest.raises(RuntimeError):
            await harness.commit(bob, 10)

        assert harness.db.rollbacks == 1
        assert harness.balance("bob") == 10_000_000
        assert harness.property().available_shares == 100
        assert harness.store.applications == {}


class TestInvariantsAfterIntake:
    async def test_share_conservation_holds(self, harness) -> None:
        harness.add_property()
        alice = harness.add_user("alice", 10_000_000)
        bob = harness.add_user("bob", 10_000_000)

        await harness.commit(alice, 50)
        await harness.commit(bob, 20)
        await harness.commit(bob, 10, now=harness.now + timedelta(days=25))

        assert await harness.violations() == []
