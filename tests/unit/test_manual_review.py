"""Unit tests for ManualReviewService (approve / reject / carry)."""

import pytest

from src.cc_common.errors import (
    ApplicationNotFoundError,
    ApplicationNotPendingError,
    InvalidApprovedSharesError,
    NoNextTrancheError,
    PropertyClosedError,
)


async def _apply(harness, name: str, shares: int, balance: int = 10_000_000):
    user = harness.add_user(name, balance)
    return await harness.commit(user, shares)


class TestApprove:
    async def test_full_approval(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)

        result = await harness.review().approve(harness.db, app.id, 20, "admin")

        assert result.status == "accepted"
        assert result.approved_shares == 20
        assert result.approved_amount_cents == 2_000_000
        assert result.refunded_cents == 0
        assert result.investment_id is not None
        assert harness.investments_of("eve")[0].shares == 20
        assert harness.property().available_shares == 80
        assert await harness.violations() == []

    async def test_partial_approval_refunds_the_remainder(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)

        result = await harness.review().approve(harness.db, app.id, 15, "admin")

        assert result.status == "partial"
        assert result.approved_amount_cents == 1_500_000
        assert result.refunded_cents == 500_000
        assert harness.balance("eve") == 8_500_000
        assert harness.property().available_shares == 85
        stored = harness.application(app.id)
        assert stored.approved_shares == 15
        assert stored.settled_at is not None
        assert "APPLICATION_PARTIAL" in harness.audit_actions()
        assert await harness.violations() == []

    async def test_approval_does_not_fund_the_tranche(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 50)

        await harness.review().approve(harness.db, app.id, 50, "admin")

        assert harness.tranche(1).paid == 0

    @pytest.mark.parametrize("approved", [0, -1, 21])
    async def test_out_of_range_share_count(self, harness, approved: int) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)

        with pytest.raises(InvalidApprovedSharesError):
            await harness.review().approve(harness.db, app.id, approved, "admin")
        assert harness.application(app.id).status == "pending"
        assert harness.db.rollbacks == 1

    async def test_settled_application_cannot_be_approved_again(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)
        await harness.review().approve(harness.db, app.id, 20, "admin")

        with pytest.raises(ApplicationNotPendingError):
            await harness.review().approve(harness.db, app.id, 20, "admin")
        assert len(harness.investments_of("eve")) == 1

    async def test_unknown_application(self, harness) -> None:
        with pytest.raises(ApplicationNotFoundError):
            await harness.review().approve(harness.db, "missing", 1, "admin")

    async def test_closed_property(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)
        harness.property().status = "declined"
        harness.db.checkpoint()

        with pytest.raises(PropertyClosedError):
            await harness.review().approve(harness.db, app.id, 20, "admin")


class TestReject:
    async def test_reject_refunds_and_releases(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)

        result = await harness.review().reject(harness.db, app.id, "admin")

        assert result.status == "rejected"
        assert result.refunded_cents == 2_000_000
        assert harness.balance("eve") == 10_000_000
        assert harness.property().available_shares == 100
        assert harness.store.notifications[-1].user_id == "eve"

    async def test_rejecting_the_priority_claim_clears_priority(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "alice", 60)
        assert harness.property().priority_investor_id == "alice"

        await harness.review().reject(harness.db, app.id, "admin")

        assert harness.property().priority_investor_id is None
        assert harness.audit_actions()[-1] == "PRIORITY_CLEARED"
        assert await harness.violations() == []


class TestCarry:
    async def test_carry_moves_to_the_next_tranche(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)

        result = await harness.review().carry(harness.db, app.id, "admin")

        assert result.status == "carried"
        assert result.target_tranche_index == 2
        # Money and shares stay reserved
        assert harness.balance("eve") == 8_000_000
        assert harness.property().available_shares == 80
        assert harness.audit_actions()[-1] == "APPLICATION_CARRIED"

    async def test_carried_application_can_be_carried_again(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)
        await harness.review().carry(harness.db, app.id, "admin")

        result = await harness.review().carry(harness.db, app.id, "admin")

        assert result.target_tranche_index == 3

    async def test_no_tranche_after_the_last(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)
        await harness.review().carry(harness.db, app.id, "admin")
        await harness.review().carry(harness.db, app.id, "admin")

        with pytest.raises(NoNextTrancheError):
            await harness.review().carry(harness.db, app.id, "admin")
        assert harness.application(app.id).target_tranche_index == 3

    async def test_next_tranche_already_settled(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "eve", 20)
        harness.tranche(2).status = "settled"
        harness.db.checkpoint()

        with pytest.raises(NoNextTrancheError):
            await harness.review().carry(harness.db, app.id, "admin")
        assert harness.application(app.id).status == "pending"

    async def test_carrying_a_priority_claim_releases_priority(self, harness) -> None:
        harness.add_property()
        app = await _apply(harness, "alice", 60)

        await harness.review().carry(harness.db, app.id, "admin")

        assert harness.property().priority_investor_id is None
        assert harness.application(app.id).is_priority is False
        assert "PRIORITY_CLEARED" in harness.audit_actions()
        assert await harness.violations() == []
