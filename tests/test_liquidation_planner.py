"""Tests for LiquidationPlanner - freeing base asset from idle balance and the venue."""

import pytest
from hypothesis import given, strategies as st

from integrations.simulated.deployment import BASE, STRATEGY_ADDRESS, deploy
from keeper.core.config import ZERO_ADDRESS


def build(idle: int, deposited: int):
    """Deployment holding idle base asset plus deposited principal."""
    d = deploy()
    d.chain.mint(BASE, STRATEGY_ADDRESS, idle + deposited)
    if deposited:
        d.venue.provide_to_pool(deposited, ZERO_ADDRESS)
    d.chain.transactions.clear()
    return d


def withdrawals(d):
    return [tx.args["amount"] for tx in d.chain.transactions if tx.method == "withdraw_from_pool"]


class TestLiquidationScenarios:
    """Fixed scenarios as (idle, recoverable, amount_needed)."""

    def test_shortfall_becomes_loss(self):
        """(0, 100, 150) frees everything and reports the rest as loss."""
        d = build(idle=0, deposited=100)

        liquidated, loss = d.strategy.planner.liquidate(150)

        assert (liquidated, loss) == (100, 50)
        assert withdrawals(d) == [100]
        assert d.venue.get_compounded_deposit(STRATEGY_ADDRESS) == 0

    def test_partial_withdrawal_covers_request(self):
        """(40, 200, 90) withdraws exactly the 50 missing."""
        d = build(idle=40, deposited=200)

        result = d.strategy.planner.liquidate(90)

        assert result.liquidated == 90
        assert result.loss == 0
        assert withdrawals(d) == [50]
        assert d.venue.get_compounded_deposit(STRATEGY_ADDRESS) == 150

    def test_idle_covers_request_without_venue_call(self):
        d = build(idle=500, deposited=1_000)

        result = d.strategy.planner.liquidate(500)

        assert (result.liquidated, result.loss) == (500, 0)
        assert d.chain.transactions == []

    def test_zero_request(self):
        d = build(idle=0, deposited=100)

        assert tuple(d.strategy.planner.liquidate(0)) == (0, 0)
        assert d.chain.transactions == []

    def test_nothing_recoverable(self):
        """With an empty venue no withdrawal is attempted."""
        d = build(idle=10, deposited=0)

        result = d.strategy.planner.liquidate(30)

        assert (result.liquidated, result.loss) == (10, 20)
        assert withdrawals(d) == []

    def test_negative_request_rejected(self):
        d = build(idle=0, deposited=0)

        with pytest.raises(ValueError):
            d.strategy.planner.liquidate(-1)

    def test_liquidate_position_entry_point(self):
        d = build(idle=0, deposited=100)

        result = d.strategy.liquidate_position(60)

        assert (result.liquidated, result.loss) == (60, 0)
        assert d.wallet.balance_of(BASE) == 60


class TestLiquidationProperties:
    """Property-based checks over idle, deposited and requested amounts."""

    @given(
        idle=st.integers(min_value=0, max_value=10 ** 24),
        deposited=st.integers(min_value=0, max_value=10 ** 24),
        needed=st.integers(min_value=0, max_value=3 * 10 ** 24),
    )
    def test_liquidated_plus_loss_equals_request(self, idle, deposited, needed):
        d = build(idle, deposited)

        result = d.strategy.planner.liquidate(needed)

        assert result.liquidated + result.loss == needed
        assert result.liquidated >= 0 and result.loss >= 0

    @given(
        idle=st.integers(min_value=0, max_value=10 ** 24),
        deposited=st.integers(min_value=0, max_value=10 ** 24),
        needed=st.integers(min_value=0, max_value=3 * 10 ** 24),
    )
    def test_withdrawal_never_exceeds_recoverable(self, idle, deposited, needed):
        d = build(idle, deposited)

        d.strategy.planner.liquidate(needed)

        assert all(amount <= deposited for amount in withdrawals(d))
        assert sum(withdrawals(d)) == max(0, min(needed - idle, deposited))

    @given(
        idle=st.integers(min_value=0, max_value=10 ** 24),
        deposited=st.integers(min_value=0, max_value=10 ** 24),
        needed=st.integers(min_value=0, max_value=3 * 10 ** 24),
    )
    def test_outcome_by_case(self, idle, deposited, needed):
        d = build(idle, deposited)

        result = d.strategy.planner.liquidate(needed)

        if needed <= idle:
            assert (result.liquidated, result.loss) == (needed, 0)
            assert withdrawals(d) == []
        elif needed <= idle + deposited:
            assert (result.liquidated, result.loss) == (needed, 0)
            assert d.venue.get_compounded_deposit(STRATEGY_ADDRESS) == deposited - (needed - idle)
        else:
            assert result.liquidated == idle + deposited
            assert result.loss == needed - idle - deposited
