"""Tests for the conversion pipeline - claiming rewards and converting them to the base asset."""

import pytest

from integrations.simulated.deployment import (
    BASE,
    REWARD_A,
    SECONDARY,
    STRATEGY_ADDRESS,
    WRAPPED_NATIVE,
    deploy,
)
from keeper.core.config import FinalHop
from keeper.core.errors import ExternalCallError, SlippageError
from keeper.core.interfaces import MAX_UINT256, WAD, ExactInputSingleParams
from keeper.trading.conversion import ConversionPipeline, ConversionRoute, SwapLeg


def accrue(d, reward_a=1_000 * WAD, reward_b=1 * WAD):
    d.venue.accrue_rewards(STRATEGY_ADDRESS, reward_a=reward_a, reward_b=reward_b)


def methods(d):
    return [tx.method for tx in d.chain.transactions]


class FixedLeg(SwapLeg):
    """Leg quoting one amount and paying another."""

    def __init__(self, quoted, paid, spender=None):
        self.token_in = SECONDARY
        self.token_out = BASE
        self.quoted = quoted
        self.paid = paid
        self._spender = spender
        self.min_outs = []

    @property
    def spender(self):
        return self._spender

    def quote(self, amount_in):
        return self.quoted

    def swap(self, amount_in, min_out):
        self.min_outs.append(min_out)
        return self.paid


class TestClaimAndConvert:
    """Tests for ConversionPipeline.claim_and_convert on the simulated chain."""

    def test_full_run_converts_everything(self, funded_deployment):
        """Reward A, native and the secondary asset all end up as base asset."""
        d = funded_deployment
        accrue(d)
        base_before = d.wallet.balance_of(BASE)

        report = d.strategy.pipeline.claim_and_convert()

        assert report.claimed is True
        assert report.final_hop is FinalHop.POOL
        assert [c.route for c in report.conversions] == [
            "reward_a_to_secondary",
            "native_to_secondary",
            "secondary_to_base_pool",
        ]
        assert d.wallet.balance_of(REWARD_A) == 0
        assert d.wallet.native_balance() == 0
        assert d.wallet.balance_of(SECONDARY) == 0
        # 1 unit from the forced claim, 1000 DAI from LQTY and 2000 DAI from ETH
        assert d.wallet.balance_of(BASE) - base_before == 1 + 3_000 * WAD

    def test_calls_in_order(self, funded_deployment):
        d = funded_deployment
        accrue(d)

        d.strategy.pipeline.claim_and_convert()

        assert methods(d) == [
            "withdraw_from_pool",
            "approve",
            "exact_input",
            "exact_input_single",
            "approve",
            "exchange",
        ]

    def test_claim_uses_minimal_withdrawal(self, funded_deployment):
        d = funded_deployment

        d.strategy.pipeline.claim_and_convert()

        claim = d.chain.transactions[0]
        assert claim.method == "withdraw_from_pool"
        assert claim.args["amount"] == d.settings.min_claim_amount

    def test_second_run_performs_no_swaps(self, funded_deployment):
        """Without new accrual a repeat run only claims."""
        d = funded_deployment
        accrue(d)
        d.strategy.pipeline.claim_and_convert()
        d.chain.transactions.clear()

        report = d.strategy.pipeline.claim_and_convert()

        assert report.swap_count == 0
        assert methods(d) == ["withdraw_from_pool"]

    def test_nothing_deployed_and_no_rewards_means_no_calls(self, deployment):
        report = deployment.strategy.pipeline.claim_and_convert()

        assert report.claimed is False
        assert report.swap_count == 0
        assert deployment.chain.transactions == []

    def test_only_native_reward(self, funded_deployment):
        d = funded_deployment
        accrue(d, reward_a=0, reward_b=WAD)

        report = d.strategy.pipeline.claim_and_convert()

        assert [c.route for c in report.conversions] == ["native_to_secondary", "secondary_to_base_pool"]
        assert "exact_input" not in methods(d)

    def test_native_swap_is_paid_in_value(self, funded_deployment):
        d = funded_deployment
        accrue(d, reward_a=0, reward_b=WAD)

        d.strategy.pipeline.claim_and_convert()

        swap = next(tx for tx in d.chain.transactions if tx.method == "exact_input_single")
        assert swap.args["value"] == WAD
        assert swap.args["amount_in"] == WAD

    def test_router_refunds_overpaid_native_in_same_call(self, deployment):
        d = deployment
        d.chain.deal_native(STRATEGY_ADDRESS, 2 * WAD)
        params = ExactInputSingleParams(
            WRAPPED_NATIVE, SECONDARY, 500, STRATEGY_ADDRESS, d.chain.timestamp + 60, WAD, 0
        )

        amount_out = d.router.exact_input_single(params, value=2 * WAD)

        assert amount_out == 2_000 * WAD
        assert d.chain.native_balance_of(STRATEGY_ADDRESS) == WAD
        assert d.chain.native_balance_of(d.router.address) == 0
        assert methods(d) == ["exact_input_single"]

    def test_gas_reserve_is_not_swapped(self):
        d = deploy(gas_reserve=WAD // 10)
        d.vault.lend(1_000 * WAD)
        d.strategy.adjust_position(0)
        d.venue.accrue_rewards(STRATEGY_ADDRESS, reward_b=WAD)

        d.strategy.pipeline.claim_and_convert()

        assert d.chain.native_balance_of(STRATEGY_ADDRESS) == WAD // 10
        assert d.wallet.native_balance() == 0


class TestRouteSelector:
    """The selector only changes the final hop."""

    def test_router_final_hop(self, funded_deployment, operator):
        d = funded_deployment
        accrue(d)
        d.strategy.set_route_selector(FinalHop.ROUTER, operator)

        report = d.strategy.pipeline.claim_and_convert()

        assert report.final_hop is FinalHop.ROUTER
        assert [c.route for c in report.conversions] == [
            "reward_a_to_secondary",
            "native_to_secondary",
            "secondary_to_base_router",
        ]
        assert "exchange" not in methods(d)
        assert report.conversions[-1].quote.min_out == 0
        assert report.conversions[-1].amount_out == 3_000 * WAD * 999 // 1000

    def test_toggle_leaves_earlier_hops_unchanged(self, operator):
        pool_run = deploy()
        router_run = deploy()
        for d in (pool_run, router_run):
            d.vault.lend(10_000 * WAD)
            d.strategy.adjust_position(0)
            accrue(d)
        router_run.strategy.set_route_selector(FinalHop.ROUTER, operator)

        pool_report = pool_run.strategy.pipeline.claim_and_convert()
        router_report = router_run.strategy.pipeline.claim_and_convert()

        assert pool_report.conversions[:2] == router_report.conversions[:2]
        assert pool_report.conversions[2].route != router_report.conversions[2].route


class TestAllowances:
    """Approvals are sent only when the current allowance is insufficient."""

    def test_each_spender_approved_once(self, funded_deployment):
        d = funded_deployment
        accrue(d)
        d.strategy.pipeline.claim_and_convert()
        accrue(d)
        d.chain.transactions.clear()

        d.strategy.pipeline.claim_and_convert()

        assert "approve" not in methods(d)
        assert d.wallet.allowance(REWARD_A, d.router.address) == MAX_UINT256
        assert d.wallet.allowance(SECONDARY, d.pool.address) == MAX_UINT256

    def test_stale_allowance_reset_before_approval(self, funded_deployment):
        d = funded_deployment
        d.chain.approve(REWARD_A, STRATEGY_ADDRESS, d.router.address, 5)
        accrue(d)

        d.strategy.pipeline.claim_and_convert()

        approvals = [
            tx.args["amount"] for tx in d.chain.transactions
            if tx.method == "approve" and tx.target == REWARD_A
        ]
        assert approvals == [0, MAX_UINT256]


class TestSlippageFloor:
    """Tests for ConversionRoute quotes and the floor check."""

    def test_floor_is_ninety_five_percent_of_quote(self, deployment):
        route = deployment.strategy.pipeline.final_routes[FinalHop.POOL]

        quote = route.quote(1_000 * WAD)

        assert quote.expected_out == 1_000 * WAD
        assert quote.min_out == 950 * WAD

    def test_route_without_tolerance_has_zero_floor(self, deployment):
        route = deployment.strategy.pipeline.reward_route

        quote = route.quote(1_000 * WAD)

        assert quote.expected_out is None
        assert quote.min_out == 0

    def test_result_below_floor_raises(self, deployment):
        leg = FixedLeg(quoted=1_000, paid=900)
        route = ConversionRoute("fixed", leg, deployment.wallet, tolerance_bps=500)

        with pytest.raises(SlippageError) as exc_info:
            route.convert(1_000)

        assert leg.min_outs == [950]
        assert exc_info.value.amount_out == 900
        assert exc_info.value.min_out == 950

    def test_result_at_floor_accepted(self, deployment):
        leg = FixedLeg(quoted=1_000, paid=950)
        route = ConversionRoute("fixed", leg, deployment.wallet, tolerance_bps=500)

        result = route.convert(1_000)

        assert result.amount_out == 950

    def test_pool_moving_within_tolerance(self, funded_deployment):
        d = funded_deployment
        accrue(d)
        d.pool.set_execution_discount(400)

        report = d.strategy.pipeline.claim_and_convert()

        assert report.conversions[-1].amount_out == 3_000 * WAD * 9_600 // 10_000

    def test_pool_moving_past_tolerance_reverts(self, funded_deployment):
        d = funded_deployment
        accrue(d)
        d.pool.set_execution_discount(600)

        with pytest.raises(ExternalCallError):
            d.strategy.pipeline.claim_and_convert()

    def test_invalid_tolerance_rejected(self, deployment):
        with pytest.raises(ValueError):
            ConversionRoute("fixed", FixedLeg(1, 1), deployment.wallet, tolerance_bps=10_001)


class TestPipelineConstruction:

    def test_missing_final_route_rejected(self, deployment):
        pipeline = deployment.strategy.pipeline

        with pytest.raises(ValueError, match="Missing final-hop routes"):
            ConversionPipeline(
                deployment.wallet,
                pipeline.venue,
                pipeline.reward_route,
                pipeline.native_route,
                {FinalHop.POOL: pipeline.final_routes[FinalHop.POOL]},
            )

    def test_final_route_must_start_from_secondary(self, deployment):
        pipeline = deployment.strategy.pipeline

        with pytest.raises(ValueError):
            ConversionPipeline(
                deployment.wallet,
                pipeline.venue,
                pipeline.reward_route,
                pipeline.native_route,
                {
                    FinalHop.POOL: pipeline.reward_route,
                    FinalHop.ROUTER: pipeline.final_routes[FinalHop.ROUTER],
                },
            )
