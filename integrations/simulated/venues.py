"""
In-memory venues: stability pool, router, stable-swap pool, price feed and
vault, all settling against one SimulatedChain.

Each venue is bound to the single account that calls it, standing in for
msg.sender on a real chain.
"""

import logging
from typing import Optional, Sequence, Tuple

from integrations.simulated.chain import SimulatedChain, SimulatedComponent
from keeper.core.errors import ExternalCallError, PriceUnavailableError, StalePriceError
from keeper.core.interfaces import (
    WAD,
    BPS_DENOMINATOR,
    ExactInputSingleParams,
    PriceFeed,
    StableSwapPool,
    SwapPath,
    SwapRouter,
    VaultLink,
    YieldVenue,
)

logger = logging.getLogger(__name__)


class SimulatedStabilityPool(YieldVenue, SimulatedComponent):
    """
    Stability pool with per-depositor deposits and gains.

    Deposits are burned into the pool without an allowance. Any deposit or
    withdrawal first pays out the depositor's pending gains; withdrawals are
    capped at the compounded deposit.
    """

    spender = None

    def __init__(self, chain: SimulatedChain, address: str, base_asset: str, reward_a: str, caller: str):
        self.chain = chain
        self.address = address
        self.base_asset = base_asset
        self.reward_a = reward_a
        self.caller = caller
        self.state = {"deposits": {}, "reward_a": {}, "reward_b": {}}
        chain.register(self)

    def provide_to_pool(self, amount: int, referrer: str) -> None:
        if amount <= 0:
            raise ExternalCallError("StabilityPool: Amount must be non-zero")
        self.chain.record(self.caller, self.address, "provide_to_pool", amount=amount, referrer=referrer)
        self._pay_gains(self.caller)
        self.chain.transfer(self.base_asset, self.caller, self.address, amount)
        deposits = self.state["deposits"]
        deposits[self.caller] = deposits.get(self.caller, 0) + amount

    def withdraw_from_pool(self, amount: int) -> None:
        self.chain.record(self.caller, self.address, "withdraw_from_pool", amount=amount)
        self._pay_gains(self.caller)
        deposits = self.state["deposits"]
        withdrawn = min(amount, deposits.get(self.caller, 0))
        if withdrawn > 0:
            deposits[self.caller] -= withdrawn
            self.chain.transfer(self.base_asset, self.address, self.caller, withdrawn)

    def get_compounded_deposit(self, who: str) -> int:
        return self.state["deposits"].get(who, 0)

    def get_depositor_reward_a_gain(self, who: str) -> int:
        return self.state["reward_a"].get(who, 0)

    def get_depositor_reward_b_gain(self, who: str) -> int:
        return self.state["reward_b"].get(who, 0)

    def _pay_gains(self, who: str) -> None:
        reward_a = self.state["reward_a"].pop(who, 0)
        reward_b = self.state["reward_b"].pop(who, 0)
        if reward_a:
            self.chain.transfer(self.reward_a, self.address, who, reward_a)
        if reward_b:
            self.chain.transfer_native(self.address, who, reward_b)

    # Simulation hooks

    def accrue_rewards(self, who: str, reward_a: int = 0, reward_b: int = 0) -> None:
        """Credit pending gains, funding the pool so it can pay them."""
        self.chain.mint(self.reward_a, self.address, reward_a)
        self.chain.deal_native(self.address, reward_b)
        self.state["reward_a"][who] = self.get_depositor_reward_a_gain(who) + reward_a
        self.state["reward_b"][who] = self.get_depositor_reward_b_gain(who) + reward_b

    def apply_liquidation(self, who: str, debt_offset: int, collateral_gain: int) -> None:
        """Burn debt_offset of the deposit and credit collateral_gain in native currency."""
        offset = min(debt_offset, self.get_compounded_deposit(who))
        self.state["deposits"][who] = self.get_compounded_deposit(who) - offset
        self.chain.burn(self.base_asset, self.address, offset)
        self.chain.deal_native(self.address, collateral_gain)
        self.state["reward_b"][who] = self.get_depositor_reward_b_gain(who) + collateral_gain
        logger.debug(f"Liquidation offset {offset} against {who}, collateral gain {collateral_gain}")


class SimulatedRouter(SwapRouter, SimulatedComponent):
    """
    Router with deep liquidity at fixed rates.

    set_rate(a, b, rate) makes one unit of a worth rate/WAD units of b on
    every fee tier.
    """

    def __init__(self, chain: SimulatedChain, address: str, wrapped_native: str, caller: str):
        self.chain = chain
        self.address = address
        self.wrapped_native = wrapped_native
        self.caller = caller
        self.state = {"rates": {}}
        chain.register(self)

    def set_rate(self, token_in: str, token_out: str, rate: int) -> None:
        self.state["rates"][(token_in.lower(), token_out.lower())] = rate

    def _hop(self, token_in: str, token_out: str, amount: int) -> int:
        rate = self.state["rates"].get((token_in.lower(), token_out.lower()))
        if rate is None:
            raise ExternalCallError(f"No liquidity for {token_in} -> {token_out}")
        return amount * rate // WAD

    def _check_deadline(self, deadline: int) -> None:
        if deadline < self.chain.timestamp:
            raise ExternalCallError("Transaction too old")

    def _settle(self, token_out: str, recipient: str, amount_out: int, min_out: int) -> int:
        if amount_out < min_out:
            raise ExternalCallError("Too little received")
        self.chain.mint(token_out, recipient, amount_out)
        return amount_out

    def exact_input(self, path: SwapPath, recipient: str, deadline: int, amount_in: int, min_out: int) -> int:
        self.chain.record(
            self.caller, self.address, "exact_input",
            path=path.tokens, amount_in=amount_in, min_out=min_out,
        )
        self._check_deadline(deadline)
        self.chain.transfer_from(path.token_in, self.address, self.caller, self.address, amount_in)

        amount = amount_in
        for token_in, token_out in zip(path.tokens, path.tokens[1:]):
            amount = self._hop(token_in, token_out, amount)
        return self._settle(path.token_out, recipient, amount, min_out)

    def exact_input_single(self, params: ExactInputSingleParams, value: int = 0) -> int:
        self.chain.record(
            self.caller, self.address, "exact_input_single",
            token_in=params.token_in, token_out=params.token_out,
            amount_in=params.amount_in, value=value,
        )
        self._check_deadline(params.deadline)
        if value:
            if params.token_in.lower() != self.wrapped_native.lower():
                raise ExternalCallError("Native value sent for a non-native input")
            if value < params.amount_in:
                raise ExternalCallError("Insufficient native value")
            self.chain.transfer_native(self.caller, self.address, value)
            if value > params.amount_in:
                self.chain.transfer_native(self.address, self.caller, value - params.amount_in)
        else:
            self.chain.transfer_from(params.token_in, self.address, self.caller, self.address, params.amount_in)

        amount_out = self._hop(params.token_in, params.token_out, params.amount_in)
        return self._settle(params.token_out, params.recipient, amount_out, params.amount_out_minimum)


class SimulatedStableSwapPool(StableSwapPool, SimulatedComponent):
    """
    Stable-swap pool over indexed coins.

    execution_discount_bps makes exchange() pay less than get_dy() quoted,
    standing in for the price moving between quote and execution.
    """

    def __init__(self, chain: SimulatedChain, address: str, coins: Sequence[str], caller: str):
        self.chain = chain
        self.address = address
        self.coins = list(coins)
        self.caller = caller
        self.state = {"rates": {}, "execution_discount_bps": 0}
        chain.register(self)

    def set_rate(self, i: int, j: int, rate: int) -> None:
        self.state["rates"][(i, j)] = rate

    def set_execution_discount(self, bps: int) -> None:
        self.state["execution_discount_bps"] = bps

    def get_dy(self, i: int, j: int, dx: int) -> int:
        rate = self.state["rates"].get((i, j))
        if rate is None:
            raise ExternalCallError(f"Pool has no rate for coins {i} -> {j}")
        return dx * rate // WAD

    def exchange(self, i: int, j: int, dx: int, min_dy: int) -> int:
        self.chain.record(self.caller, self.address, "exchange", i=i, j=j, dx=dx, min_dy=min_dy)
        discount = self.state["execution_discount_bps"]
        dy = self.get_dy(i, j, dx) * (BPS_DENOMINATOR - discount) // BPS_DENOMINATOR
        if dy < min_dy:
            raise ExternalCallError("Exchange resulted in fewer coins than expected")
        self.chain.transfer_from(self.coins[i], self.address, self.caller, self.address, dx)
        self.chain.mint(self.coins[j], self.caller, dy)
        return dy


class SimulatedPriceFeed(PriceFeed):
    """Fixed price with switches for an unavailable or stale feed."""

    def __init__(self, name: str, price: int):
        self.name = name
        self.price = price
        self.unavailable = False
        self.stale = False

    def last_price(self) -> int:
        if self.unavailable:
            raise PriceUnavailableError(f"{self.name} is not responding")
        if self.stale:
            raise StalePriceError(self.name, age_seconds=7200, max_age_seconds=3600)
        return self.price


class SimulatedVault(VaultLink, SimulatedComponent):
    """
    Vault lending the base asset to one strategy.

    debt_outstanding is whatever the strategy holds above the vault's debt
    limit for it. report() books the loss first, then accepts at most the
    debt outstanding after that loss as repayment, and reverts on a loss
    larger than the strategy's debt.
    """

    def __init__(self, chain: SimulatedChain, address: str, base_asset: str, strategy: str):
        self.chain = chain
        self.address = address
        self.base_asset = base_asset
        self.strategy = strategy
        self.state = {"total_debt": 0, "debt_limit": None, "reports": []}
        chain.register(self)

    def lend(self, amount: int) -> None:
        """Send amount of newly minted base asset to the strategy as debt."""
        self.chain.mint(self.base_asset, self.strategy, amount)
        self.state["total_debt"] += amount

    def set_debt_limit(self, limit: Optional[int]) -> None:
        self.state["debt_limit"] = limit

    @property
    def reports(self) -> Sequence[Tuple[int, int, int]]:
        return list(self.state["reports"])

    def total_debt(self) -> int:
        return self.state["total_debt"]

    def debt_outstanding(self) -> int:
        limit = self.state["debt_limit"]
        if limit is None:
            return 0
        return max(0, self.state["total_debt"] - limit)

    def report(self, profit: int, loss: int, debt_payment: int) -> int:
        self.chain.record(self.strategy, self.address, "report", profit=profit, loss=loss, debt_payment=debt_payment)
        if profit and loss:
            raise ExternalCallError("Cannot report both profit and loss")
        if loss > self.state["total_debt"]:
            raise ExternalCallError("Loss exceeds strategy debt")
        self.state["total_debt"] -= loss

        payment = min(debt_payment, self.debt_outstanding())
        self.chain.transfer(self.base_asset, self.strategy, self.address, profit + payment)
        self.state["total_debt"] -= payment
        self.state["reports"].append((profit, loss, debt_payment))
        return self.debt_outstanding()

