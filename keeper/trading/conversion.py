"""
Reward conversion: turning venue rewards back into the base asset.

A ConversionRoute is one leg, token_in -> token_out, on one venue. The
ConversionPipeline runs the legs in a fixed order once per harvest:

1. force a reward claim with a minimal withdrawal
2. reward A -> bridge -> secondary, one router path swap, zero floor
3. native currency -> secondary, one router single swap paid in native
4. secondary -> base, on the pool or the router depending on the selector

Every step is skipped when its input balance is zero.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from keeper.core.config import FinalHop, StrategySettings
from keeper.core.errors import SlippageError
from keeper.core.interfaces import (
    BPS_DENOMINATOR,
    ExactInputSingleParams,
    StableSwapPool,
    SwapPath,
    SwapRouter,
    TokenWallet,
)
from keeper.core.wallet import ensure_allowance
from keeper.logging_config import get_activity_logger
from keeper.trading.venue import YieldVenueAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionQuote:
    """Expected output (None when the venue cannot quote) and the accepted floor."""
    expected_out: Optional[int]
    min_out: int


@dataclass(frozen=True)
class ConversionResult:
    route: str
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int
    quote: ConversionQuote


@dataclass
class PipelineReport:
    claimed: bool
    final_hop: FinalHop
    conversions: List[ConversionResult] = field(default_factory=list)

    @property
    def swap_count(self) -> int:
        return len(self.conversions)


class SwapLeg(ABC):
    """The venue-specific half of a route: how to quote and how to swap."""

    token_in: str
    token_out: str

    @property
    @abstractmethod
    def spender(self) -> Optional[str]:
        """Address to approve for token_in, None when paying in native currency."""
        pass

    @abstractmethod
    def quote(self, amount_in: int) -> Optional[int]:
        pass

    @abstractmethod
    def swap(self, amount_in: int, min_out: int) -> int:
        pass


class RouterPathLeg(SwapLeg):
    """Multi-hop swap through a router path."""

    def __init__(
        self,
        router: SwapRouter,
        path: SwapPath,
        recipient: str,
        deadline_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.router = router
        self.path = path
        self.token_in = path.token_in
        self.token_out = path.token_out
        self.recipient = recipient
        self.deadline_seconds = deadline_seconds
        self.clock = clock

    @property
    def spender(self) -> Optional[str]:
        return self.router.address

    def quote(self, amount_in: int) -> Optional[int]:
        return None

    def swap(self, amount_in: int, min_out: int) -> int:
        return self.router.exact_input(
            self.path,
            self.recipient,
            int(self.clock()) + self.deadline_seconds,
            amount_in,
            min_out,
        )


class RouterSingleLeg(SwapLeg):
    """
    Single-pool router swap.

    With native_in the input is paid as native currency (token_in must then
    be the wrapped native token); the router refunds whatever it did not spend.
    """

    def __init__(
        self,
        router: SwapRouter,
        token_in: str,
        token_out: str,
        fee: int,
        recipient: str,
        deadline_seconds: int,
        native_in: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.router = router
        self.token_in = token_in
        self.token_out = token_out
        self.fee = fee
        self.recipient = recipient
        self.deadline_seconds = deadline_seconds
        self.native_in = native_in
        self.clock = clock

    @property
    def spender(self) -> Optional[str]:
        return None if self.native_in else self.router.address

    def quote(self, amount_in: int) -> Optional[int]:
        return None

    def swap(self, amount_in: int, min_out: int) -> int:
        params = ExactInputSingleParams(
            token_in=self.token_in,
            token_out=self.token_out,
            fee=self.fee,
            recipient=self.recipient,
            deadline=int(self.clock()) + self.deadline_seconds,
            amount_in=amount_in,
            amount_out_minimum=min_out,
        )
        return self.router.exact_input_single(params, value=amount_in if self.native_in else 0)


class PoolLeg(SwapLeg):
    """Pool-style swap between coin indices i and j."""

    def __init__(self, pool: StableSwapPool, token_in: str, token_out: str, i: int, j: int):
        self.pool = pool
        self.token_in = token_in
        self.token_out = token_out
        self.i = i
        self.j = j

    @property
    def spender(self) -> Optional[str]:
        return self.pool.address

    def quote(self, amount_in: int) -> Optional[int]:
        return self.pool.get_dy(self.i, self.j, amount_in)

    def swap(self, amount_in: int, min_out: int) -> int:
        return self.pool.exchange(self.i, self.j, amount_in, min_out)


class ConversionRoute:
    """
    One conversion leg with allowance bookkeeping and a slippage floor.

    With tolerance_bps set, the floor is the venue's quote reduced by that
    tolerance; otherwise the floor is zero and the venue's own pricing is
    trusted.
    """

    def __init__(
        self,
        name: str,
        leg: SwapLeg,
        wallet: TokenWallet,
        tolerance_bps: Optional[int] = None,
    ):
        if tolerance_bps is not None and not 0 <= tolerance_bps <= BPS_DENOMINATOR:
            raise ValueError(f"tolerance_bps must be within [0, {BPS_DENOMINATOR}], got {tolerance_bps}")
        self.name = name
        self.leg = leg
        self.wallet = wallet
        self.tolerance_bps = tolerance_bps
        self.activity = get_activity_logger()

    @property
    def token_in(self) -> str:
        return self.leg.token_in

    @property
    def token_out(self) -> str:
        return self.leg.token_out

    def quote(self, amount_in: int) -> ConversionQuote:
        if self.tolerance_bps is None:
            return ConversionQuote(expected_out=None, min_out=0)
        expected = self.leg.quote(amount_in)
        if expected is None:
            raise ValueError(f"Route {self.name} has a tolerance but its venue cannot quote")
        floor = expected * (BPS_DENOMINATOR - self.tolerance_bps) // BPS_DENOMINATOR
        return ConversionQuote(expected_out=expected, min_out=floor)

    def convert(self, amount_in: int) -> ConversionResult:
        """
        Swap amount_in of token_in for token_out.

        Raises:
            SlippageError: if the venue returned less than the floor
        """
        spender = self.leg.spender
        if spender is not None:
            ensure_allowance(self.wallet, self.token_in, spender, amount_in)

        quote = self.quote(amount_in)
        amount_out = self.leg.swap(amount_in, quote.min_out)
        if amount_out < quote.min_out:
            raise SlippageError(self.name, amount_out, quote.min_out)

        self.activity.log_conversion(self.name, amount_in, amount_out, quote.min_out)
        return ConversionResult(
            route=self.name,
            token_in=self.token_in,
            token_out=self.token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            quote=quote,
        )


class ConversionPipeline:
    """Claims venue rewards and converts them into the base asset."""

    def __init__(
        self,
        wallet: TokenWallet,
        venue: YieldVenueAdapter,
        reward_route: ConversionRoute,
        native_route: ConversionRoute,
        final_routes: Dict[FinalHop, ConversionRoute],
        final_hop: FinalHop = FinalHop.POOL,
        min_claim_amount: int = 1,
    ):
        missing = [hop.value for hop in FinalHop if hop not in final_routes]
        if missing:
            raise ValueError(f"Missing final-hop routes: {missing}")
        if reward_route.token_out != native_route.token_out:
            raise ValueError("Reward and native routes must both end in the secondary asset")
        for hop, route in final_routes.items():
            if route.token_in != reward_route.token_out:
                raise ValueError(f"Final route {hop.value} must start from {reward_route.token_out}")

        self.wallet = wallet
        self.venue = venue
        self.reward_route = reward_route
        self.native_route = native_route
        self.final_routes = final_routes
        self.final_hop = final_hop
        self.min_claim_amount = min_claim_amount

    @classmethod
    def from_settings(
        cls,
        settings: StrategySettings,
        wallet: TokenWallet,
        venue: YieldVenueAdapter,
        router: SwapRouter,
        pool: StableSwapPool,
        clock: Callable[[], float] = time.time,
    ) -> "ConversionPipeline":
        """Wire the standard four-step pipeline from strategy settings."""
        deadline = settings.swap_deadline_seconds
        reward_route = ConversionRoute(
            "reward_a_to_secondary",
            RouterPathLeg(
                router,
                SwapPath(
                    (settings.reward_a, settings.bridge_asset, settings.secondary_asset),
                    (settings.reward_a_fee, settings.bridge_fee),
                ),
                wallet.address,
                deadline,
                clock,
            ),
            wallet,
        )
        native_route = ConversionRoute(
            "native_to_secondary",
            RouterSingleLeg(
                router,
                settings.wrapped_native,
                settings.secondary_asset,
                settings.native_fee,
                wallet.address,
                deadline,
                native_in=True,
                clock=clock,
            ),
            wallet,
        )
        final_routes = {
            FinalHop.POOL: ConversionRoute(
                "secondary_to_base_pool",
                PoolLeg(
                    pool,
                    settings.secondary_asset,
                    settings.base_asset,
                    settings.pool_in_index,
                    settings.pool_out_index,
                ),
                wallet,
                tolerance_bps=settings.pool_slippage_bps,
            ),
            FinalHop.ROUTER: ConversionRoute(
                "secondary_to_base_router",
                RouterSingleLeg(
                    router,
                    settings.secondary_asset,
                    settings.base_asset,
                    settings.final_hop_fee,
                    wallet.address,
                    deadline,
                    clock=clock,
                ),
                wallet,
            ),
        }
        return cls(
            wallet,
            venue,
            reward_route,
            native_route,
            final_routes,
            final_hop=settings.final_hop,
            min_claim_amount=settings.min_claim_amount,
        )

    def claim_and_convert(self) -> PipelineReport:
        """
        Run one claim-and-convert pass.

        Returns:
            PipelineReport listing the swaps actually executed
        """
        # Read once: a selector change applies to the next run, not this one
        final_hop = self.final_hop
        report = PipelineReport(claimed=self._force_claim(), final_hop=final_hop)

        reward_balance = self.wallet.balance_of(self.reward_route.token_in)
        if reward_balance > 0:
            report.conversions.append(self.reward_route.convert(reward_balance))

        native_balance = self.wallet.native_balance()
        if native_balance > 0:
            report.conversions.append(self.native_route.convert(native_balance))

        final_route = self.final_routes[final_hop]
        secondary_balance = self.wallet.balance_of(final_route.token_in)
        if secondary_balance > 0:
            report.conversions.append(final_route.convert(secondary_balance))

        logger.info(
            f"Pipeline done: claimed={report.claimed}, swaps={report.swap_count}, "
            f"final hop={final_hop.value}"
        )
        return report

    def _force_claim(self) -> bool:
        """The venue settles rewards only on a withdrawal, however small."""
        if self.venue.recoverable_balance() == 0:
            return False
        self.venue.withdraw(self.min_claim_amount)
        return True
