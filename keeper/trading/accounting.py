"""
Accounting: what the strategy's holdings are worth in base-asset terms.

estimated_total_assets() values everything, including rewards not yet
converted and secondary asset left idle by an interrupted conversion.
post_conversion_value() is the narrower figure used for profit/loss right
after the conversion pipeline has run, when rewards are expected to be zero
and are deliberately left out.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from keeper.core.interfaces import StableSwapPool, TokenWallet
from keeper.services.valuation import NATIVE, ValuationOracle
from keeper.trading.venue import Position, YieldVenueAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdleBalances:
    """Balances held directly by the strategy wallet."""
    base: int
    reward_a: int
    native: int
    secondary: int


class AccountingModule:
    """Read-only valuation of the strategy's holdings."""

    def __init__(
        self,
        wallet: TokenWallet,
        venue: YieldVenueAdapter,
        oracle: ValuationOracle,
        base_asset: str,
        reward_a: str,
        secondary_asset: str,
        secondary_pool: Optional[StableSwapPool] = None,
        secondary_indices: Tuple[int, int] = (1, 0),
    ):
        """
        Args:
            secondary_pool: Pool quoting secondary -> base, used when the
                oracle has no feed for the secondary asset
            secondary_indices: (i, j) coin indices of that pool
        """
        self.wallet = wallet
        self.venue = venue
        self.oracle = oracle
        self.base_asset = base_asset
        self.reward_a = reward_a
        self.secondary_asset = secondary_asset
        self.secondary_pool = secondary_pool
        self.secondary_indices = secondary_indices

    def idle_balances(self) -> IdleBalances:
        return IdleBalances(
            base=self.wallet.balance_of(self.base_asset),
            reward_a=self.wallet.balance_of(self.reward_a),
            native=self.wallet.native_balance(),
            secondary=self.wallet.balance_of(self.secondary_asset),
        )

    def position(self) -> Position:
        return self.venue.position()

    def estimated_total_assets(self) -> int:
        """
        Idle base + recoverable principal + value of reward A, native gains
        and idle secondary asset.

        Reward A is valued only when the oracle has a feed for it. Prices
        that cannot be read raise PriceUnavailableError.
        """
        idle = self.idle_balances()
        position = self.position()

        native_total = idle.native + position.pending_reward_b
        total = idle.base + position.principal + self.oracle.value_of(NATIVE, native_total)

        reward_a_total = idle.reward_a + position.pending_reward_a
        if self.oracle.supports(self.reward_a):
            total += self.oracle.value_of(self.reward_a, reward_a_total)
        elif reward_a_total > 0:
            logger.debug(f"No feed for reward asset {self.reward_a}, {reward_a_total} units carried at zero")

        return total + self.secondary_value(idle.secondary)

    def secondary_value(self, amount: int) -> int:
        """
        Base-asset value of amount units of the secondary asset.

        An oracle feed takes precedence; otherwise the pool's get_dy quote
        for the full amount is used.
        """
        if amount == 0:
            return 0
        if self.oracle.supports(self.secondary_asset):
            return self.oracle.value_of(self.secondary_asset, amount)
        if self.secondary_pool is not None:
            i, j = self.secondary_indices
            return self.secondary_pool.get_dy(i, j, amount)
        logger.debug(f"No valuation for secondary asset {self.secondary_asset}, {amount} units carried at zero")
        return 0

    def post_conversion_value(self) -> int:
        """Idle base plus recoverable principal."""
        return self.wallet.balance_of(self.base_asset) + self.venue.recoverable_balance()
