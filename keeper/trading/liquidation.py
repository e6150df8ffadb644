"""
Liquidation planning: turning a requested amount into venue withdrawals.

The planner only ever withdraws principal. It never converts rewards, so a
withdrawal request cannot be front-run through a swap. Whatever cannot be
produced from idle balance plus recoverable principal is a realized loss.
"""

import logging
from dataclasses import dataclass

from keeper.core.interfaces import TokenWallet
from keeper.logging_config import get_activity_logger
from keeper.trading.venue import YieldVenueAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidationResult:
    liquidated: int
    loss: int

    def __iter__(self):
        # Allows `liquidated, loss = planner.liquidate(...)`
        return iter((self.liquidated, self.loss))


class LiquidationPlanner:
    """Decides how much to withdraw from the venue to cover a request."""

    def __init__(self, venue: YieldVenueAdapter, wallet: TokenWallet, base_asset: str):
        self.venue = venue
        self.wallet = wallet
        self.base_asset = base_asset
        self.activity = get_activity_logger()

    def liquidate(self, amount_needed: int) -> LiquidationResult:
        """
        Free up amount_needed of the base asset.

        Args:
            amount_needed: Base-asset amount the caller wants available

        Returns:
            LiquidationResult(liquidated, loss) with liquidated + loss == amount_needed
        """
        if amount_needed < 0:
            raise ValueError(f"amount_needed must be non-negative, got {amount_needed}")

        idle = self.wallet.balance_of(self.base_asset)
        if idle >= amount_needed:
            logger.debug(f"Idle balance {idle} covers {amount_needed}, no withdrawal")
            return LiquidationResult(liquidated=amount_needed, loss=0)

        shortfall = amount_needed - idle
        recoverable = self.venue.recoverable_balance()
        to_withdraw = min(shortfall, recoverable)
        if to_withdraw > 0:
            self.venue.withdraw(to_withdraw)

        idle = self.wallet.balance_of(self.base_asset)
        if idle < amount_needed:
            result = LiquidationResult(liquidated=idle, loss=amount_needed - idle)
        else:
            result = LiquidationResult(liquidated=amount_needed, loss=0)

        self.activity.log_liquidation(amount_needed, result.liquidated, result.loss)
        return result
