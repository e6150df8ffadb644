"""Deposit/withdraw/query wrapper around the yield venue."""

import logging
from dataclasses import dataclass

from keeper.core.errors import InsufficientBalanceError
from keeper.core.interfaces import TokenWallet, YieldVenue
from keeper.core.wallet import ensure_allowance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """The strategy's stake in the venue, as the venue reports it."""
    principal: int
    pending_reward_a: int
    pending_reward_b: int


class YieldVenueAdapter:
    """
    Binds the venue's depositor-keyed calls to the strategy wallet.

    No business logic lives here: withdrawals are passed through and capped
    by the venue itself.
    """

    def __init__(self, venue: YieldVenue, wallet: TokenWallet, base_asset: str, referrer: str):
        self.venue = venue
        self.wallet = wallet
        self.base_asset = base_asset
        self.referrer = referrer

    def deposit(self, amount: int) -> None:
        """
        Deposit amount of the base asset.

        Raises:
            InsufficientBalanceError: if the wallet holds less than amount
        """
        idle = self.wallet.balance_of(self.base_asset)
        if amount > idle:
            raise InsufficientBalanceError(f"Cannot deposit {amount}, wallet holds {idle}")
        if self.venue.spender:
            ensure_allowance(self.wallet, self.base_asset, self.venue.spender, amount)
        logger.info(f"Depositing {amount} into yield venue")
        self.venue.provide_to_pool(amount, self.referrer)

    def withdraw(self, amount: int) -> None:
        logger.info(f"Withdrawing {amount} from yield venue")
        self.venue.withdraw_from_pool(amount)

    def recoverable_balance(self) -> int:
        return self.venue.get_compounded_deposit(self.wallet.address)

    def pending_reward_a(self) -> int:
        return self.venue.get_depositor_reward_a_gain(self.wallet.address)

    def pending_reward_b(self) -> int:
        return self.venue.get_depositor_reward_b_gain(self.wallet.address)

    def position(self) -> Position:
        return Position(
            principal=self.recoverable_balance(),
            pending_reward_a=self.pending_reward_a(),
            pending_reward_b=self.pending_reward_b(),
        )
