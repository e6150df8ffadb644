"""
Capability interfaces for everything the keeper talks to.

The strategy never reaches a contract or an API directly: it is handed
objects implementing these interfaces at construction time. Live
implementations are in integrations.ethereum, in-memory ones in
integrations.simulated.

Amounts are ints in the asset's smallest unit. Prices are wads
(base-asset units per 10**18 units of the priced asset).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple


WAD = 10 ** 18
MAX_UINT256 = 2 ** 256 - 1
BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class SwapPath:
    """
    A router path: tokens joined by pool fee tiers.

    SwapPath(("A", "B", "C"), (3000, 500)) reads A -(0.3%)-> B -(0.05%)-> C.
    """
    tokens: Tuple[str, ...]
    fees: Tuple[int, ...]

    def __post_init__(self):
        if len(self.tokens) < 2:
            raise ValueError("A swap path needs at least two tokens")
        if len(self.fees) != len(self.tokens) - 1:
            raise ValueError(
                f"Path with {len(self.tokens)} tokens needs {len(self.tokens) - 1} fees, "
                f"got {len(self.fees)}"
            )

    @property
    def token_in(self) -> str:
        return self.tokens[0]

    @property
    def token_out(self) -> str:
        return self.tokens[-1]

    def encode(self) -> bytes:
        """Packed encoding: address(20) fee(3) address(20) ..."""
        encoded = b""
        for token, fee in zip(self.tokens, self.fees):
            encoded += _address_bytes(token) + fee.to_bytes(3, "big")
        return encoded + _address_bytes(self.tokens[-1])


def _address_bytes(address: str) -> bytes:
    raw = bytes.fromhex(address[2:] if address.startswith("0x") else address)
    if len(raw) != 20:
        raise ValueError(f"Not a 20-byte address: {address}")
    return raw


@dataclass(frozen=True)
class ExactInputSingleParams:
    """Parameters of a single-pool exact-input swap."""
    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_in: int
    amount_out_minimum: int
    sqrt_price_limit_x96: int = 0

    def as_tuple(self) -> tuple:
        return (
            self.token_in,
            self.token_out,
            self.fee,
            self.recipient,
            self.deadline,
            self.amount_in,
            self.amount_out_minimum,
            self.sqrt_price_limit_x96,
        )


class TokenWallet(ABC):
    """The account holding the strategy's idle balances."""

    address: str

    @abstractmethod
    def balance_of(self, token: str) -> int:
        """Token balance held by this wallet."""
        pass

    @abstractmethod
    def native_balance(self) -> int:
        """Spendable native-currency balance."""
        pass

    @abstractmethod
    def allowance(self, token: str, spender: str) -> int:
        pass

    @abstractmethod
    def approve(self, token: str, spender: str, amount: int) -> None:
        pass

    @abstractmethod
    def transfer_native(self, recipient: str, amount: int) -> None:
        pass


class YieldVenue(ABC):
    """
    Stability-pool style yield venue.

    Withdrawals are capped by the venue to the compounded deposit. Any
    deposit or withdrawal also pays out the depositor's pending gains.
    """

    # Address that must be approved to pull the base asset on deposit,
    # None when the venue takes it without an allowance.
    spender: Optional[str] = None

    @abstractmethod
    def provide_to_pool(self, amount: int, referrer: str) -> None:
        pass

    @abstractmethod
    def withdraw_from_pool(self, amount: int) -> None:
        pass

    @abstractmethod
    def get_compounded_deposit(self, who: str) -> int:
        pass

    @abstractmethod
    def get_depositor_reward_a_gain(self, who: str) -> int:
        pass

    @abstractmethod
    def get_depositor_reward_b_gain(self, who: str) -> int:
        pass


class SwapRouter(ABC):
    """Path-based exchange router."""

    address: str

    @abstractmethod
    def exact_input(
        self,
        path: SwapPath,
        recipient: str,
        deadline: int,
        amount_in: int,
        min_out: int,
    ) -> int:
        """Swap along a multi-hop path; returns the amount received."""
        pass

    @abstractmethod
    def exact_input_single(self, params: ExactInputSingleParams, value: int = 0) -> int:
        """
        Swap through one pool; returns the amount received.

        When value is nonzero the input is paid in native currency,
        params.token_in must be the wrapped native token and any native
        currency the swap did not spend is refunded within the same call.
        """
        pass


class StableSwapPool(ABC):
    """Pool-style exchange quoting with get_dy and swapping with exchange."""

    address: str

    @abstractmethod
    def get_dy(self, i: int, j: int, dx: int) -> int:
        pass

    @abstractmethod
    def exchange(self, i: int, j: int, dx: int, min_dy: int) -> int:
        pass


class PriceFeed(ABC):
    """Source of one asset's price in base-asset terms."""

    name: str = "price-feed"

    @abstractmethod
    def last_price(self) -> int:
        """
        Most recent price as a wad.

        Raises:
            PriceUnavailableError: if the feed cannot produce a usable price
        """
        pass


class VaultLink(ABC):
    """The upstream vault as seen by one strategy."""

    @abstractmethod
    def total_debt(self) -> int:
        """Base-asset amount the vault has lent to this strategy."""
        pass

    @abstractmethod
    def debt_outstanding(self) -> int:
        """Amount the vault wants back now."""
        pass

    @abstractmethod
    def report(self, profit: int, loss: int, debt_payment: int) -> int:
        """Report a harvest; returns the new debt outstanding."""
        pass
