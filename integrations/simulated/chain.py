"""
In-memory chain: token balances, native balances, allowances and a
transaction log, with snapshot/restore.

Simulated venues keep their own state in a `state` dict and register with
the chain so one snapshot covers everything.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple

from keeper.core.checkpoint import Checkpoint
from keeper.core.errors import ExternalCallError
from keeper.core.interfaces import MAX_UINT256, TokenWallet

logger = logging.getLogger(__name__)


def _k(address: str) -> str:
    return address.lower()


@dataclass(frozen=True)
class Transaction:
    """One state-changing call, as recorded by the chain."""
    sender: str
    target: str
    method: str
    args: Dict[str, Any] = field(default_factory=dict)


class SimulatedComponent:
    """Mixin for simulated contracts whose mutable state lives in self.state."""

    state: Dict[str, Any]


class SimulatedChain(Checkpoint):
    """Balances and allowances of every account, plus registered components."""

    def __init__(self, timestamp: int = 1_700_000_000):
        self.timestamp = timestamp
        self.balances: Dict[str, Dict[str, int]] = {}
        self.native: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.transactions: List[Transaction] = []
        self.failures: Set[str] = set()
        self.components: List[SimulatedComponent] = []

    # Checkpoint

    def snapshot(self) -> Any:
        return copy.deepcopy((
            self.timestamp,
            self.balances,
            self.native,
            self.allowances,
            self.transactions,
            [component.state for component in self.components],
        ))

    def restore(self, token: Any) -> None:
        timestamp, balances, native, allowances, transactions, states = copy.deepcopy(token)
        self.timestamp = timestamp
        self.balances = balances
        self.native = native
        self.allowances = allowances
        self.transactions = transactions
        for component, state in zip(self.components, states):
            component.state = state
        logger.debug("Simulated chain restored to snapshot")

    def register(self, component: SimulatedComponent) -> None:
        self.components.append(component)

    # Transactions

    def record(self, sender: str, target: str, method: str, **args) -> None:
        """
        Log a state-changing call.

        Raises:
            ExternalCallError: if the method was marked to fail with fail()
        """
        if method in self.failures:
            raise ExternalCallError(f"Simulated revert in {method}")
        self.transactions.append(Transaction(sender, target, method, args))

    def fail(self, method: str) -> None:
        """Make every later call to method revert."""
        self.failures.add(method)

    def heal(self, method: str) -> None:
        self.failures.discard(method)

    def advance(self, seconds: int) -> None:
        self.timestamp += seconds

    # Tokens

    def balance_of(self, token: str, holder: str) -> int:
        return self.balances.get(_k(token), {}).get(_k(holder), 0)

    def mint(self, token: str, holder: str, amount: int) -> None:
        holders = self.balances.setdefault(_k(token), {})
        holders[_k(holder)] = holders.get(_k(holder), 0) + amount

    def burn(self, token: str, holder: str, amount: int) -> None:
        self._debit(token, holder, amount)

    def _debit(self, token: str, holder: str, amount: int) -> None:
        balance = self.balance_of(token, holder)
        if balance < amount:
            raise ExternalCallError(f"{holder} holds {balance} of {token}, needs {amount}")
        self.balances[_k(token)][_k(holder)] = balance - amount

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        self._debit(token, sender, amount)
        self.mint(token, recipient, amount)

    def transfer_from(self, token: str, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(token, owner, spender)
        if allowed < amount:
            raise ExternalCallError(
                f"Insufficient allowance: {spender} may spend {allowed} of {owner}'s {token}, needs {amount}"
            )
        self.transfer(token, owner, recipient, amount)
        if allowed != MAX_UINT256:
            self.allowances[(_k(token), _k(owner), _k(spender))] = allowed - amount

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        self.allowances[(_k(token), _k(owner), _k(spender))] = amount

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self.allowances.get((_k(token), _k(owner), _k(spender)), 0)

    # Native currency

    def native_balance_of(self, holder: str) -> int:
        return self.native.get(_k(holder), 0)

    def deal_native(self, holder: str, amount: int) -> None:
        self.native[_k(holder)] = self.native_balance_of(holder) + amount

    def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.native_balance_of(sender)
        if balance < amount:
            raise ExternalCallError(f"{sender} holds {balance} native, needs {amount}")
        self.native[_k(sender)] = balance - amount
        self.deal_native(recipient, amount)


class SimulatedWallet(TokenWallet):
    """TokenWallet over a SimulatedChain account."""

    def __init__(self, chain: SimulatedChain, address: str, gas_reserve: int = 0):
        self.chain = chain
        self.address = address
        self.gas_reserve = gas_reserve

    def balance_of(self, token: str) -> int:
        return self.chain.balance_of(token, self.address)

    def native_balance(self) -> int:
        return max(0, self.chain.native_balance_of(self.address) - self.gas_reserve)

    def allowance(self, token: str, spender: str) -> int:
        return self.chain.allowance(token, self.address, spender)

    def approve(self, token: str, spender: str, amount: int) -> None:
        self.chain.record(self.address, token, "approve", spender=spender, amount=amount)
        self.chain.approve(token, self.address, spender, amount)

    def transfer_native(self, recipient: str, amount: int) -> None:
        self.chain.record(self.address, recipient, "transfer_native", amount=amount)
        self.chain.transfer_native(self.address, recipient, amount)
