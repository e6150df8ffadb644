"""
Live venue adapters: Liquity stability pool, Uniswap v3 router, Curve pool
and a Yearn-style vault.

Transactions do not return values to an off-chain caller, so swap outputs
are measured as the recipient's balance change across the transaction.
"""

import logging
from dataclasses import replace

from web3 import Web3

from integrations.ethereum.abis import (
    CURVE_POOL_ABI,
    STABILITY_POOL_ABI,
    SWAP_ROUTER_ABI,
    VAULT_ABI,
)
from integrations.ethereum.client import EthereumClient, token_balance
from keeper.core.interfaces import (
    ExactInputSingleParams,
    StableSwapPool,
    SwapPath,
    SwapRouter,
    TokenWallet,
    VaultLink,
    YieldVenue,
)
from keeper.core.wallet import ensure_allowance

logger = logging.getLogger(__name__)


class LiquityStabilityPool(YieldVenue):
    """Liquity v1 StabilityPool; LUSD is burned on deposit, no allowance needed."""

    spender = None

    def __init__(self, client: EthereumClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, STABILITY_POOL_ABI)

    def provide_to_pool(self, amount: int, referrer: str) -> None:
        self.client.transact(
            self.contract.functions.provideToSP(amount, Web3.to_checksum_address(referrer))
        )

    def withdraw_from_pool(self, amount: int) -> None:
        self.client.transact(self.contract.functions.withdrawFromSP(amount))

    def get_compounded_deposit(self, who: str) -> int:
        return self.client.call(
            self.contract.functions.getCompoundedLUSDDeposit(Web3.to_checksum_address(who))
        )

    def get_depositor_reward_a_gain(self, who: str) -> int:
        return self.client.call(
            self.contract.functions.getDepositorLQTYGain(Web3.to_checksum_address(who))
        )

    def get_depositor_reward_b_gain(self, who: str) -> int:
        return self.client.call(
            self.contract.functions.getDepositorETHGain(Web3.to_checksum_address(who))
        )


class UniswapV3Router(SwapRouter):
    """Uniswap v3 SwapRouter."""

    def __init__(self, client: EthereumClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, SWAP_ROUTER_ABI)

    def exact_input(self, path: SwapPath, recipient: str, deadline: int, amount_in: int, min_out: int) -> int:
        before = token_balance(self.client, path.token_out, recipient)
        params = (path.encode(), Web3.to_checksum_address(recipient), deadline, amount_in, min_out)
        self.client.transact(self.contract.functions.exactInput(params))
        return token_balance(self.client, path.token_out, recipient) - before

    def exact_input_single(self, params: ExactInputSingleParams, value: int = 0) -> int:
        """
        Swap through one pool. With value, the swap and refundETH go out as
        one multicall transaction.
        """
        before = token_balance(self.client, params.token_out, params.recipient)
        args = replace(
            params,
            token_in=Web3.to_checksum_address(params.token_in),
            token_out=Web3.to_checksum_address(params.token_out),
            recipient=Web3.to_checksum_address(params.recipient),
        ).as_tuple()

        if value:
            calls = [
                self.contract.encode_abi("exactInputSingle", args=[args]),
                self.contract.encode_abi("refundETH", args=[]),
            ]
            fn = self.contract.functions.multicall([Web3.to_bytes(hexstr=call) for call in calls])
        else:
            fn = self.contract.functions.exactInputSingle(args)

        self.client.transact(fn, value=value)
        return token_balance(self.client, params.token_out, params.recipient) - before


class CurvePool(StableSwapPool):
    """
    Curve pool. With underlying=True (metapools) quotes and swaps go through
    get_dy_underlying/exchange_underlying.
    """

    def __init__(self, client: EthereumClient, address: str, underlying: bool = True):
        self.client = client
        self.address = address
        self.underlying = underlying
        self.contract = client.contract(address, CURVE_POOL_ABI)
        self._coins = {}

    def coin(self, index: int, token: str) -> None:
        """Register the token at index so exchange() can measure its output."""
        self._coins[index] = token

    def get_dy(self, i: int, j: int, dx: int) -> int:
        fn = self.contract.functions.get_dy_underlying if self.underlying else self.contract.functions.get_dy
        return self.client.call(fn(i, j, dx))

    def exchange(self, i: int, j: int, dx: int, min_dy: int) -> int:
        fn = self.contract.functions.exchange_underlying if self.underlying else self.contract.functions.exchange
        token_out = self._coins.get(j)
        if token_out is None:
            raise ValueError(f"Coin {j} of pool {self.address} is not registered")
        before = token_balance(self.client, token_out, self.client.address)
        self.client.transact(fn(i, j, dx, min_dy))
        return token_balance(self.client, token_out, self.client.address) - before


class YearnVaultLink(VaultLink):
    """
    Yearn v2 style vault. report() pulls profit + debt payment with
    transferFrom, so the vault is approved for the base asset first.
    """

    def __init__(self, client: EthereumClient, wallet: TokenWallet, address: str, base_asset: str):
        self.client = client
        self.wallet = wallet
        self.address = address
        self.base_asset = base_asset
        self.contract = client.contract(address, VAULT_ABI)

    def total_debt(self) -> int:
        params = self.client.call(self.contract.functions.strategies(self.client.address))
        return params[6]

    def debt_outstanding(self) -> int:
        return self.client.call(self.contract.functions.debtOutstanding(self.client.address))

    def report(self, profit: int, loss: int, debt_payment: int) -> int:
        ensure_allowance(self.wallet, self.base_asset, self.address, profit + debt_payment)
        self.client.transact(self.contract.functions.report(profit, loss, debt_payment))
        outstanding = self.debt_outstanding()
        logger.info(f"Vault report mined: profit={profit}, loss={loss}, debt_payment={debt_payment}")
        return outstanding
