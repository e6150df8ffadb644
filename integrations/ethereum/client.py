"""
Ethereum client for the harvest keeper.

Wraps a web3 connection and a signing account:
- Contract construction from minimal ABIs
- Read calls with web3 errors mapped to ExternalCallError
- Transaction build, sign, submit and confirmation, single attempt
- The TokenWallet view of the signing account
"""

import logging
from typing import Any, Dict

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from integrations.ethereum.abis import ERC20_ABI
from keeper.core.errors import ExternalCallError
from keeper.core.interfaces import TokenWallet

logger = logging.getLogger(__name__)


class EthereumClient:
    """web3 connection plus the account that signs for the strategy."""

    def __init__(
        self,
        w3: Web3,
        private_key: str,
        receipt_timeout: int = 120,
    ):
        """
        Initialize the client.

        Args:
            w3: Connected Web3 instance
            private_key: Hex private key of the strategy account
            receipt_timeout: Seconds to wait for a transaction receipt
        """
        self.w3 = w3
        self.account = Account.from_key(private_key)
        self.address = self.account.address
        self.receipt_timeout = receipt_timeout

        logger.info(f"Ethereum client ready for account {self.address}")

    @classmethod
    def from_rpc_url(cls, rpc_url: str, private_key: str, **kwargs) -> "EthereumClient":
        return cls(Web3(Web3.HTTPProvider(rpc_url)), private_key, **kwargs)

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call(self, fn) -> Any:
        """
        Execute a read-only contract call.

        Raises:
            ExternalCallError: if the node or the contract rejects the call
        """
        try:
            return fn.call()
        except (ContractLogicError, Web3Exception, ValueError) as e:
            raise ExternalCallError(f"Call {fn.fn_name} failed: {e}") from e

    def transact(self, fn, value: int = 0) -> Dict[str, Any]:
        """
        Build, sign and submit a contract transaction, then wait for it.

        Args:
            fn: Bound contract function
            value: Native currency sent along, in wei

        Returns:
            Transaction receipt

        Raises:
            ExternalCallError: if submission fails or the transaction reverts
        """
        try:
            tx = fn.build_transaction({
                "from": self.address,
                "value": value,
                "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
            })
            return self._send(tx, fn.fn_name)
        except ContractLogicError as e:
            raise ExternalCallError(f"{fn.fn_name} would revert: {e}") from e
        except (Web3Exception, ValueError, ConnectionError) as e:
            # Not retried here; the caller re-invokes the whole entry point
            raise ExternalCallError(f"{fn.fn_name} submission failed: {e}") from e

    def send_native(self, recipient: str, amount: int) -> Dict[str, Any]:
        tx = {
            "from": self.address,
            "to": Web3.to_checksum_address(recipient),
            "value": amount,
            "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
            "gas": 21000,
            "gasPrice": self.w3.eth.gas_price,
            "chainId": self.w3.eth.chain_id,
        }
        try:
            return self._send(tx, "transfer_native")
        except (Web3Exception, ValueError) as e:
            raise ExternalCallError(f"Native transfer failed: {e}") from e

    def _send(self, tx: Dict[str, Any], label: str) -> Dict[str, Any]:
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"{label} submitted: {tx_hash.hex()}")

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            raise ExternalCallError(f"{label} not confirmed within {self.receipt_timeout}s") from e

        if receipt["status"] != 1:
            raise ExternalCallError(f"{label} reverted in {tx_hash.hex()}")
        logger.info(f"{label} confirmed in block {receipt['blockNumber']}, gas used {receipt['gasUsed']}")
        return receipt


class EvmWallet(TokenWallet):
    """
    TokenWallet over an externally owned account.

    native_balance() holds back gas_reserve_wei so swapping the full
    spendable balance never strands the account without gas.
    """

    def __init__(self, client: EthereumClient, gas_reserve_wei: int = 0):
        self.client = client
        self.address = client.address
        self.gas_reserve_wei = gas_reserve_wei
        self._tokens: Dict[str, Any] = {}

    def token(self, address: str):
        key = address.lower()
        if key not in self._tokens:
            self._tokens[key] = self.client.contract(address, ERC20_ABI)
        return self._tokens[key]

    def balance_of(self, token: str) -> int:
        return self.client.call(self.token(token).functions.balanceOf(self.address))

    def native_balance(self) -> int:
        try:
            balance = self.client.w3.eth.get_balance(self.address)
        except (Web3Exception, ValueError) as e:
            raise ExternalCallError(f"Could not read native balance: {e}") from e
        return max(0, balance - self.gas_reserve_wei)

    def allowance(self, token: str, spender: str) -> int:
        return self.client.call(
            self.token(token).functions.allowance(self.address, Web3.to_checksum_address(spender))
        )

    def approve(self, token: str, spender: str, amount: int) -> None:
        self.client.transact(
            self.token(token).functions.approve(Web3.to_checksum_address(spender), amount)
        )

    def transfer_native(self, recipient: str, amount: int) -> None:
        self.client.send_native(recipient, amount)


def token_balance(client: EthereumClient, token: str, holder: str) -> int:
    """Balance of any holder, used to measure swap output from balance deltas."""
    contract = client.contract(token, ERC20_ABI)
    return client.call(contract.functions.balanceOf(Web3.to_checksum_address(holder)))

