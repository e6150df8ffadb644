"""
Rollback on a development node (anvil, hardhat, ganache) through
evm_snapshot/evm_revert. Mainnet has no equivalent; use NullCheckpoint there.
"""

import logging
from typing import Any

from web3 import Web3

from keeper.core.checkpoint import Checkpoint
from keeper.core.errors import ExternalCallError

logger = logging.getLogger(__name__)


class EvmSnapshotCheckpoint(Checkpoint):
    def __init__(self, w3: Web3):
        self.w3 = w3

    def snapshot(self) -> Any:
        response = self.w3.provider.make_request("evm_snapshot", [])
        if "error" in response:
            raise ExternalCallError(f"evm_snapshot failed: {response['error']}")
        return response["result"]

    def restore(self, token: Any) -> None:
        response = self.w3.provider.make_request("evm_revert", [token])
        if "error" in response or not response.get("result"):
            raise ExternalCallError(f"evm_revert to {token} failed: {response.get('error')}")
        logger.info(f"Reverted node state to snapshot {token}")
