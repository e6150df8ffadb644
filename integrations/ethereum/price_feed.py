"""
On-chain price feeds.

LiquityPriceFeed reads the last good ETH/USD price the protocol itself uses.
ChainlinkPriceFeed reads an aggregator, scales its answer to a wad and
rejects answers older than max_age_seconds.
"""

import logging
import time
from typing import Callable

from integrations.ethereum.abis import CHAINLINK_AGGREGATOR_ABI, LIQUITY_PRICE_FEED_ABI
from integrations.ethereum.client import EthereumClient
from keeper.core.errors import ExternalCallError, PriceUnavailableError, StalePriceError
from keeper.core.interfaces import PriceFeed

logger = logging.getLogger(__name__)


class LiquityPriceFeed(PriceFeed):
    def __init__(self, client: EthereumClient, address: str, name: str = "liquity-price-feed"):
        self.client = client
        self.name = name
        self.contract = client.contract(address, LIQUITY_PRICE_FEED_ABI)

    def last_price(self) -> int:
        try:
            return self.client.call(self.contract.functions.lastGoodPrice())
        except ExternalCallError as e:
            raise PriceUnavailableError(f"{self.name}: {e}") from e


class ChainlinkPriceFeed(PriceFeed):
    def __init__(
        self,
        client: EthereumClient,
        address: str,
        max_age_seconds: int = 3600,
        name: str = "chainlink",
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.name = name
        self.max_age_seconds = max_age_seconds
        self.clock = clock
        self.contract = client.contract(address, CHAINLINK_AGGREGATOR_ABI)
        self._decimals = None

    def decimals(self) -> int:
        if self._decimals is None:
            self._decimals = self.client.call(self.contract.functions.decimals())
        return self._decimals

    def last_price(self) -> int:
        try:
            _, answer, _, updated_at, _ = self.client.call(self.contract.functions.latestRoundData())
            decimals = self.decimals()
        except ExternalCallError as e:
            raise PriceUnavailableError(f"{self.name}: {e}") from e

        if answer <= 0:
            raise PriceUnavailableError(f"{self.name} answered {answer}")

        age = int(self.clock()) - updated_at
        if age > self.max_age_seconds:
            raise StalePriceError(self.name, age, self.max_age_seconds)

        return answer * 10 ** (18 - decimals) if decimals <= 18 else answer // 10 ** (decimals - 18)
