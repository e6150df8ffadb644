"""
Valuation of non-base holdings in base-asset terms.

Each asset has a primary price feed and optionally a fallback feed. The
fallback is only consulted when the primary cannot produce a usable price;
when neither can, PriceUnavailableError reaches the caller. Callers never
substitute an approximate value themselves.
"""

import logging
from typing import Dict, Optional

from keeper.core.errors import PriceUnavailableError
from keeper.core.interfaces import PriceFeed, WAD

logger = logging.getLogger(__name__)

NATIVE = "native"


class ValuationOracle:
    """
    Prices assets through injected feeds.

    Keys of the feed mappings are asset addresses, plus NATIVE for the
    chain's native currency.
    """

    def __init__(
        self,
        feeds: Dict[str, PriceFeed],
        fallbacks: Optional[Dict[str, PriceFeed]] = None,
    ):
        """
        Args:
            feeds: Primary feed per asset
            fallbacks: Optional secondary feed per asset
        """
        if NATIVE not in feeds:
            raise ValueError("A native-currency price feed is required")
        self.feeds = {self._key(asset): feed for asset, feed in feeds.items()}
        self.fallbacks = {self._key(asset): feed for asset, feed in (fallbacks or {}).items()}

    @staticmethod
    def _key(asset: str) -> str:
        return asset if asset == NATIVE else asset.lower()

    def supports(self, asset: str) -> bool:
        """True if a primary feed is configured for asset."""
        return self._key(asset) in self.feeds

    def price_of(self, asset: str) -> int:
        """
        Current price of asset as a wad.

        Raises:
            PriceUnavailableError: if no configured feed yields a positive price
        """
        key = self._key(asset)
        primary = self.feeds.get(key)
        if primary is None:
            raise PriceUnavailableError(f"No price feed configured for {asset}")

        try:
            return self._read(primary)
        except PriceUnavailableError as e:
            fallback = self.fallbacks.get(key)
            if fallback is None:
                raise
            logger.warning(f"Primary feed {primary.name} unusable ({e}), trying {fallback.name}")
            return self._read(fallback)

    @staticmethod
    def _read(feed: PriceFeed) -> int:
        price = feed.last_price()
        if price <= 0:
            raise PriceUnavailableError(f"Feed {feed.name} returned non-positive price {price}")
        return price

    def value_of(self, asset: str, amount: int) -> int:
        """Base-asset value of amount units of asset; zero never touches a feed."""
        if amount == 0:
            return 0
        return amount * self.price_of(asset) // WAD

    def native_to_base(self, amount: int) -> int:
        return self.value_of(NATIVE, amount)
