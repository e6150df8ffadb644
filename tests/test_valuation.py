"""Tests for ValuationOracle - feed selection, fallback and rejection of bad prices."""

import pytest
from hypothesis import given, strategies as st

from integrations.simulated.venues import SimulatedPriceFeed
from keeper.core.errors import PriceUnavailableError, StalePriceError
from keeper.core.interfaces import WAD
from keeper.services.valuation import NATIVE, ValuationOracle

LQTY = "0x6DEA81C8171D0bA574754EF6F8b412F2Ed88c54D"


@pytest.fixture
def primary():
    return SimulatedPriceFeed("primary", 2_000 * WAD)


@pytest.fixture
def fallback():
    return SimulatedPriceFeed("fallback", 1_990 * WAD)


class TestValuationOracle:

    def test_native_feed_required(self):
        with pytest.raises(ValueError):
            ValuationOracle({LQTY: SimulatedPriceFeed("lqty", WAD)})

    def test_price_from_primary(self, primary, fallback):
        oracle = ValuationOracle({NATIVE: primary}, fallbacks={NATIVE: fallback})

        assert oracle.price_of(NATIVE) == 2_000 * WAD

    def test_fallback_when_primary_unavailable(self, primary, fallback):
        primary.unavailable = True
        oracle = ValuationOracle({NATIVE: primary}, fallbacks={NATIVE: fallback})

        assert oracle.price_of(NATIVE) == 1_990 * WAD

    def test_fallback_when_primary_stale(self, primary, fallback):
        primary.stale = True
        oracle = ValuationOracle({NATIVE: primary}, fallbacks={NATIVE: fallback})

        assert oracle.price_of(NATIVE) == 1_990 * WAD

    def test_stale_without_fallback_raises(self, primary):
        primary.stale = True
        oracle = ValuationOracle({NATIVE: primary})

        with pytest.raises(StalePriceError) as exc_info:
            oracle.price_of(NATIVE)

        assert exc_info.value.max_age_seconds == 3600

    def test_both_feeds_down_raises(self, primary, fallback):
        primary.unavailable = True
        fallback.unavailable = True
        oracle = ValuationOracle({NATIVE: primary}, fallbacks={NATIVE: fallback})

        with pytest.raises(PriceUnavailableError):
            oracle.price_of(NATIVE)

    def test_non_positive_price_rejected(self, primary):
        primary.price = 0
        oracle = ValuationOracle({NATIVE: primary})

        with pytest.raises(PriceUnavailableError):
            oracle.price_of(NATIVE)

    def test_unknown_asset(self, primary):
        oracle = ValuationOracle({NATIVE: primary})

        assert oracle.supports(LQTY) is False
        with pytest.raises(PriceUnavailableError):
            oracle.value_of(LQTY, 1)

    def test_asset_keys_ignore_case(self, primary):
        oracle = ValuationOracle({NATIVE: primary, LQTY: SimulatedPriceFeed("lqty", WAD)})

        assert oracle.supports(LQTY.lower())
        assert oracle.value_of(LQTY.upper().replace("0X", "0x"), 5 * WAD) == 5 * WAD

    def test_zero_amount_never_reads_feed(self, primary):
        primary.unavailable = True
        oracle = ValuationOracle({NATIVE: primary})

        assert oracle.value_of(NATIVE, 0) == 0

    @given(amount=st.integers(min_value=0, max_value=10 ** 30))
    def test_value_scales_by_price(self, amount):
        oracle = ValuationOracle({NATIVE: SimulatedPriceFeed("native", 2_000 * WAD)})

        assert oracle.native_to_base(amount) == amount * 2_000
