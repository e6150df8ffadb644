"""
A complete strategy deployment on the in-memory chain.

Token addresses are the mainnet ones so router paths encode exactly as they
would live; every other account is a fixed placeholder.
"""

from dataclasses import dataclass, replace
from typing import Optional

from integrations.simulated.chain import SimulatedChain, SimulatedWallet
from integrations.simulated.venues import (
    SimulatedPriceFeed,
    SimulatedRouter,
    SimulatedStabilityPool,
    SimulatedStableSwapPool,
    SimulatedVault,
)
from keeper.core.config import MAINNET_DEFAULTS, StrategySettings
from keeper.core.interfaces import WAD
from keeper.services.valuation import NATIVE, ValuationOracle
from strategies.stability_pool import StabilityPoolStrategy

STRATEGY_ADDRESS = "0x000000000000000000000000000000000000a11c"
OPERATOR_ADDRESS = "0x00000000000000000000000000000000000000b0"
VAULT_ADDRESS = "0x00000000000000000000000000000000000000fa"

BASE = MAINNET_DEFAULTS["BASE_ASSET_ADDRESS"]
REWARD_A = MAINNET_DEFAULTS["REWARD_A_ADDRESS"]
WRAPPED_NATIVE = MAINNET_DEFAULTS["WRAPPED_NATIVE_ADDRESS"]
SECONDARY = MAINNET_DEFAULTS["SECONDARY_ASSET_ADDRESS"]

# Default market: 1 ETH = 2000 USD, 1 LQTY = 1 USD, DAI ~ LUSD
NATIVE_PRICE = 2000 * WAD
REWARD_A_PRICE = 1 * WAD
REWARD_A_TO_NATIVE = WAD // 2000
SECONDARY_TO_BASE_POOL = WAD
SECONDARY_TO_BASE_ROUTER = 999 * WAD // 1000


def default_settings(**overrides) -> StrategySettings:
    settings = StrategySettings(
        name="SimulatedStabilityPoolHarvest",
        base_asset=BASE,
        reward_a=REWARD_A,
        bridge_asset=WRAPPED_NATIVE,
        wrapped_native=WRAPPED_NATIVE,
        secondary_asset=SECONDARY,
        operators=frozenset({OPERATOR_ADDRESS}),
    )
    return replace(settings, **overrides)


@dataclass
class SimulatedDeployment:
    chain: SimulatedChain
    wallet: SimulatedWallet
    venue: SimulatedStabilityPool
    router: SimulatedRouter
    pool: SimulatedStableSwapPool
    vault: SimulatedVault
    native_feed: SimulatedPriceFeed
    reward_feed: SimulatedPriceFeed
    oracle: ValuationOracle
    strategy: StabilityPoolStrategy

    @property
    def settings(self) -> StrategySettings:
        return self.strategy.settings


def deploy(
    settings: Optional[StrategySettings] = None,
    value_reward_a: bool = True,
    gas_reserve: int = 0,
) -> SimulatedDeployment:
    """
    Build chain, venues, vault and strategy, wired together.

    Args:
        settings: Strategy settings (default_settings() when omitted)
        value_reward_a: Whether the oracle gets a reward A feed
        gas_reserve: Native currency the wallet keeps back

    Returns:
        SimulatedDeployment with the strategy using the chain as checkpoint
    """
    settings = settings or default_settings()
    chain = SimulatedChain()
    wallet = SimulatedWallet(chain, STRATEGY_ADDRESS, gas_reserve=gas_reserve)

    venue = SimulatedStabilityPool(
        chain, MAINNET_DEFAULTS["STABILITY_POOL_ADDRESS"], settings.base_asset, settings.reward_a, STRATEGY_ADDRESS
    )
    router = SimulatedRouter(chain, MAINNET_DEFAULTS["ROUTER_ADDRESS"], settings.wrapped_native, STRATEGY_ADDRESS)
    router.set_rate(settings.reward_a, settings.bridge_asset, REWARD_A_TO_NATIVE)
    router.set_rate(settings.bridge_asset, settings.secondary_asset, NATIVE_PRICE)
    router.set_rate(settings.wrapped_native, settings.secondary_asset, NATIVE_PRICE)
    router.set_rate(settings.secondary_asset, settings.base_asset, SECONDARY_TO_BASE_ROUTER)

    coins = [None] * (max(settings.pool_in_index, settings.pool_out_index) + 1)
    coins[settings.pool_in_index] = settings.secondary_asset
    coins[settings.pool_out_index] = settings.base_asset
    pool = SimulatedStableSwapPool(chain, MAINNET_DEFAULTS["CURVE_POOL_ADDRESS"], coins, STRATEGY_ADDRESS)
    pool.set_rate(settings.pool_in_index, settings.pool_out_index, SECONDARY_TO_BASE_POOL)

    vault = SimulatedVault(chain, VAULT_ADDRESS, settings.base_asset, STRATEGY_ADDRESS)

    native_feed = SimulatedPriceFeed("simulated-native", NATIVE_PRICE)
    reward_feed = SimulatedPriceFeed("simulated-reward-a", REWARD_A_PRICE)
    feeds = {NATIVE: native_feed}
    if value_reward_a:
        feeds[settings.reward_a] = reward_feed
    oracle = ValuationOracle(feeds)

    strategy = StabilityPoolStrategy(
        settings,
        wallet,
        venue,
        router,
        pool,
        oracle,
        vault,
        checkpoint=chain,
        clock=lambda: chain.timestamp,
    )
    return SimulatedDeployment(
        chain=chain,
        wallet=wallet,
        venue=venue,
        router=router,
        pool=pool,
        vault=vault,
        native_feed=native_feed,
        reward_feed=reward_feed,
        oracle=oracle,
        strategy=strategy,
    )
