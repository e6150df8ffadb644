"""Wiring of the strategy against a live chain from environment configuration."""

import logging
from dataclasses import dataclass
from typing import Optional

from integrations.ethereum.client import EthereumClient, EvmWallet
from integrations.ethereum.checkpoint import EvmSnapshotCheckpoint
from integrations.ethereum.price_feed import ChainlinkPriceFeed, LiquityPriceFeed
from integrations.ethereum.venues import (
    CurvePool,
    LiquityStabilityPool,
    UniswapV3Router,
    YearnVaultLink,
)
from keeper.core.config import ConfigurationError, EnvironmentConfig
from keeper.core.checkpoint import Checkpoint, NullCheckpoint
from keeper.services.valuation import NATIVE, ValuationOracle
from strategies.stability_pool import StabilityPoolStrategy

logger = logging.getLogger(__name__)


@dataclass
class LiveDeployment:
    client: EthereumClient
    wallet: EvmWallet
    venue: LiquityStabilityPool
    router: UniswapV3Router
    pool: CurvePool
    oracle: ValuationOracle
    vault: Optional[YearnVaultLink]


def connect(config: EnvironmentConfig) -> LiveDeployment:
    """
    Build every live adapter from configuration.

    The vault link is only built when VAULT_ADDRESS is set.
    """
    settings = config.get_strategy_settings()
    client = EthereumClient.from_rpc_url(
        config.get_required("ETH_RPC_URL"),
        config.get_required("STRATEGY_PRIVATE_KEY"),
        receipt_timeout=config.get_confirmation_timeout(),
    )
    wallet = EvmWallet(client, gas_reserve_wei=config.get_gas_reserve_wei())

    pool = CurvePool(client, config.get("CURVE_POOL_ADDRESS"), underlying=settings.pool_underlying)
    pool.coin(settings.pool_in_index, settings.secondary_asset)
    pool.coin(settings.pool_out_index, settings.base_asset)

    oracle = ValuationOracle(
        {NATIVE: LiquityPriceFeed(client, config.get("PRICE_FEED_ADDRESS"))},
        fallbacks={
            NATIVE: ChainlinkPriceFeed(
                client,
                config.get("FALLBACK_PRICE_FEED_ADDRESS"),
                max_age_seconds=config.get_price_max_age_seconds(),
            )
        },
    )

    vault_address = config.get("VAULT_ADDRESS")
    vault = YearnVaultLink(client, wallet, vault_address, settings.base_asset) if vault_address else None

    return LiveDeployment(
        client=client,
        wallet=wallet,
        venue=LiquityStabilityPool(client, config.get("STABILITY_POOL_ADDRESS")),
        router=UniswapV3Router(client, config.get("ROUTER_ADDRESS")),
        pool=pool,
        oracle=oracle,
        vault=vault,
    )


def build_strategy(config: EnvironmentConfig, dev_chain: bool = False) -> StabilityPoolStrategy:
    """
    Build a strategy ready to harvest.

    Args:
        config: Loaded configuration
        dev_chain: Use evm_snapshot/evm_revert rollback (anvil, hardhat)

    Raises:
        ConfigurationError: if VAULT_ADDRESS is not set
    """
    live = connect(config)
    if live.vault is None:
        raise ConfigurationError("VAULT_ADDRESS is required to run the strategy")

    checkpoint: Checkpoint = EvmSnapshotCheckpoint(live.client.w3) if dev_chain else NullCheckpoint()
    return StabilityPoolStrategy(
        config.get_strategy_settings(),
        live.wallet,
        live.venue,
        live.router,
        live.pool,
        live.oracle,
        live.vault,
        checkpoint=checkpoint,
    )
