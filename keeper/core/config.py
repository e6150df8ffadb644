"""
Configuration management and environment validation for the harvest keeper.

This module handles:
- Environment variable validation
- Configuration loading (.env via python-dotenv)
- Typed strategy settings consumed by the engine
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


class FinalHop(Enum):
    """Venue used for the last conversion hop (secondary asset -> base asset)."""
    POOL = "pool"
    ROUTER = "router"


class DepositPolicy(Enum):
    """How adjust_position treats the debt the vault wants back."""
    RESERVE_DEBT = "reserve_debt"
    DEPOSIT_ALL = "deposit_all"


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Ethereum mainnet deployment used when no override is configured
MAINNET_DEFAULTS = {
    "BASE_ASSET_ADDRESS": "0x5f98805A4E8be255a32880FDeC7F6728C6568bA0",  # LUSD
    "REWARD_A_ADDRESS": "0x6DEA81C8171D0bA574754EF6F8b412F2Ed88c54D",  # LQTY
    "BRIDGE_ASSET_ADDRESS": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
    "WRAPPED_NATIVE_ADDRESS": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
    "SECONDARY_ASSET_ADDRESS": "0x6B175474E89094C44Da98b954EedeAC495271d0F",  # DAI
    "STABILITY_POOL_ADDRESS": "0x66017D22b0f8556afDd19FC67041899Eb65a21bb",
    "ROUTER_ADDRESS": "0xE592427A0AEce92De3Edee1F18E0157C05861564",  # Uniswap v3
    "CURVE_POOL_ADDRESS": "0xEd279fDD11cA84bEef15AF5D39BB4d4bEE23F0cA",  # LUSD metapool
    "PRICE_FEED_ADDRESS": "0x4c517D4e2C851CA76d7eC94B805269Df0f2201De",  # Liquity
    "FALLBACK_PRICE_FEED_ADDRESS": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",  # Chainlink ETH/USD
}


@dataclass(frozen=True)
class StrategySettings:
    """Everything the strategy engine and its conversion pipeline need to know."""
    name: str
    base_asset: str
    reward_a: str
    bridge_asset: str
    wrapped_native: str
    secondary_asset: str
    reward_a_fee: int = 3000
    bridge_fee: int = 500
    native_fee: int = 500
    final_hop_fee: int = 500
    pool_in_index: int = 1
    pool_out_index: int = 0
    pool_underlying: bool = True
    final_hop: FinalHop = FinalHop.POOL
    pool_slippage_bps: int = 500
    swap_deadline_seconds: int = 300
    deposit_policy: DepositPolicy = DepositPolicy.RESERVE_DEBT
    min_claim_amount: int = 1
    referrer: str = ZERO_ADDRESS
    operators: FrozenSet[str] = frozenset()


class EnvironmentConfig:
    """Environment configuration with validation."""

    # Required variables for live operation
    REQUIRED_PRODUCTION = [
        "ETH_RPC_URL",
        "STRATEGY_PRIVATE_KEY",
    ]

    # Optional variables with defaults
    OPTIONAL_WITH_DEFAULTS = {
        "LOG_LEVEL": "INFO",
        "CONSOLE_LOG_LEVEL": "INFO",
        "LOG_DIR": "logs",
        "STRATEGY_NAME": "StrategyStabilityPoolHarvest",
        # Conversion routing
        "FINAL_HOP_VENUE": "pool",
        "POOL_SLIPPAGE_BPS": "500",  # 95% of the quoted output
        "SWAP_DEADLINE_SECONDS": "300",
        "REWARD_A_POOL_FEE": "3000",
        "BRIDGE_POOL_FEE": "500",
        "NATIVE_POOL_FEE": "500",
        "FINAL_HOP_POOL_FEE": "500",
        "CURVE_IN_INDEX": "1",
        "CURVE_OUT_INDEX": "0",
        "CURVE_UNDERLYING": "true",
        # Position management
        "DEPOSIT_POLICY": "reserve_debt",
        "MIN_CLAIM_AMOUNT": "1",
        "REFERRER_ADDRESS": ZERO_ADDRESS,
        # Execution
        "GAS_RESERVE_WEI": str(5 * 10 ** 16),  # 0.05 ETH kept back for gas
        "PRICE_MAX_AGE_SECONDS": "3600",
        "CONFIRMATION_TIMEOUT": "120",
    }

    OPTIONAL_VARIABLES = [
        "STRATEGY_OPERATORS",
        "VAULT_ADDRESS",
    ]

    ALL_VARIABLES = (
        REQUIRED_PRODUCTION +
        list(OPTIONAL_WITH_DEFAULTS.keys()) +
        list(MAINNET_DEFAULTS.keys()) +
        OPTIONAL_VARIABLES
    )

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Path to .env file (default: .env in project root)
        """
        if env_file:
            load_dotenv(env_file)
        else:
            # Try to find .env in current directory or parent directories
            current = Path.cwd()
            for parent in [current] + list(current.parents):
                env_path = parent / ".env"
                if env_path.exists():
                    load_dotenv(env_path)
                    break

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with optional default."""
        value = os.getenv(key)
        if value is None:
            if key in self.OPTIONAL_WITH_DEFAULTS:
                return self.OPTIONAL_WITH_DEFAULTS[key]
            if key in MAINNET_DEFAULTS:
                return MAINNET_DEFAULTS[key]
        return value or default

    def get_required(self, key: str) -> str:
        """
        Get required environment variable.

        Raises:
            ConfigurationError: If variable is not set
        """
        value = self.get(key)
        if not value:
            raise ConfigurationError(
                f"Required environment variable '{key}' is not set. "
                f"Please add it to your .env file."
            )
        return value

    def validate(self, require_all: bool = False) -> Dict[str, str]:
        """
        Validate environment configuration.

        Args:
            require_all: If True, require all production variables

        Returns:
            Dictionary of validated configuration

        Raises:
            ConfigurationError: If required variables are missing or malformed
        """
        config = {}
        missing = []
        warnings = []

        for var in self.REQUIRED_PRODUCTION:
            value = self.get(var)
            if not value:
                (missing if require_all else warnings).append(var)
            else:
                config[var] = value

        for var in self.ALL_VARIABLES:
            if var not in config:
                value = self.get(var)
                if value:
                    config[var] = value

        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                f"Please add them to your .env file."
            )

        # Enum-valued settings must parse, there is no sensible default to fall back to
        self.get_final_hop()
        self.get_deposit_policy()

        if warnings:
            logger.warning(f"Missing optional variables: {', '.join(warnings)}")
            logger.warning("   Live chain access will not work without these variables")

        return config

    def _get_int(self, key: str, default: int, minimum: int, maximum: Optional[int] = None) -> int:
        """Parse an integer setting, falling back to the default when out of range."""
        try:
            value = int(self.get(key, str(default)))
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid {key} value: {e}, using default {default}")
            return default
        if value < minimum or (maximum is not None and value > maximum):
            upper = "inf" if maximum is None else maximum
            logger.warning(f"{key} {value} out of range [{minimum}, {upper}], using default {default}")
            return default
        return value

    def get_final_hop(self) -> FinalHop:
        """Get the venue used for the final conversion hop."""
        value = (self.get("FINAL_HOP_VENUE", "pool") or "pool").strip().lower()
        try:
            return FinalHop(value)
        except ValueError:
            raise ConfigurationError(
                f"FINAL_HOP_VENUE must be one of {[hop.value for hop in FinalHop]}, got '{value}'"
            )

    def get_deposit_policy(self) -> DepositPolicy:
        """Get the idle-balance redeployment policy."""
        value = (self.get("DEPOSIT_POLICY", "reserve_debt") or "reserve_debt").strip().lower()
        try:
            return DepositPolicy(value)
        except ValueError:
            raise ConfigurationError(
                f"DEPOSIT_POLICY must be one of {[p.value for p in DepositPolicy]}, got '{value}'"
            )

    def get_pool_slippage_bps(self) -> int:
        """Get the pool-venue tolerance in basis points (default 500 = 5%)."""
        return self._get_int("POOL_SLIPPAGE_BPS", 500, 0, 10_000)

    def get_swap_deadline_seconds(self) -> int:
        """Get the swap deadline offset in seconds (default 300)."""
        return self._get_int("SWAP_DEADLINE_SECONDS", 300, 1, 86_400)

    def get_min_claim_amount(self) -> int:
        """Get the withdrawal used to force a reward claim (default 1 unit)."""
        return self._get_int("MIN_CLAIM_AMOUNT", 1, 1)

    def get_gas_reserve_wei(self) -> int:
        """Get native currency kept back for gas (default 0.05 ETH)."""
        return self._get_int("GAS_RESERVE_WEI", 5 * 10 ** 16, 0)

    def get_price_max_age_seconds(self) -> int:
        """Get the maximum accepted price age (default 1 hour)."""
        return self._get_int("PRICE_MAX_AGE_SECONDS", 3600, 60, 7 * 86_400)

    def get_confirmation_timeout(self) -> int:
        """Get the transaction receipt timeout in seconds (default 120)."""
        return self._get_int("CONFIRMATION_TIMEOUT", 120, 10, 3600)

    def get_operators(self) -> FrozenSet[str]:
        """Get the addresses allowed to use the operator surface."""
        raw = self.get("STRATEGY_OPERATORS", "") or ""
        return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())

    def get_pool_underlying(self) -> bool:
        """Whether the pool venue swaps through its underlying coins."""
        return (self.get("CURVE_UNDERLYING", "true") or "true").strip().lower() in ("1", "true", "yes")

    def get_strategy_settings(self) -> StrategySettings:
        """
        Build the typed settings for the strategy engine.

        Returns:
            StrategySettings populated from the environment
        """
        return StrategySettings(
            name=self.get("STRATEGY_NAME"),
            base_asset=self.get("BASE_ASSET_ADDRESS"),
            reward_a=self.get("REWARD_A_ADDRESS"),
            bridge_asset=self.get("BRIDGE_ASSET_ADDRESS"),
            wrapped_native=self.get("WRAPPED_NATIVE_ADDRESS"),
            secondary_asset=self.get("SECONDARY_ASSET_ADDRESS"),
            reward_a_fee=self._get_int("REWARD_A_POOL_FEE", 3000, 1, 1_000_000),
            bridge_fee=self._get_int("BRIDGE_POOL_FEE", 500, 1, 1_000_000),
            native_fee=self._get_int("NATIVE_POOL_FEE", 500, 1, 1_000_000),
            final_hop_fee=self._get_int("FINAL_HOP_POOL_FEE", 500, 1, 1_000_000),
            pool_in_index=self._get_int("CURVE_IN_INDEX", 1, 0, 7),
            pool_out_index=self._get_int("CURVE_OUT_INDEX", 0, 0, 7),
            pool_underlying=self.get_pool_underlying(),
            final_hop=self.get_final_hop(),
            pool_slippage_bps=self.get_pool_slippage_bps(),
            swap_deadline_seconds=self.get_swap_deadline_seconds(),
            deposit_policy=self.get_deposit_policy(),
            min_claim_amount=self.get_min_claim_amount(),
            referrer=self.get("REFERRER_ADDRESS"),
            operators=self.get_operators(),
        )


def load_config(env_file: Optional[str] = None, require_all: bool = False) -> EnvironmentConfig:
    """
    Load and validate configuration.

    Args:
        env_file: Path to .env file
        require_all: If True, require all production variables

    Returns:
        Validated EnvironmentConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = EnvironmentConfig(env_file)
    config.validate(require_all=require_all)
    return config
