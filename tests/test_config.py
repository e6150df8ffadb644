"""
Tests for configuration management.
"""

import os
import pytest
from unittest.mock import patch
from hypothesis import given, strategies as st

from keeper.core.config import (
    MAINNET_DEFAULTS,
    ConfigurationError,
    DepositPolicy,
    EnvironmentConfig,
    FinalHop,
    load_config,
)


@pytest.fixture
def clean_env():
    """Empty environment with .env discovery disabled."""
    with patch('pathlib.Path.exists', return_value=False):
        with patch.dict(os.environ, {}, clear=True):
            yield


class TestConfigurationDefaults:
    """Test defaults when nothing is configured."""

    def test_strategy_settings_defaults(self, clean_env):
        settings = EnvironmentConfig().get_strategy_settings()

        assert settings.name == "StrategyStabilityPoolHarvest"
        assert settings.base_asset == MAINNET_DEFAULTS["BASE_ASSET_ADDRESS"]
        assert settings.final_hop is FinalHop.POOL
        assert settings.deposit_policy is DepositPolicy.RESERVE_DEBT
        assert settings.pool_slippage_bps == 500
        assert settings.swap_deadline_seconds == 300
        assert settings.min_claim_amount == 1
        assert (settings.pool_in_index, settings.pool_out_index) == (1, 0)
        assert settings.pool_underlying is True
        assert settings.operators == frozenset()

    def test_execution_defaults(self, clean_env):
        config = EnvironmentConfig()

        assert config.get_gas_reserve_wei() == 5 * 10 ** 16
        assert config.get_price_max_age_seconds() == 3600
        assert config.get_confirmation_timeout() == 120

    def test_validate_warns_without_live_credentials(self, clean_env):
        values = EnvironmentConfig().validate()

        assert "ETH_RPC_URL" not in values
        assert values["STABILITY_POOL_ADDRESS"] == MAINNET_DEFAULTS["STABILITY_POOL_ADDRESS"]

    def test_validate_require_all_fails_without_credentials(self, clean_env):
        with pytest.raises(ConfigurationError, match="ETH_RPC_URL"):
            load_config(require_all=True)

    def test_get_required_missing(self, clean_env):
        with pytest.raises(ConfigurationError):
            EnvironmentConfig().get_required("STRATEGY_PRIVATE_KEY")


class TestConfigurationOverrides:
    """Test values read from the environment."""

    def test_router_final_hop(self, clean_env):
        with patch.dict(os.environ, {'FINAL_HOP_VENUE': 'Router'}):
            assert EnvironmentConfig().get_final_hop() is FinalHop.ROUTER

    def test_invalid_final_hop(self, clean_env):
        with patch.dict(os.environ, {'FINAL_HOP_VENUE': 'bridge'}):
            with pytest.raises(ConfigurationError):
                EnvironmentConfig().validate()

    def test_deposit_all_policy(self, clean_env):
        with patch.dict(os.environ, {'DEPOSIT_POLICY': 'deposit_all'}):
            assert EnvironmentConfig().get_deposit_policy() is DepositPolicy.DEPOSIT_ALL

    def test_invalid_deposit_policy(self, clean_env):
        with patch.dict(os.environ, {'DEPOSIT_POLICY': 'hold'}):
            with pytest.raises(ConfigurationError):
                EnvironmentConfig().get_deposit_policy()

    def test_operators_parsed_and_lowercased(self, clean_env):
        with patch.dict(os.environ, {'STRATEGY_OPERATORS': ' 0xAbC , ,0xdef'}):
            assert EnvironmentConfig().get_operators() == frozenset({"0xabc", "0xdef"})

    def test_address_override(self, clean_env):
        with patch.dict(os.environ, {'ROUTER_ADDRESS': '0x0000000000000000000000000000000000000001'}):
            assert EnvironmentConfig().get("ROUTER_ADDRESS") == '0x0000000000000000000000000000000000000001'

    def test_pool_underlying_false(self, clean_env):
        with patch.dict(os.environ, {'CURVE_UNDERLYING': 'false'}):
            assert EnvironmentConfig().get_strategy_settings().pool_underlying is False

    def test_slippage_invalid_falls_back(self, clean_env):
        with patch.dict(os.environ, {'POOL_SLIPPAGE_BPS': 'lots'}):
            assert EnvironmentConfig().get_pool_slippage_bps() == 500

    @given(bps=st.integers(min_value=-10_000, max_value=20_000))
    def test_slippage_range(self, bps):
        with patch('pathlib.Path.exists', return_value=False):
            with patch.dict(os.environ, {'POOL_SLIPPAGE_BPS': str(bps)}, clear=True):
                value = EnvironmentConfig().get_pool_slippage_bps()

        if 0 <= bps <= 10_000:
            assert value == bps
        else:
            assert value == 500

    def test_env_file_loaded(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("STRATEGY_NAME=FromFile\nMIN_CLAIM_AMOUNT=7\n")

        config = EnvironmentConfig(str(env_file))

        assert config.get("STRATEGY_NAME") == "FromFile"
        assert config.get_min_claim_amount() == 7
