"""
Pytest configuration and shared fixtures for harvest keeper tests.

Most tests run the strategy against the in-memory chain from
integrations.simulated; the fixtures here build it fully wired.
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings, Verbosity

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from integrations.simulated.deployment import (  # noqa: E402
    OPERATOR_ADDRESS,
    STRATEGY_ADDRESS,
    default_settings,
    deploy,
)
from keeper.core.interfaces import WAD  # noqa: E402


# ============================================================================
# Hypothesis Configuration
# ============================================================================

settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile("ci", max_examples=1000, deadline=None)
settings.register_profile("dev", max_examples=20, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


# ============================================================================
# Simulated deployment
# ============================================================================

@pytest.fixture
def deployment():
    """A strategy with no funds on a fresh in-memory chain."""
    return deploy()


@pytest.fixture
def funded_deployment():
    """
    A strategy with 10,000 whole base-asset units borrowed from the vault
    and deployed into the venue.
    """
    d = deploy()
    d.vault.lend(10_000 * WAD)
    d.strategy.adjust_position(0)
    d.chain.transactions.clear()
    return d


@pytest.fixture
def deploy_with():
    """Factory building a deployment with settings overrides."""
    def _deploy(**overrides):
        return deploy(default_settings(**overrides))
    return _deploy


@pytest.fixture
def operator():
    return OPERATOR_ADDRESS


@pytest.fixture
def strategy_address():
    return STRATEGY_ADDRESS
