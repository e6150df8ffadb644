"""In-memory chain and venues for simulation and tests."""

from integrations.simulated.chain import SimulatedChain, SimulatedWallet, Transaction
from integrations.simulated.venues import (
    SimulatedPriceFeed,
    SimulatedRouter,
    SimulatedStabilityPool,
    SimulatedStableSwapPool,
    SimulatedVault,
)

__all__ = [
    "SimulatedChain",
    "SimulatedWallet",
    "Transaction",
    "SimulatedPriceFeed",
    "SimulatedRouter",
    "SimulatedStabilityPool",
    "SimulatedStableSwapPool",
    "SimulatedVault",
]
