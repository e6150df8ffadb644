"""
Ethereum Integrations

web3.py implementations of the keeper interfaces:
- EthereumClient / EvmWallet: signing account and ERC-20 balances
- LiquityStabilityPool: yield venue
- UniswapV3Router, CurvePool: conversion venues
- LiquityPriceFeed, ChainlinkPriceFeed: valuation
- YearnVaultLink: upstream vault
- EvmSnapshotCheckpoint: rollback on development nodes
"""

from .client import EthereumClient, EvmWallet
from .checkpoint import EvmSnapshotCheckpoint
from .price_feed import ChainlinkPriceFeed, LiquityPriceFeed
from .venues import CurvePool, LiquityStabilityPool, UniswapV3Router, YearnVaultLink


__all__ = [
    "EthereumClient",
    "EvmWallet",
    "EvmSnapshotCheckpoint",
    "ChainlinkPriceFeed",
    "LiquityPriceFeed",
    "CurvePool",
    "LiquityStabilityPool",
    "UniswapV3Router",
    "YearnVaultLink",
]
