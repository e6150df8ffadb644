"""Allowance handling for the strategy wallet."""

import logging

from keeper.core.interfaces import MAX_UINT256, TokenWallet

logger = logging.getLogger(__name__)


def ensure_allowance(wallet: TokenWallet, token: str, spender: str, amount: int) -> None:
    """
    Make sure spender may pull at least amount of token from wallet.

    Approves only when the current allowance is insufficient. A stale
    nonzero allowance is reset to zero before the maximum is approved, as
    some tokens reject changing one nonzero allowance to another.
    """
    current = wallet.allowance(token, spender)
    if current >= amount:
        return

    if current > 0:
        wallet.approve(token, spender, 0)
    wallet.approve(token, spender, MAX_UINT256)
    logger.info(f"Approved {spender} to spend {token} (previous allowance {current})")
