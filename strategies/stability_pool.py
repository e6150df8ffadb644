"""
Stability Pool Strategy

Deploys a vault's base asset into a stability-pool style venue, harvests the
venue's two reward streams (a reward token and native currency from venue
liquidations), converts them back into the base asset and reports profit,
loss and freed liquidity to the vault.

Every public entry point is atomic: it runs inside a checkpoint and is rolled
back as a whole when any step raises.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from keeper.core.checkpoint import Checkpoint, NullCheckpoint, atomic
from keeper.core.config import DepositPolicy, FinalHop, StrategySettings
from keeper.core.errors import UnauthorizedError
from keeper.core.interfaces import (
    StableSwapPool,
    SwapRouter,
    TokenWallet,
    VaultLink,
    YieldVenue,
)
from keeper.logging_config import get_activity_logger
from keeper.services.valuation import ValuationOracle
from keeper.trading.accounting import AccountingModule
from keeper.trading.conversion import ConversionPipeline, PipelineReport
from keeper.trading.liquidation import LiquidationPlanner, LiquidationResult
from keeper.trading.venue import YieldVenueAdapter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarvestReport:
    """Outcome of one full harvest: prepare_return, vault report, adjust_position."""
    profit: int
    loss: int
    debt_payment: int
    debt_outstanding: int
    total_assets: int
    pipeline: PipelineReport


def net_liquidation_loss(profit: int, loss: int, liquidation_loss: int) -> Tuple[int, int]:
    """
    Fold a liquidation-time loss into (profit, loss).

    The liquidation loss is offset against profit first; whatever remains is
    added to the loss. Profit and loss stay mutually exclusive as long as
    they were on entry.

    A shortfall that is already part of the claim-phase loss is counted a
    second time here. The vault books the whole loss against the strategy's
    debt, so the excess comes back as profit on the next harvest.
    """
    if liquidation_loss <= profit:
        return profit - liquidation_loss, loss
    return 0, loss + liquidation_loss - profit


class StabilityPoolStrategy:
    """
    Harvest/rebalance engine for one yield venue.

    The upstream vault drives it through harvest() or the individual entry
    points (prepare_return, adjust_position, liquidate_position,
    liquidate_all_positions, prepare_migration). Operators can switch the
    final conversion venue, move funds in and out of the venue directly and
    sweep stray native currency.
    """

    def __init__(
        self,
        settings: StrategySettings,
        wallet: TokenWallet,
        venue: YieldVenue,
        router: SwapRouter,
        pool: StableSwapPool,
        oracle: ValuationOracle,
        vault: VaultLink,
        checkpoint: Optional[Checkpoint] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the strategy.

        Args:
            settings: Typed strategy settings
            wallet: Wallet holding the strategy's idle balances
            venue: Yield venue the base asset is deployed into
            router: Path-based exchange router (reward, native and final hops)
            pool: Pool-style exchange for the final hop
            oracle: Valuation of non-base holdings
            vault: Upstream vault
            checkpoint: Rollback support, NullCheckpoint when the environment is atomic
            clock: Time source for swap deadlines
        """
        self.settings = settings
        self.wallet = wallet
        self.vault = vault
        self.oracle = oracle
        self.checkpoint = checkpoint or NullCheckpoint()
        self.deposit_policy = settings.deposit_policy
        self.operators = frozenset(op.lower() for op in settings.operators)

        self.venue = YieldVenueAdapter(venue, wallet, settings.base_asset, settings.referrer)
        self.pipeline = ConversionPipeline.from_settings(
            settings, wallet, self.venue, router, pool, clock
        )
        self.accounting = AccountingModule(
            wallet,
            self.venue,
            oracle,
            settings.base_asset,
            settings.reward_a,
            settings.secondary_asset,
            secondary_pool=pool,
            secondary_indices=(settings.pool_in_index, settings.pool_out_index),
        )
        self.planner = LiquidationPlanner(self.venue, wallet, settings.base_asset)
        self.activity = get_activity_logger()
        self.last_report: Optional[HarvestReport] = None

        logger.info(f"{self.get_name()} initialized for wallet {wallet.address}")
        logger.info(f"Final hop: {self.route_selector.value}, deposit policy: {self.deposit_policy.value}")

    def get_name(self) -> str:
        """Return strategy name."""
        return self.settings.name

    @property
    def route_selector(self) -> FinalHop:
        return self.pipeline.final_hop

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def estimated_total_assets(self) -> int:
        return self.accounting.estimated_total_assets()

    def eth_to_want(self, amount: int) -> int:
        """Native currency amount expressed in base-asset units."""
        return self.oracle.native_to_base(amount)

    # ------------------------------------------------------------------
    # Harvest cycle
    # ------------------------------------------------------------------

    def harvest(self) -> HarvestReport:
        """
        Run a full harvest and report it to the vault.

        Returns:
            HarvestReport for this cycle
        """
        with atomic(self.checkpoint, "harvest"):
            debt_outstanding = self.vault.debt_outstanding()
            profit, loss, debt_payment, pipeline = self._prepare_return(debt_outstanding)
            debt_outstanding = self.vault.report(profit, loss, debt_payment)
            self._adjust_position(debt_outstanding)
            report = HarvestReport(
                profit=profit,
                loss=loss,
                debt_payment=debt_payment,
                debt_outstanding=debt_outstanding,
                total_assets=self.accounting.estimated_total_assets(),
                pipeline=pipeline,
            )

        self.last_report = report
        self.activity.log_harvest(self.get_name(), profit, loss, debt_payment, debt_outstanding)
        return report

    def prepare_return(self, debt_outstanding: int) -> Tuple[int, int, int]:
        """
        Claim and convert rewards, then compute what to report.

        Args:
            debt_outstanding: Amount the vault wants back

        Returns:
            (profit, loss, debt_payment)
        """
        with atomic(self.checkpoint, "prepare_return"):
            profit, loss, debt_payment, _ = self._prepare_return(debt_outstanding)
        return profit, loss, debt_payment

    def _prepare_return(self, debt_outstanding: int) -> Tuple[int, int, int, PipelineReport]:
        total_debt = self.vault.total_debt()

        # Conversion must finish before valuation, valuation before liquidation
        pipeline = self.pipeline.claim_and_convert()
        post_value = self.accounting.post_conversion_value()

        profit = max(0, post_value - total_debt)
        loss = max(0, total_debt - post_value)

        freed, liquidation_loss = self.planner.liquidate(debt_outstanding + profit)
        debt_payment = min(debt_outstanding, freed)
        profit, loss = net_liquidation_loss(profit, loss, liquidation_loss)

        logger.info(
            f"prepare_return: total_debt={total_debt}, post_value={post_value}, "
            f"profit={profit}, loss={loss}, debt_payment={debt_payment}"
        )
        return profit, loss, debt_payment, pipeline

    def adjust_position(self, debt_outstanding: int) -> int:
        """
        Redeploy idle base asset into the venue.

        Returns:
            Amount deposited
        """
        with atomic(self.checkpoint, "adjust_position"):
            return self._adjust_position(debt_outstanding)

    def _adjust_position(self, debt_outstanding: int) -> int:
        idle = self.wallet.balance_of(self.settings.base_asset)
        if self.deposit_policy is DepositPolicy.DEPOSIT_ALL:
            amount = idle
        else:
            amount = max(0, idle - debt_outstanding)

        if amount == 0:
            logger.debug(f"Nothing to deposit (idle={idle}, debt_outstanding={debt_outstanding})")
            return 0

        self.venue.deposit(amount)
        return amount

    # ------------------------------------------------------------------
    # Liquidation and exit
    # ------------------------------------------------------------------

    def liquidate_position(self, amount_needed: int) -> LiquidationResult:
        """Free amount_needed of the base asset; shortfall is reported as loss."""
        with atomic(self.checkpoint, "liquidate_position"):
            return self.planner.liquidate(amount_needed)

    def liquidate_all_positions(self) -> int:
        """
        Attempt a full exit.

        Returns:
            Amount of base asset freed
        """
        with atomic(self.checkpoint, "liquidate_all_positions"):
            target = self.accounting.estimated_total_assets()
            return self.planner.liquidate(target).liquidated

    def prepare_migration(self, new_strategy: str) -> int:
        """
        Pull all principal out of the venue ahead of a migration.

        Rewards are not claimed or converted here; the caller harvests first.

        Returns:
            Amount withdrawn
        """
        with atomic(self.checkpoint, "prepare_migration"):
            recoverable = self.venue.recoverable_balance()
            if recoverable == 0:
                logger.info(f"Nothing deployed, migration to {new_strategy} needs no withdrawal")
                return 0
            self.venue.withdraw(recoverable)
            logger.info(f"Withdrew {recoverable} for migration to {new_strategy}")
            return recoverable

    # ------------------------------------------------------------------
    # Operator surface
    # ------------------------------------------------------------------

    def _require_operator(self, action: str, caller: str):
        if caller.lower() not in self.operators:
            self.activity.log_operator_action(action, caller, accepted=False)
            raise UnauthorizedError(f"{caller} is not allowed to {action}")
        self.activity.log_operator_action(action, caller, accepted=True)

    def set_route_selector(self, final_hop: FinalHop, caller: str) -> None:
        """Choose the final-hop venue; takes effect from the next pipeline run."""
        self._require_operator("set_route_selector", caller)
        logger.info(f"Final hop switched from {self.pipeline.final_hop.value} to {final_hop.value}")
        self.pipeline.final_hop = final_hop

    def force_deposit(self, amount: int, caller: str) -> None:
        self._require_operator("force_deposit", caller)
        with atomic(self.checkpoint, "force_deposit"):
            self.venue.deposit(amount)

    def force_withdraw(self, amount: int, caller: str) -> None:
        self._require_operator("force_withdraw", caller)
        with atomic(self.checkpoint, "force_withdraw"):
            self.venue.withdraw(amount)

    def sweep_native(self, recipient: str, caller: str) -> int:
        """
        Send the wallet's spendable native balance to recipient.

        Returns:
            Amount swept
        """
        self._require_operator("sweep_native", caller)
        with atomic(self.checkpoint, "sweep_native"):
            amount = self.wallet.native_balance()
            if amount > 0:
                self.wallet.transfer_native(recipient, amount)
                logger.info(f"Swept {amount} native to {recipient}")
            return amount
