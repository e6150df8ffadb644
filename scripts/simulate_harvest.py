#!/usr/bin/env python3
"""
Harvest Simulation Script

Runs harvest cycles of the stability pool strategy on the in-memory chain
and prints what each cycle reported. Useful for checking the effect of the
final-hop venue, the deposit policy and venue liquidations without touching
a live network.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from integrations.simulated.deployment import OPERATOR_ADDRESS, STRATEGY_ADDRESS, default_settings, deploy
from keeper.core.config import DepositPolicy, FinalHop
from keeper.core.errors import StrategyError
from keeper.core.interfaces import WAD
from keeper.logging_config import setup_logging

console = Console()

DAY = 86_400


def units(amount: int) -> str:
    return f"{amount / WAD:,.4f}"


def run(args) -> int:
    settings = default_settings(
        final_hop=FinalHop(args.final_hop),
        deposit_policy=DepositPolicy(args.deposit_policy),
    )
    d = deploy(settings)
    d.vault.lend(args.lend * WAD)
    d.strategy.adjust_position(0)
    if args.debt_limit is not None:
        d.vault.set_debt_limit(args.debt_limit * WAD)

    table = Table(title="\n📊 Harvest Cycles", show_header=True)
    table.add_column("Cycle", style="cyan")
    table.add_column("Swaps")
    table.add_column("Profit", style="green")
    table.add_column("Loss", style="red")
    table.add_column("Debt paid")
    table.add_column("Deposit")
    table.add_column("Vault debt")

    for cycle in range(1, args.cycles + 1):
        d.chain.advance(DAY)
        d.venue.accrue_rewards(
            STRATEGY_ADDRESS,
            reward_a=int(args.lqty_per_cycle * WAD),
            reward_b=int(args.eth_per_cycle * WAD),
        )
        if args.liquidation_offset:
            d.venue.apply_liquidation(
                STRATEGY_ADDRESS,
                debt_offset=int(args.liquidation_offset * WAD),
                collateral_gain=int(args.liquidation_offset * 1.1 * WAD) // 2000,
            )
        if cycle == args.switch_at:
            d.strategy.set_route_selector(FinalHop.ROUTER, OPERATOR_ADDRESS)

        try:
            report = d.strategy.harvest()
        except StrategyError as e:
            console.print(f"[red]✗ Cycle {cycle} rolled back: {e}[/red]")
            return 1

        table.add_row(
            str(cycle),
            str(report.pipeline.swap_count),
            units(report.profit),
            units(report.loss),
            units(report.debt_payment),
            units(d.venue.get_compounded_deposit(STRATEGY_ADDRESS)),
            units(d.vault.total_debt()),
        )

    console.print(table)
    console.print(f"\nFinal hop: [bold]{d.strategy.route_selector.value}[/bold]")
    console.print(f"Estimated total assets: [bold]{units(d.strategy.estimated_total_assets())}[/bold]")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Simulate stability pool harvest cycles")
    parser.add_argument('--cycles', type=int, default=5, help='Number of harvests (default: 5)')
    parser.add_argument('--lend', type=int, default=100_000, help='Base asset lent by the vault (default: 100000)')
    parser.add_argument('--lqty-per-cycle', type=float, default=250.0, help='Reward A accrued per cycle')
    parser.add_argument('--eth-per-cycle', type=float, default=0.05, help='Native gain accrued per cycle')
    parser.add_argument(
        '--liquidation-offset',
        type=float,
        default=0.0,
        help='Deposit burned by a venue liquidation each cycle, paid back at a 10%% premium in native'
    )
    parser.add_argument('--final-hop', choices=[hop.value for hop in FinalHop], default=FinalHop.POOL.value)
    parser.add_argument(
        '--deposit-policy',
        choices=[policy.value for policy in DepositPolicy],
        default=DepositPolicy.RESERVE_DEBT.value,
    )
    parser.add_argument('--debt-limit', type=int, default=None, help='Vault debt limit for the strategy')
    parser.add_argument('--switch-at', type=int, default=None, help='Cycle at which the operator switches to the router')
    parser.add_argument('--log-dir', default='logs', help='Log directory (default: logs)')

    args = parser.parse_args()

    setup_logging(log_dir=args.log_dir, console_level="WARNING")

    console.print(Panel.fit(
        "[bold green]🌾 Stability Pool Harvest - Simulation[/bold green]\n"
        f"{args.cycles} cycles, {args.lend:,} lent, final hop {args.final_hop}",
        border_style="green"
    ))
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
