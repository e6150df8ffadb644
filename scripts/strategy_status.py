#!/usr/bin/env python3
"""
Strategy Status Script

Read-only report of the live strategy account: idle balances, the venue
position, what it is worth and the current final-hop quote. Sends no
transactions.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from integrations.ethereum.deployment import connect
from keeper.core.config import ConfigurationError, load_config
from keeper.core.errors import ExternalCallError
from keeper.core.interfaces import WAD
from keeper.services.valuation import NATIVE
from keeper.trading.accounting import AccountingModule
from keeper.trading.venue import YieldVenueAdapter

console = Console()


def units(amount: int) -> str:
    return f"{amount / WAD:,.6f}"


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Show live stability pool strategy status")
    parser.add_argument('--env-file', default=None, help='Path to .env file')
    args = parser.parse_args()

    try:
        config = load_config(args.env_file, require_all=True)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1

    settings = config.get_strategy_settings()
    live = connect(config)
    venue = YieldVenueAdapter(live.venue, live.wallet, settings.base_asset, settings.referrer)
    accounting = AccountingModule(
        live.wallet,
        venue,
        live.oracle,
        settings.base_asset,
        settings.reward_a,
        settings.secondary_asset,
        secondary_pool=live.pool,
        secondary_indices=(settings.pool_in_index, settings.pool_out_index),
    )

    console.print(Panel.fit(
        f"[bold green]🌾 {settings.name}[/bold green]\n"
        f"Account: {live.wallet.address}\n"
        f"Final hop: {settings.final_hop.value}, deposit policy: {settings.deposit_policy.value}",
        border_style="green"
    ))

    try:
        idle = accounting.idle_balances()
        position = accounting.position()
        native_price = live.oracle.price_of(NATIVE)
        total = accounting.estimated_total_assets()
        quote = live.pool.get_dy(settings.pool_in_index, settings.pool_out_index, WAD)
        vault_debt = None
        if live.vault is not None:
            vault_debt = (live.vault.total_debt(), live.vault.debt_outstanding())
    except ExternalCallError as e:
        console.print(f"[red]✗ Status read failed: {e}[/red]")
        return 1

    table = Table(title="\n📊 Holdings", show_header=True)
    table.add_column("Item", style="cyan")
    table.add_column("Amount", justify="right")

    table.add_row("Idle base asset", units(idle.base))
    table.add_row("Idle reward A", units(idle.reward_a))
    table.add_row("Idle native (spendable)", units(idle.native))
    table.add_row("Idle secondary asset", units(idle.secondary))
    table.add_row("Deposited principal", units(position.principal))
    table.add_row("Pending reward A", units(position.pending_reward_a))
    table.add_row("Pending native gain", units(position.pending_reward_b))
    table.add_row("Native price", units(native_price))
    table.add_row("Pool quote for 1 secondary", units(quote))
    table.add_row("[bold]Estimated total assets[/bold]", f"[bold]{units(total)}[/bold]")

    if vault_debt is not None:
        table.add_row("Vault total debt", units(vault_debt[0]))
        table.add_row("Vault debt outstanding", units(vault_debt[1]))

    console.print(table)
    return 0


if __name__ == "__main__":
    sys.exit(main())
