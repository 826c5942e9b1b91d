"""Holdings CLI commands."""

from typing import Optional

import typer
from rich.table import Table

from coinwatch.cli.common import console, fmt_secondary, open_engine, require_holding, run
from coinwatch.core.engine import SortOrder

app = typer.Typer()


@app.command("list")
def list_holdings(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by symbol substring"),
    sort: Optional[SortOrder] = typer.Option(None, "--sort", help="Sort order"),
):
    """List all tracked holdings."""

    async def _list():
        async with open_engine() as engine:
            return engine.list_valuations(search=search, sort=sort), engine.get_rate()

    rows, rate = run(_list())

    if not rows:
        console.print("[yellow]No holdings found.[/yellow] Use 'add' to add some.")
        return

    table = Table(title="Holdings")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Symbol", style="cyan")
    table.add_column("Quantity", justify="right")

    for row in rows:
        table.add_row(str(row.holding.id), row.holding.symbol, f"{row.holding.quantity:,}")

    console.print(table)
    console.print(f"\n[dim]Total holdings: {len(rows)} | Rate: {fmt_secondary(rate)}[/dim]")


@app.command("add")
def add_holding(
    symbol: str = typer.Argument(..., help="Market symbol (e.g., BTCUSDT)"),
    quantity: str = typer.Argument(..., help="Quantity held (fractions allowed)"),
):
    """Add a new holding."""

    async def _add():
        async with open_engine() as engine:
            return await engine.add_holding(symbol, quantity)

    holding = run(_add())
    console.print(f"[green]Added:[/green] {holding.symbol} x {holding.quantity} (id {holding.id})")


@app.command("rename")
def rename_holding(
    symbol: str = typer.Argument(..., help="Current symbol"),
    new_symbol: str = typer.Argument(..., help="New symbol"),
):
    """Rename a holding. Its price is picked up again from the next tick."""

    async def _rename():
        async with open_engine() as engine:
            holding = require_holding(engine, symbol)
            return await engine.rename_holding(holding.id, new_symbol)

    holding = run(_rename())
    console.print(f"[green]Renamed:[/green] {symbol.upper()} -> {holding.symbol}")


@app.command("resize")
def resize_holding(
    symbol: str = typer.Argument(..., help="Holding symbol"),
    quantity: str = typer.Argument(..., help="New quantity"),
):
    """Change the quantity of a holding."""

    async def _resize():
        async with open_engine() as engine:
            holding = require_holding(engine, symbol)
            return await engine.resize_holding(holding.id, quantity)

    holding = run(_resize())
    console.print(f"[green]Updated:[/green] {holding.symbol} x {holding.quantity}")


@app.command("remove")
def remove_holding(
    symbol: str = typer.Argument(..., help="Holding symbol to remove"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Remove a holding."""
    if not force:
        confirm = typer.confirm(f"Remove {symbol.upper()}?")
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

    async def _remove():
        async with open_engine() as engine:
            holding = require_holding(engine, symbol)
            return await engine.remove_holding(holding.id)

    holding = run(_remove())
    console.print(f"[green]Removed:[/green] {holding.symbol}")

