"""Live valuation dashboard."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.live import Live
from rich.table import Table

from coinwatch.cli.common import console, fmt_quote, fmt_secondary, run, settings
from coinwatch.core.engine import SortOrder, ValuationEngine
from coinwatch.core.valuation.models import FeedState, quantize
from coinwatch.data.gateway import build_gateway

STATE_STYLE = {
    FeedState.STREAMING: "green",
    FeedState.CONNECTING: "yellow",
    FeedState.DISCONNECTED: "red",
}


def build_table(engine: ValuationEngine, search: Optional[str], sort: Optional[SortOrder]) -> Table:
    """Render the current holdings and total as a table."""
    state = engine.get_feed_state()
    stale = engine.is_stale()
    total = engine.get_aggregate_total()

    table = Table(
        title=f"Feed: [{STATE_STYLE[state]}]{state.value}[/] | Rate: {fmt_secondary(engine.get_rate())}",
        caption="[dim]Press Ctrl+C to stop[/dim]",
    )
    table.add_column("Symbol", style="cyan")
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value (USD)", justify="right")
    table.add_column("Value (INR)", justify="right")

    for row in engine.list_valuations(search=search, sort=sort):
        v = row.valuation
        price = quantize(row.unit_price, settings.quote_places)
        style = "dim" if stale and v is not None and v.is_priced else None
        table.add_row(
            row.holding.symbol,
            f"{row.holding.quantity:,}",
            "-" if price is None else f"{price:,}",
            fmt_quote(v.quote_total if v else None),
            fmt_secondary(v.secondary_total if v else None),
            style=style,
        )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        f"{total.priced}/{total.tracked} priced",
        "",
        f"[bold]{fmt_quote(total.quote_sum)}[/bold]",
        f"[bold]{fmt_secondary(total.secondary_sum)}[/bold]",
    )
    return table


def watch(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by symbol substring"),
    sort: Optional[SortOrder] = typer.Option(SortOrder.ALPHABETICAL, "--sort", help="Sort order"),
):
    """Stream prices and show live valuations."""
    console.print(f"[bold]Watching[/bold] {settings.feed_url}")
    console.print(f"  Refresh: every {settings.recompute_interval_seconds}s and on every change\n")

    async def _watch():
        engine = ValuationEngine(build_gateway(settings), settings=settings)
        async with engine:
            with Live(build_table(engine, search, sort), console=console, auto_refresh=False) as live:
                def redraw(*_):
                    live.update(build_table(engine, search, sort), refresh=True)

                unsubscribe = engine.aggregate.subscribe(redraw)
                engine.feed.on_state_change(redraw)
                try:
                    await asyncio.Event().wait()
                finally:
                    unsubscribe()

    try:
        run(_watch())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
