"""Exchange rate CLI commands."""

import typer

from coinwatch.cli.common import console, fmt_secondary, open_engine, run

app = typer.Typer()


@app.command("show")
def show_rate():
    """Show the quote-to-secondary exchange rate."""

    async def _show():
        async with open_engine() as engine:
            return engine.get_rate()

    rate = run(_show())
    console.print(f"[bold]1 USD =[/bold] {fmt_secondary(rate)}")


@app.command("set")
def set_rate(
    rate: str = typer.Argument(..., help="Secondary units per quote unit (must be > 0)"),
):
    """Store a new exchange rate."""

    async def _set():
        async with open_engine() as engine:
            return await engine.set_rate(rate)

    new_rate = run(_set())
    console.print(f"[green]Rate updated:[/green] 1 USD = {fmt_secondary(new_rate)}")
