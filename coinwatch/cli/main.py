"""Main CLI entry point using Typer."""

import logging

import typer
from rich.console import Console

from coinwatch.config import PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)

console = Console()
app = typer.Typer(
    name="coinwatch",
    help=f"{PRODUCT_NAME}: {PRODUCT_TAGLINE}",
    add_completion=False,
)


# Import and add subcommands
from coinwatch.cli.holdings import app as holdings_app
from coinwatch.cli.rate import app as rate_app
from coinwatch.cli.watch import watch

app.add_typer(holdings_app, name="holdings", help="Manage tracked holdings")
app.add_typer(rate_app, name="rate", help="Show or set the exchange rate")
app.command("watch")(watch)


ASCII_BANNER = """
[bold #F59E0B]  ___ ___ ___ _  ___      ___ _____ ___ _  _
 / __/ _ \\_ _| \\| \\ \\    / /_\\_   _/ __| || |
| (_| (_) | || .` |\\ \\/\\/ / _ \\| || (__| __ |
 \\___\\___/___|_|\\_| \\_/\\_/_/ \\_\\_| \\___|_||_|[/]

[bold #14B8A6]        Your holdings, valued on every tick.[/]
"""


@app.command()
def version():
    """Show version information with ASCII banner."""
    console.print(ASCII_BANNER)
    console.print(f"[bold]Version:[/] {PRODUCT_VERSION}")
    console.print(f"[bold]Tagline:[/] {PRODUCT_TAGLINE}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", envvar="HOST", help="Bind address"),
    port: int = typer.Option(
        3036, "--port", "-p", envvar="PORT", min=1, max=65535, help="Port to listen on"
    ),
):
    """Run the HTTP API with the live feed."""
    import uvicorn

    from coinwatch.api.app import app as api_app

    console.print(f"[bold]Serving {PRODUCT_NAME} API[/bold] on http://{host}:{port}")
    uvicorn.run(api_app, host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    app()
