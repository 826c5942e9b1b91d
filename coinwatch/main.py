"""Main entry point for the API server (``python -m coinwatch.main``)."""

import typer

from coinwatch.cli.main import serve


if __name__ == "__main__":
    typer.run(serve)
