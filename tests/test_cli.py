"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from coinwatch.cli import common
from coinwatch.cli.main import app, serve

from conftest import InMemoryGateway

runner = CliRunner()


@pytest.fixture
def gateway(monkeypatch):
    """Route every CLI command to one in-memory store."""
    store = InMemoryGateway()
    monkeypatch.setattr(common, "build_gateway", lambda settings: store)
    return store


class TestCli:
    """Tests for the Typer commands."""

    def test_version(self):
        """Should print the product version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_add_and_list(self, gateway):
        """Should add a holding and show it in the table."""
        added = runner.invoke(app, ["holdings", "add", "btcusdt", "0.5"])
        listed = runner.invoke(app, ["holdings", "list"])

        assert added.exit_code == 0
        assert "BTCUSDT" in added.output
        assert listed.exit_code == 0
        assert "BTCUSDT" in listed.output

    def test_remove_with_force(self, gateway):
        """Should remove without confirmation when forced."""
        runner.invoke(app, ["holdings", "add", "ETHUSDT", "2"])

        result = runner.invoke(app, ["holdings", "remove", "ethusdt", "--force"])

        assert result.exit_code == 0
        assert gateway.holdings == {}

    def test_unknown_symbol_fails(self, gateway):
        """Should exit non-zero for an unknown symbol."""
        result = runner.invoke(app, ["holdings", "resize", "DOGEUSDT", "1"])

        assert result.exit_code == 1
        assert "not tracked" in result.output

    def test_invalid_rate_fails(self, gateway):
        """Should exit non-zero for an invalid rate."""
        result = runner.invoke(app, ["rate", "set", "0"])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert gateway.rate is None

    def test_set_rate(self, gateway):
        """Should store the rate given on the command line."""
        result = runner.invoke(app, ["rate", "set", "90"])

        assert result.exit_code == 0
        assert "90.00" in result.output

    def test_serve_reads_port_from_environment(self, monkeypatch):
        """Should start uvicorn on the port given by the PORT variable."""
        import uvicorn

        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

        result = runner.invoke(app, ["serve"], env={"PORT": "4040"})

        assert result.exit_code == 0
        assert calls[0]["port"] == 4040

    def test_module_entry_point_delegates_to_serve(self):
        """Should run the same command as the serve subcommand."""
        from coinwatch import main

        assert main.serve is serve
