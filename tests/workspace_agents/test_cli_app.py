from __future__ import annotations

from typer.testing import CliRunner

from workspace_agents import __version__
from workspace_agents.cli import app


def test_version_flag():
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_commands_registered():
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "init" in result.output
    assert "update" in result.output
