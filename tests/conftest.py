"""Shared test fixtures."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from create_m10n.output import Output

CONVEX_URL = "https://happy-otter-123.convex.cloud"


class FakeTools:
    """Stand-in for subprocess.run that mimics the external CLIs.

    Records every command.  Commands starting with a prefix in ``fail`` raise
    CalledProcessError; those starting with a prefix in ``missing`` raise
    FileNotFoundError.  create-convex creates the project directory with a
    package.json, and ``convex dev --once`` writes .env.local.
    """

    def __init__(self):
        self.calls: list[tuple[list[str], dict]] = []
        self.fail: set[tuple[str, ...]] = set()
        self.missing: set[tuple[str, ...]] = set()
        self.convex_url = CONVEX_URL

    def __call__(self, cmd, **kwargs):
        self.calls.append((list(cmd), kwargs))
        key = tuple(cmd)
        if any(key[: len(prefix)] == prefix for prefix in self.missing):
            raise FileNotFoundError(cmd[0])
        if any(key[: len(prefix)] == prefix for prefix in self.fail):
            raise subprocess.CalledProcessError(1, cmd)

        if key[:2] == ("bunx", "create-convex@latest"):
            project = Path(kwargs["cwd"]) / cmd[2]
            project.mkdir()
            package = {
                "name": cmd[2],
                "private": True,
                "scripts": {"dev": "old", "dev:web": "vite dev", "build": "vite build"},
            }
            (project / "package.json").write_text(json.dumps(package))
        elif key == ("bunx", "convex", "dev", "--once") and self.convex_url:
            (Path(kwargs["cwd"]) / ".env.local").write_text(
                f"# Deployment used by `npx convex dev`\n"
                f"CONVEX_DEPLOYMENT=dev:happy-otter-123\n\n"
                f"VITE_CONVEX_URL={self.convex_url}\n"
            )
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]

    def env_adds(self) -> list[tuple[str, str, str]]:
        """(name, environment, value) for every ``vercel env add`` call."""
        return [
            (cmd[4], cmd[5], kwargs.get("input"))
            for cmd, kwargs in self.calls
            if cmd[:4] == ["bunx", "vercel", "env", "add"]
        ]


@pytest.fixture()
def cli_runner():
    return CliRunner()


@pytest.fixture()
def fake_tools():
    """Patch subprocess.run in the bootstrap module with a FakeTools instance."""
    tools = FakeTools()
    with patch("create_m10n.bootstrap.subprocess.run", side_effect=tools):
        yield tools


@pytest.fixture()
def deploy_key(monkeypatch):
    """Answer the deploy key prompt with a fixed key (set .value to change it)."""

    class Answer:
        value = "prod:happy-otter-123|secret"

    monkeypatch.setattr(Output, "ask", lambda self, question: Answer.value)
    return Answer


@pytest.fixture()
def fake_home(tmp_path, monkeypatch):
    """Point Path.home() at an empty temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home
