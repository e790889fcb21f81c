"""Tests for the CLI interface."""

from pathlib import Path
from unittest.mock import ANY, patch

import pytest

from create_m10n import __version__
from create_m10n.cli import cli

# ---- version and help ----


def test_version(cli_runner):
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_without_name_exits_1(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 1
    assert "Usage:" in result.output
    assert "--skip-checks" in result.output
    assert "bunx convex login" in result.output


def test_help_with_name_exits_0(cli_runner):
    with patch("create_m10n.bootstrap.create_project") as mock:
        result = cli_runner.invoke(cli, ["myapp", "-h"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    mock.assert_not_called()


def test_no_arguments_shows_help(cli_runner):
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 1
    assert "Usage:" in result.output


# ---- project name ----


@pytest.mark.parametrize("name", ["1app", "_app", "my app", "my/app", "app.js", "myapp\n"])
def test_invalid_name_exits_1(cli_runner, name):
    with patch("create_m10n.bootstrap.create_project") as mock:
        result = cli_runner.invoke(cli, ["--skip-checks", name])
    assert result.exit_code == 1
    assert "Invalid project name" in result.output
    mock.assert_not_called()


def test_name_starting_with_hyphen_is_a_flag(cli_runner):
    """'-app' is treated as an (ignored) flag, so no project name is given."""
    result = cli_runner.invoke(cli, ["-app"])
    assert result.exit_code == 1
    assert "Usage:" in result.output


def test_first_bare_word_is_the_project_name(cli_runner):
    with patch("create_m10n.bootstrap.create_project") as mock:
        result = cli_runner.invoke(cli, ["-s", "first", "second"])
    assert result.exit_code == 0
    mock.assert_called_once_with("first", out=ANY)


def test_unknown_flags_ignored(cli_runner):
    with patch("create_m10n.bootstrap.create_project") as mock:
        result = cli_runner.invoke(cli, ["--verbose", "myapp", "--skip-checks", "-x"])
    assert result.exit_code == 0
    mock.assert_called_once_with("myapp", out=ANY)


# ---- prerequisite checks ----


def test_skip_checks_does_not_check(cli_runner):
    with (
        patch("create_m10n.prerequisites.check_all") as check,
        patch("create_m10n.bootstrap.create_project") as create,
    ):
        result = cli_runner.invoke(cli, ["myapp", "--skip-checks"])
    assert result.exit_code == 0
    check.assert_not_called()
    create.assert_called_once()


def test_checks_pass_then_creates(cli_runner):
    with (
        patch("create_m10n.prerequisites.check_all", return_value=True) as check,
        patch("create_m10n.bootstrap.create_project") as create,
    ):
        result = cli_runner.invoke(cli, ["myapp"])
    assert result.exit_code == 0
    check.assert_called_once()
    create.assert_called_once_with("myapp", out=ANY)
    assert "Bootstrap: Convex + TanStack Start + Vercel" in result.output


def test_checks_fail_exits_1(cli_runner):
    with (
        patch("create_m10n.prerequisites.check_all", return_value=False),
        patch("create_m10n.bootstrap.create_project") as create,
    ):
        result = cli_runner.invoke(cli, ["myapp"])
    assert result.exit_code == 1
    create.assert_not_called()


# ---- errors ----


def test_unexpected_error_exits_1(cli_runner):
    with patch("create_m10n.bootstrap.create_project", side_effect=RuntimeError("boom")):
        result = cli_runner.invoke(cli, ["myapp", "-s"])
    assert result.exit_code == 1
    assert "An error occurred" in result.output
    assert "boom" in result.output


def test_existing_directory_exits_without_generator(cli_runner):
    """--skip-checks with an existing directory fails before any external call."""
    with (
        cli_runner.isolated_filesystem(),
        patch("create_m10n.bootstrap.subprocess.run") as mock_run,
    ):
        Path("myapp").mkdir()
        result = cli_runner.invoke(cli, ["--skip-checks", "myapp"])

    assert result.exit_code == 1
    assert "already exists" in result.output
    mock_run.assert_not_called()


def test_end_to_end_with_fake_tools(cli_runner, fake_tools):
    """The full command creates the project using the current directory."""
    with cli_runner.isolated_filesystem():
        result = cli_runner.invoke(cli, ["myapp", "-s"], input="\n")
        created = Path("myapp", "vercel.json").exists()

    assert result.exit_code == 0, result.output
    assert created
    assert "Setup Complete!" in result.output
    # Skipping the deploy key leaves only the URL to push.
    assert {name for name, _, _ in fake_tools.env_adds()} == {"VITE_CONVEX_URL"}
