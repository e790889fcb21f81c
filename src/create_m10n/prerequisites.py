"""Pre-requisite checks for external tools.

Verifies that bun is installed and that the GitHub, Convex and Vercel CLIs
are logged in before any project files are created.  Every check is a
read-only probe: it either succeeds with an optional detail (a version or a
username) or fails, and never raises.
"""

import json
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from create_m10n.output import Output


@dataclass
class PrerequisiteResult:
    """Outcome of a single check.

    Attributes:
        ok: Whether the tool is installed and authenticated.
        detail: Version string or logged-in user, when available.
    """

    ok: bool
    detail: str | None = None


def _capture(cmd: list[str]) -> str:
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


def check_bun() -> PrerequisiteResult:
    try:
        return PrerequisiteResult(ok=True, detail=_capture(["bun", "--version"]))
    except (OSError, subprocess.CalledProcessError):
        return PrerequisiteResult(ok=False)


def check_github() -> PrerequisiteResult:
    """Check that gh has an authenticated session and resolve the login."""
    try:
        _capture(["gh", "auth", "status"])
        user = _capture(["gh", "api", "user", "--jq", ".login"])
    except (OSError, subprocess.CalledProcessError):
        return PrerequisiteResult(ok=False)
    return PrerequisiteResult(ok=True, detail=user)


def _convex_config_path() -> Path:
    return Path.home() / ".convex" / "config.json"


def check_convex() -> PrerequisiteResult:
    """Check for a stored Convex access token.

    The Convex CLI keeps its credentials in ~/.convex/config.json.  Only the
    file is inspected; no request is made to Convex.
    """
    try:
        config = json.loads(_convex_config_path().read_text())
    except (OSError, ValueError):
        return PrerequisiteResult(ok=False)

    if isinstance(config, dict) and config.get("accessToken"):
        return PrerequisiteResult(ok=True)
    return PrerequisiteResult(ok=False)


def check_vercel() -> PrerequisiteResult:
    """Run ``vercel whoami``, falling back to ``bunx vercel`` if not installed globally."""
    cmd = ["vercel", "whoami"] if shutil.which("vercel") else ["bunx", "vercel", "whoami"]
    try:
        return PrerequisiteResult(ok=True, detail=_capture(cmd))
    except (OSError, subprocess.CalledProcessError):
        return PrerequisiteResult(ok=False)


@dataclass
class Prerequisite:
    """A tool to check, and how to report it.

    Attributes:
        label: Display name for the "Checking ..." line.
        check: Function that probes the tool.
        ok_message: Success line; ``{detail}`` is replaced with the check detail.
        fail_message: Error line when the check fails.
        remediation: Command that fixes a failed check.
    """

    label: str
    check: Callable[[], PrerequisiteResult]
    ok_message: str
    fail_message: str
    remediation: str


PREREQUISITES: list[Prerequisite] = [
    Prerequisite(
        "bun",
        check_bun,
        "bun is installed (v{detail})",
        "bun is not installed",
        "curl -fsSL https://bun.sh/install | bash",
    ),
    Prerequisite(
        "GitHub CLI (gh)",
        check_github,
        "GitHub CLI authenticated as: {detail}",
        "GitHub CLI not authenticated",
        "gh auth login",
    ),
    Prerequisite(
        "Convex CLI",
        check_convex,
        "Convex CLI authenticated",
        "Convex CLI not authenticated",
        "bunx convex login",
    ),
    Prerequisite(
        "Vercel CLI",
        check_vercel,
        "Vercel CLI authenticated as: {detail}",
        "Vercel CLI not authenticated",
        "bunx vercel login",
    ),
]


def check_all(out: Output | None = None) -> bool:
    """Run every prerequisite check and report the results.

    All checks run even after a failure, so the user can fix everything in a
    single pass rather than hitting errors one at a time.

    Args:
        out: Where to print progress.  Defaults to a new ``Output``.

    Returns:
        True if every check passed.
    """
    out = out or Output()
    out.header("Checking Prerequisites")

    all_ok = True
    for prereq in PREREQUISITES:
        out.info(f"Checking {prereq.label}...")
        result = prereq.check()
        if result.ok:
            out.success(prereq.ok_message.format(detail=result.detail or ""))
        else:
            all_ok = False
            out.error(prereq.fail_message)
            out.echo(err=True)
            out.echo("  To fix, run:", err=True)
            out.echo(f"    {prereq.remediation}", err=True)
            out.echo(err=True)

    out.echo()
    if all_ok:
        out.success("All prerequisites satisfied!")
    else:
        out.error("Some prerequisites are missing. Please fix them and run again.")
    return all_ok
