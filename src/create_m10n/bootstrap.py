"""Implementation of project creation.

Creating a project is a fixed list of steps run in order by run_steps():

1. Each step receives the ProjectContext and returns a StepResult whose
   Outcome is SUCCEEDED, FAILED or FATAL.
2. FATAL stops the run and exits with status 1.  Nothing is rolled back; the
   partially created project is left on disk.
3. FAILED steps are recorded and the run continues.  Their remediations (the
   commands that finish the step by hand) are printed together once every
   step has run, followed by the summary.

Every external command runs with the project root as its working directory.
The process working directory is never changed.
"""

import json
import re
import shlex
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from importlib.resources import files
from pathlib import Path
from typing import Callable

import click

from create_m10n import (
    CONVEX_DASHBOARD_URL,
    CONVEX_ENV_FILE,
    CONVEX_TEMPLATE,
    CONVEX_URL_VAR,
    DEPLOY_ENVIRONMENTS,
    DEPLOY_KEY_VAR,
    INITIAL_COMMIT_MESSAGE,
    VERCEL_DASHBOARD_URL,
)
from create_m10n.envfile import read_env_file
from create_m10n.output import Output

PROJECT_NAME_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9_-]*")

# Scripts written into package.json.  Any other script, including the
# template's own dev:web, is left alone.
PACKAGE_SCRIPTS = {
    "dev": "bunx convex dev --once && concurrently -r bun:dev:web bun:dev:convex",
    "dev:convex": "bunx convex dev",
    "start": "bun .output/server/index.mjs",
}

NITRO_PACKAGE = "nitro@npm:nitro-nightly@latest"

# Raised by subprocess.run when a binary is missing or exits non-zero.
COMMAND_ERRORS = (OSError, subprocess.CalledProcessError)


class Outcome(Enum):
    """How a step finished."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"  # recoverable, finish by hand later
    FATAL = "fatal"  # nothing downstream can run


@dataclass
class Remediation:
    """Manual instructions that complete a failed step.

    Attributes:
        title: One-line description of what is left to do.
        lines: Commands or instructions, one per line.
    """

    title: str
    lines: list[str] = field(default_factory=list)


@dataclass
class StepResult:
    outcome: Outcome
    message: str = ""
    remediations: list[Remediation] = field(default_factory=list)


@dataclass
class ProjectContext:
    """State shared by the bootstrap steps.

    Attributes:
        name: The project name given on the command line.
        project_dir: Absolute path of the project root.
        convex_url: Deployment URL read from .env.local ("" if unknown).
        deploy_key: Convex deploy key entered by the user ("" if skipped).
        vercel_linked: Whether ``vercel link`` succeeded.
    """

    name: str
    project_dir: Path
    convex_url: str = ""
    deploy_key: str = ""
    vercel_linked: bool = False


@dataclass
class Step:
    """A named bootstrap step.

    Attributes:
        title: Section header printed before the step runs, if any.
        action: Function that performs the step.
        when: Optional predicate; the step is skipped when it returns False.
    """

    title: str | None
    action: Callable[[ProjectContext, Output], StepResult]
    when: Callable[[ProjectContext], bool] | None = None


def _ok(message: str = "") -> StepResult:
    return StepResult(Outcome.SUCCEEDED, message)


def _failed(message: str, *remediations: Remediation) -> StepResult:
    return StepResult(Outcome.FAILED, message, list(remediations))


def _fatal(message: str, *remediations: Remediation) -> StepResult:
    return StepResult(Outcome.FATAL, message, list(remediations))


def validate_project_name(name: str) -> str:
    """Check that a project name is usable as a directory and repository name.

    Args:
        name: The raw project name from the user.

    Returns:
        The name, unchanged.

    Raises:
        click.BadParameter: If the name is invalid.
    """
    if not PROJECT_NAME_PATTERN.fullmatch(name):
        raise click.BadParameter(
            "Invalid project name. Use letters, numbers, hyphens, underscores. "
            "Start with a letter."
        )
    return name


def _get_templates_dir() -> Path:
    """Get the path to the bundled templates directory."""
    return Path(str(files("create_m10n") / "templates"))


def _run(
    cmd: list[str],
    cwd: Path,
    stream: bool = False,
    input_text: str | None = None,
) -> subprocess.CompletedProcess:
    """Run an external command, raising on failure.

    Args:
        cmd: The command and arguments to run.
        cwd: Working directory for the command.
        stream: If True, inherit stdin/stdout/stderr so the tool can print
            progress and ask questions.
        input_text: Text piped to the command's stdin (ignored when streaming).

    Returns:
        The completed process result.
    """
    if stream:
        return subprocess.run(cmd, cwd=cwd, check=True)
    return subprocess.run(
        cmd, cwd=cwd, check=True, capture_output=True, text=True, input=input_text
    )


def _cleanup_hint(ctx: ProjectContext) -> list[Remediation]:
    if not ctx.project_dir.exists():
        return []
    return [
        Remediation("To clean up the partially created project:", [f"rm -rf {ctx.project_dir}"])
    ]


def _dashboard_remediation(ctx: ProjectContext, names: list[str]) -> Remediation:
    """Instructions for adding variables by hand in the Vercel dashboard."""
    lines = [
        f"1. Go to: {VERCEL_DASHBOARD_URL}",
        f"2. Select: {ctx.name} → Settings → Environment Variables",
        "3. Add:",
    ]
    sources = {
        CONVEX_URL_VAR: f"from {CONVEX_ENV_FILE}",
        DEPLOY_KEY_VAR: "from the Convex dashboard",
    }
    for name in names:
        lines.append(f"   - {name} ({sources.get(name, 'value')})")
    return Remediation(f"Add {', '.join(names)} in the Vercel dashboard:", lines)


# ---- Steps ----


def _check_directory(ctx: ProjectContext, out: Output) -> StepResult:
    if ctx.project_dir.exists():
        return _fatal(f"Directory '{ctx.name}' already exists.")
    return _ok()


def _create_from_template(ctx: ProjectContext, out: Output) -> StepResult:
    out.info(f"Running create-convex with {CONVEX_TEMPLATE} template...")
    cmd = ["bunx", "create-convex@latest", ctx.name, "-t", CONVEX_TEMPLATE]
    try:
        _run(cmd, cwd=ctx.project_dir.parent, stream=True)
    except COMMAND_ERRORS:
        return _fatal(f"Error running: {shlex.join(cmd)}", *_cleanup_hint(ctx))
    return _ok("Project created")


def _add_nitro(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Installing nitro-nightly...")
    cmd = ["bun", "add", NITRO_PACKAGE]
    try:
        _run(cmd, cwd=ctx.project_dir, stream=True)
    except COMMAND_ERRORS:
        return _fatal(f"Error running: {shlex.join(cmd)}", *_cleanup_hint(ctx))
    return _ok("Nitro installed")


def _write_template(ctx: ProjectContext, filename: str) -> StepResult:
    """Overwrite a project file with the bundled template of the same name."""
    src = _get_templates_dir() / filename
    dest = ctx.project_dir / filename
    try:
        dest.write_text(src.read_text())
    except OSError:
        return _failed(
            f"Could not write {filename}.",
            Remediation(f"Copy the bundled {filename} into the project:", [f"cp {src} {dest}"]),
        )
    return _ok(f"{filename} configured")


def _configure_vite(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Adding Nitro plugin to vite.config.ts...")
    return _write_template(ctx, "vite.config.ts")


def _configure_vercel(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Creating vercel.json...")
    return _write_template(ctx, "vercel.json")


def patch_package_scripts(path: Path) -> None:
    """Set the bun/Convex scripts in a package.json file.

    Only the entries in PACKAGE_SCRIPTS are written; every other field is
    preserved.  The file is rewritten with two-space indentation and a
    trailing newline.

    Args:
        path: Path to package.json.

    Raises:
        OSError: If the file cannot be read or written.
        ValueError: If the file is not a JSON object with an object ``scripts``.
    """
    pkg = json.loads(path.read_text())
    if not isinstance(pkg, dict):
        raise ValueError("package.json is not a JSON object")

    scripts = pkg.setdefault("scripts", {})
    if not isinstance(scripts, dict):
        raise ValueError("package.json scripts is not a JSON object")
    scripts.update(PACKAGE_SCRIPTS)

    path.write_text(json.dumps(pkg, indent=2, ensure_ascii=False) + "\n")


def _update_package_json(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Patching package.json scripts...")
    try:
        patch_package_scripts(ctx.project_dir / "package.json")
    except (OSError, ValueError):
        lines = [f'"{name}": "{script}"' for name, script in PACKAGE_SCRIPTS.items()]
        return _failed(
            "Could not update package.json.",
            Remediation('Set these entries under "scripts" in package.json:', lines),
        )
    return _ok("package.json updated")


def _install_dependencies(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Running bun install...")
    try:
        _run(["bun", "install"], cwd=ctx.project_dir, stream=True)
    except COMMAND_ERRORS:
        return _failed(
            "Could not install dependencies.",
            Remediation("Install dependencies:", ["bun install"]),
        )
    return _ok("Dependencies installed")


def _init_git(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Initializing git repository...")
    commands = [
        ["git", "init"],
        ["git", "add", "."],
        ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
    ]
    for i, cmd in enumerate(commands):
        try:
            _run(cmd, cwd=ctx.project_dir)
        except COMMAND_ERRORS:
            remaining = [shlex.join(c) for c in commands[i:]]
            return _failed(
                "Could not initialize the git repository.",
                Remediation("Initialize git:", remaining),
            )
    return _ok("Git repository initialized")


def _create_github_repo(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Creating GitHub repository...")
    cmd = ["gh", "repo", "create", ctx.name, "--private", "--source=.", "--remote=origin", "--push"]
    try:
        _run(cmd, cwd=ctx.project_dir, stream=True)
    except COMMAND_ERRORS:
        return _failed(
            "Could not create GitHub repository automatically.",
            Remediation("Create the GitHub repository:", [shlex.join(cmd)]),
        )
    return _ok("GitHub repository created and pushed")


def _setup_convex(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Creating Convex project...")
    try:
        _run(["bunx", "convex", "dev", "--once"], cwd=ctx.project_dir, stream=True)
    except COMMAND_ERRORS:
        return _failed(
            "Could not initialize Convex automatically.",
            Remediation("Initialize Convex:", ["bunx convex dev"]),
        )

    env = read_env_file(ctx.project_dir / CONVEX_ENV_FILE)
    ctx.convex_url = env.get(CONVEX_URL_VAR, "")
    if ctx.convex_url:
        return _ok(f"Convex project initialized, found {CONVEX_URL_VAR}: {ctx.convex_url}")
    return _ok("Convex project initialized")


def _ask_deploy_key(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("A deploy key is required for Vercel deployments.")
    out.echo()
    out.echo(f"  1. Go to: {CONVEX_DASHBOARD_URL}")
    out.echo("  2. Select your project → Settings → Deploy Keys")
    out.echo("  3. Create a new deploy key and copy it")
    out.echo()

    ctx.deploy_key = out.ask("Paste your Convex Deploy Key (or press Enter to skip):")
    if not ctx.deploy_key:
        out.info("No deploy key provided, skipping.")
        return _ok()
    return _ok("Deploy key received")


def _link_vercel(ctx: ProjectContext, out: Output) -> StepResult:
    out.info("Linking to Vercel...")
    try:
        _run(["bunx", "vercel", "link", "--yes"], cwd=ctx.project_dir, stream=True)
    except COMMAND_ERRORS:
        return _failed(
            "Could not link Vercel automatically.",
            Remediation("Link the Vercel project:", ["bunx vercel link"]),
            _dashboard_remediation(ctx, [DEPLOY_KEY_VAR, CONVEX_URL_VAR]),
        )
    ctx.vercel_linked = True
    return _ok("Vercel project linked")


def add_vercel_env_var(
    project_dir: Path,
    name: str,
    value: str,
    environments: tuple[str, ...] = DEPLOY_ENVIRONMENTS,
) -> list[str]:
    """Add a variable to each Vercel environment, overwriting existing values.

    Each environment is attempted once, independently of the others.  The
    value is piped on stdin so it never appears in the process list.

    Args:
        project_dir: The linked project root.
        name: Variable name.
        value: Variable value.
        environments: Vercel environments to add the variable to.

    Returns:
        The environments that could not be updated (empty on full success).
    """
    failed = []
    for environment in environments:
        cmd = ["bunx", "vercel", "env", "add", name, environment, "--force"]
        try:
            _run(cmd, cwd=project_dir, input_text=value)
        except COMMAND_ERRORS:
            failed.append(environment)
    return failed


def _push_env_vars(ctx: ProjectContext, out: Output) -> StepResult:
    remediations = []
    for name, value in ((CONVEX_URL_VAR, ctx.convex_url), (DEPLOY_KEY_VAR, ctx.deploy_key)):
        if not value:
            out.warning(f"{name} not available.")
            remediations.append(_dashboard_remediation(ctx, [name]))
            continue

        out.info(f"Adding {name}...")
        failed = add_vercel_env_var(ctx.project_dir, name, value)
        if failed:
            out.warning(f"Could not add {name} to Vercel.")
            commands = [f"bunx vercel env add {name} {env} --force" for env in failed]
            remediations.append(Remediation(f"Add {name} to: {', '.join(failed)}", commands))
        else:
            out.success(f"{name} added to Vercel")

    if remediations:
        return _failed("Some environment variables must be added manually.", *remediations)
    return _ok("Environment variables added to Vercel")


STEPS: list[Step] = [
    Step(None, _check_directory),
    Step("Creating Project from Template", _create_from_template),
    Step("Adding Nitro for Vercel", _add_nitro),
    Step("Configuring Vite", _configure_vite),
    Step("Configuring Vercel", _configure_vercel),
    Step("Updating Scripts for Bun", _update_package_json),
    Step("Installing Dependencies", _install_dependencies),
    Step("Initializing Git", _init_git),
    Step("Creating GitHub Repository", _create_github_repo),
    Step("Setting Up Convex", _setup_convex),
    Step("Convex Deploy Key", _ask_deploy_key),
    Step("Setting Up Vercel", _link_vercel),
    Step(
        "Adding Environment Variables to Vercel",
        _push_env_vars,
        when=lambda ctx: ctx.vercel_linked,
    ),
]


# ---- Driver ----


def run_steps(steps: list[Step], ctx: ProjectContext, out: Output) -> list[Remediation]:
    """Run steps in order, stopping only on a fatal outcome.

    Args:
        steps: The steps to run.
        ctx: Shared project state, updated by the steps.
        out: Where to print progress.

    Returns:
        Remediations collected from every FAILED step, in step order.
    """
    remediations: list[Remediation] = []
    for step in steps:
        if step.when is not None and not step.when(ctx):
            continue
        if step.title:
            out.header(step.title)

        result = step.action(ctx, out)

        if result.outcome is Outcome.FATAL:
            out.error(result.message)
            for remediation in result.remediations:
                out.echo(err=True)
                out.echo(remediation.title, err=True)
                for line in remediation.lines:
                    out.echo(f"  {line}", err=True)
            sys.exit(1)

        if result.outcome is Outcome.FAILED:
            out.warning(result.message)
            remediations.extend(result.remediations)
        elif result.message:
            out.success(result.message)

    return remediations


def _report_remediations(ctx: ProjectContext, remediations: list[Remediation], out: Output) -> None:
    """Print the manual steps left over from failed steps."""
    if not remediations:
        return

    out.header("Action Required")
    out.echo(f"  Some steps could not be completed. From {ctx.project_dir}:")
    for remediation in remediations:
        out.echo()
        out.warning(remediation.title)
        for line in remediation.lines:
            out.echo(f"    {line}")
    out.echo()


def _print_summary(ctx: ProjectContext, out: Output) -> None:
    out.header("Setup Complete!")
    out.echo(f"  Project: {ctx.project_dir}")
    out.echo()
    out.echo(f"  {click.style('Quick Start:', fg='green')}")
    out.echo(f"    cd {ctx.name}")
    out.echo("    bun run dev")
    out.echo()
    out.echo(f"  {click.style('Deploy:', fg='green')}")
    out.echo("    bunx vercel --prod")
    out.echo()
    out.success("Happy coding!")


def create_project(name: str, out: Output | None = None, cwd: Path | None = None) -> Path:
    """Create, configure and connect a new project.

    Args:
        name: The project name; also the directory and repository name.
        out: Where to print progress.  Defaults to a new ``Output``.
        cwd: Parent directory for the project.  Defaults to the current directory.

    Returns:
        The absolute path of the created project.
    """
    out = out or Output()
    parent = Path(cwd) if cwd is not None else Path.cwd()
    ctx = ProjectContext(name=name, project_dir=parent.resolve() / name)

    remediations = run_steps(STEPS, ctx, out)

    _report_remediations(ctx, remediations, out)
    _print_summary(ctx, out)
    return ctx.project_dir
