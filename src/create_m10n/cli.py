"""CLI entry point for create-m10n."""

import sys

import click

from create_m10n import __version__
from create_m10n.output import Output

HELP_TEXT = """
{title}

Create a Convex + TanStack Start project for Vercel.

{usage}
  bunx create-m10n <project-name>

{options}
  -s, --skip-checks    Skip prerequisite checks
  -h, --help           Show this help message
      --version        Show the version and exit

{prerequisites}
  gh auth login        # GitHub CLI
  bunx convex login    # Convex CLI
  bunx vercel login    # Vercel CLI
"""


def _help_text() -> str:
    return HELP_TEXT.format(
        title=click.style("create-m10n", bold=True),
        usage=click.style("Usage:", bold=True),
        options=click.style("Options:", bold=True),
        prerequisites=click.style("Prerequisites:", bold=True),
    )


@click.command(
    context_settings={"ignore_unknown_options": True},
    add_help_option=False,
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("-s", "--skip-checks", is_flag=True, help="Skip prerequisite checks.")
@click.option("-h", "--help", "show_help", is_flag=True, help="Show this help message.")
@click.version_option(version=__version__, prog_name="create-m10n")
def cli(args: tuple[str, ...], skip_checks: bool, show_help: bool):
    """Create a Convex + TanStack Start project for Vercel."""
    # Unknown flags land in args; the first bare word is the project name.
    project_name = next((arg for arg in args if not arg.startswith("-")), None)

    if show_help or not project_name:
        click.echo(_help_text())
        sys.exit(0 if project_name else 1)

    from create_m10n.bootstrap import create_project, validate_project_name
    from create_m10n.prerequisites import check_all

    out = Output()
    try:
        validate_project_name(project_name)
    except click.BadParameter as e:
        out.error(e.message)
        sys.exit(1)

    out.header("Bootstrap: Convex + TanStack Start + Vercel")
    out.echo(f"  Project: {project_name}")
    out.echo()

    try:
        if not skip_checks and not check_all(out):
            sys.exit(1)
        create_project(project_name, out=out)
    except click.Abort:
        raise
    except Exception as e:
        out.error(f"An error occurred: {e!r}")
        sys.exit(1)
