"""Terminal output helpers.

Every user-facing line goes through an ``Output`` instance so the prerequisite
checks and bootstrap steps never format text themselves.  Errors go to stderr,
everything else to stdout.
"""

import click

RULE = "━" * 60


class Output:
    """Small formatting capability passed to the checker and bootstrapper."""

    def __init__(self, color: bool | None = None):
        # None lets click decide based on whether the stream is a terminal.
        self.color = color

    def echo(self, message: str = "", err: bool = False) -> None:
        click.echo(message, err=err, color=self.color)

    def header(self, title: str) -> None:
        self.echo()
        self.echo(click.style(RULE, fg="blue"))
        self.echo(click.style(f"  {title}", fg="blue"))
        self.echo(click.style(RULE, fg="blue"))
        self.echo()

    def info(self, message: str) -> None:
        self.echo(f"{click.style('▸', fg='blue')} {message}")

    def success(self, message: str) -> None:
        self.echo(f"{click.style('✓', fg='green')} {message}")

    def warning(self, message: str) -> None:
        self.echo(f"{click.style('⚠', fg='yellow')} {message}")

    def error(self, message: str) -> None:
        self.echo(f"{click.style('✗', fg='red')} {message}", err=True)

    def ask(self, question: str) -> str:
        """Prompt for a single line; an empty answer is returned as ""."""
        answer = click.prompt(
            f"{click.style('?', fg='yellow')} {question}",
            default="",
            show_default=False,
            prompt_suffix=" ",
        )
        return answer.strip()
