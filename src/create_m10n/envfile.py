"""Reader for the dotenv file written by the Convex CLI."""

from pathlib import Path

QUOTES = ('"', "'")


def _parse_line(line: str) -> tuple[str, str] | None:
    """Split one ``KEY=VALUE`` line, or return None if it holds no variable."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    key, sep, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key:
        return None

    # Only a quote that closes the value is removed; anything else stays literal.
    if value.startswith(QUOTES) and value.endswith(value[0]):
        value = value[1:-1]
    return key, value


def read_env_file(path: Path) -> dict[str, str]:
    """Parse KEY=VALUE lines from a dotenv file.

    Each line stands alone: the first ``=`` separates key from value, a value
    wrapped in matching quotes is unquoted, and everything else (``#`` after
    a value, ``export`` before a key, backslashes) is kept as written.  Blank
    lines, ``#`` comment lines and lines without ``=`` are skipped, and a key
    that appears twice keeps its last value.

    Args:
        path: Path to the dotenv file.

    Returns:
        Mapping of variable names to values, or an empty dict if the file
        does not exist or cannot be read.
    """
    try:
        content = Path(path).read_text()
    except (OSError, UnicodeDecodeError):
        return {}

    env = {}
    for line in content.split("\n"):
        parsed = _parse_line(line)
        if parsed is not None:
            key, value = parsed
            env[key] = value
    return env
