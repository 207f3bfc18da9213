from __future__ import annotations

import os
import sys

from rich import print
from rich.markup import escape


_VERBOSE_ENV_KEY = "SWATCHGEN_VERBOSE"


def _env_level() -> int:
    raw = os.getenv(_VERBOSE_ENV_KEY, "").strip()
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


_LEVEL: int = _env_level()


def verbosity() -> int:
    """Return the current verbosity level (0 = quiet, 1 = info, 2+ = debug)."""

    return _LEVEL


def set_verbosity(level: int) -> None:
    """Set verbosity globally and mirror it into the env var for child processes."""

    global _LEVEL
    _LEVEL = max(0, int(level))
    if _LEVEL:
        os.environ[_VERBOSE_ENV_KEY] = str(_LEVEL)
    else:
        os.environ.pop(_VERBOSE_ENV_KEY, None)


def debug(message: str) -> None:
    if _LEVEL >= 2:
        print(f"[dim]{escape(message)}[/dim]", file=sys.stderr, flush=True)


def info(message: str) -> None:
    if _LEVEL >= 1:
        print(escape(message), file=sys.stderr, flush=True)


def warn(message: str) -> None:
    print(f"[yellow]{escape(message)}[/yellow]", file=sys.stderr, flush=True)


def error(message: str) -> None:
    print(f"[red]{escape(message)}[/red]", file=sys.stderr, flush=True)
