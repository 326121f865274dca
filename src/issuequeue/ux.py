"""Terminal output for the issuequeue CLI.

Colour is only emitted on a TTY, and never when ``NO_COLOR`` is set or
``TERM=dumb``. Everything else (piped output, ``--json``) stays plain.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO


class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"


RULE_WIDTH = 60

# Doctor values that read as healthy or as absent
_GOOD_STATUS = frozenset({"yes", "true", "enabled"})
_ABSENT_STATUS = frozenset({"no", "false", "disabled", "missing", "defaults"})


def _supports_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not _supports_color(stream or sys.stdout):
        return text
    return f"{Colors.BOLD if bold else ''}{color}{text}{Colors.RESET}"


def _print_marked(mark: str, color: str, message: str, stream: TextIO) -> None:
    print(f"{colorize(mark, color, bold=True, stream=stream)} {message}", file=stream)


def print_success(message: str, stream: TextIO | None = None) -> None:
    _print_marked("✓", Colors.GREEN, message, stream or sys.stdout)


def print_error(message: str, stream: TextIO | None = None) -> None:
    _print_marked("✗", Colors.RED, message, stream or sys.stderr)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    _print_marked("⚠", Colors.YELLOW, message, stream or sys.stdout)


def print_header(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize(message, Colors.CYAN, bold=True, stream=stream), file=stream)


def print_record(title: str, description: str, stream: TextIO | None = None) -> None:
    """Two-line queue entry: the title, then a dimmed ``#number - repo`` line."""
    stream = stream or sys.stdout
    print(f"  {title}", file=stream)
    print(f"    {colorize(description, Colors.DIM, stream=stream)}", file=stream)


def format_status(value: str | int, stream: TextIO | None = None) -> str:
    """Colour a doctor value: counts and healthy flags green, absent ones dim."""
    text = str(value)
    if isinstance(value, int) and value > 0:
        return colorize(text, Colors.GREEN, bold=True, stream=stream)
    if text.lower() in _GOOD_STATUS:
        return colorize(text, Colors.GREEN, stream=stream)
    if text.lower() in _ABSENT_STATUS:
        return colorize(text, Colors.DIM, stream=stream)
    return text


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    """Print ``title`` and aligned ``key  value`` rows between two rules."""
    stream = stream or sys.stdout
    width = max((len(k) for k, _ in items), default=0)
    rule = colorize("─" * RULE_WIDTH, Colors.DIM, stream=stream)

    print(colorize(f"\n{title}", Colors.CYAN, bold=True, stream=stream), file=stream)
    print(rule, file=stream)
    for key, value in items:
        print(f"  {key.ljust(width)}  {format_status(value, stream=stream)}", file=stream)
    print(rule, file=stream)
