"""Console output helpers: colors, status lines and plain-text tables.

Status lines are prefixed with a symbol that is colored only when the target
stream is a terminal and ``NO_COLOR`` is unset. Errors go to stderr; all
other output goes to stdout.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO

COLUMN_GAP = "    "
RULE = "─"


class Colors:
    """ANSI escape sequences used by the status helpers."""

    RESET = "\033[0m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO | None = None) -> bool:
    target = stream or sys.stdout
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not _supports_color(stream):
        return text
    return f"{Colors.BOLD if bold else ''}{color}{text}{Colors.RESET}"


def _status(symbol: str, color: str, message: str, stream: TextIO) -> None:
    print(f"{colorize(symbol, color, bold=True, stream=stream)} {message}", file=stream)


def print_success(message: str, stream: TextIO | None = None) -> None:
    _status("✓", Colors.GREEN, message, stream or sys.stdout)


def print_error(message: str, stream: TextIO | None = None) -> None:
    _status("✗", Colors.RED, message, stream or sys.stderr)


def print_info(message: str, stream: TextIO | None = None) -> None:
    _status("ℹ", Colors.BLUE, message, stream or sys.stdout)


def print_header(message: str, stream: TextIO | None = None) -> None:
    """Print a bold cyan section title preceded by a blank line."""
    target = stream or sys.stdout
    print("", file=target)
    print(colorize(message, Colors.CYAN, bold=True, stream=target), file=target)


def truncate(text: str, width: int) -> str:
    """Shorten ``text`` to ``width`` characters, ending with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: width - 1] + "…"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    """Render left-aligned columns with a rule under the header.

    Column widths fit the widest cell (header included); columns are
    separated by four spaces and trailing padding is kept so every row has
    the same width as the rule.
    """
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _line(cells: Sequence[str]) -> str:
        return COLUMN_GAP.join(cell.ljust(widths[idx]) for idx, cell in enumerate(cells))

    lines = [_line(headers), RULE * (sum(widths) + len(COLUMN_GAP) * (len(widths) - 1))]
    lines.extend(_line(row) for row in rows)
    return lines


def print_table(
    headers: Sequence[str], rows: Sequence[Sequence[str]], stream: TextIO | None = None
) -> None:
    stream = stream or sys.stdout
    for line in render_table(headers, rows):
        print(line, file=stream)


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
