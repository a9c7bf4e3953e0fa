# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for Beam: text fitting, coloring, tables and row parsing
for ``beam filter``.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from prompt_toolkit.utils import get_cwidth

from .config import ANSI_COLORS


def colorize(text: str, *colors: str) -> str:
    """Wrap text in the named ANSI_COLORS codes."""
    if not text or not colors:
        return text
    prefix = "".join(ANSI_COLORS[c] for c in colors)
    return f"{prefix}{text}{ANSI_COLORS['reset']}"


def truncate(text: str, width: int, ellipsis: str = "…") -> str:
    """Cut plain text to at most ``width`` terminal cells."""
    if width <= 0:
        return ""
    if get_cwidth(text) <= width:
        return text

    out: list[str] = []
    used = 0
    limit = width - get_cwidth(ellipsis)
    for ch in text:
        w = get_cwidth(ch)
        if used + w > limit:
            break
        out.append(ch)
        used += w
    return "".join(out) + ellipsis


def pad(text: str, width: int) -> str:
    """Truncate then right-pad plain text to exactly ``width`` cells."""
    text = truncate(text, width)
    return text + " " * max(0, width - get_cwidth(text))


def format_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str = ""
) -> str:
    """
    Format data as a simple text table.

    Args:
        headers: List of column header names
        rows: List of rows, where each row is a list of values
        title: Optional title to display above the table

    Returns:
        Formatted table as a string ("" when there are no rows)
    """
    if not rows:
        return ""

    str_headers = [str(h) for h in headers]
    str_rows = [[str(val) for val in row] for row in rows]

    col_widths = [
        max([len(header)] + [len(r[i]) for r in str_rows if i < len(r)])
        for i, header in enumerate(str_headers)
    ]

    lines = [title] if title else []
    for row in [str_headers, *str_rows]:
        cells = [val.ljust(col_widths[i]) for i, val in enumerate(row)]
        lines.append("  ".join(cells).rstrip())

    return "\n".join(lines)


# -----------------------
# beam filter rows
# -----------------------


def split_rows(data: bytes) -> list[str]:
    """Split stdin into rows, dropping surrounding blank space."""
    text = data.decode("utf-8", errors="replace").strip()
    if not text:
        return []
    sep = "\r\n" if os.name == "nt" else "\n"
    return text.split(sep)


def safe_get(tokens: Sequence[str], idx: int) -> str:
    """1-based token lookup; 0 or out of range gives ""."""
    if idx <= 0 or idx > len(tokens):
        return ""
    return tokens[idx - 1]


def parse_row(
    row: str, delimiter: str, with_nth: Sequence[int] | None = None
) -> tuple[str, str, list[str]]:
    """Split a row into (title, subtitle, accessories).

    Without ``with_nth`` the first field is the title, the second the
    subtitle and the rest accessories. With it, the listed 1-based fields
    are used in that order.
    """
    tokens = row.split(delimiter)
    if with_nth:
        title = safe_get(tokens, with_nth[0])
        subtitle = safe_get(tokens, with_nth[1]) if len(with_nth) > 1 else ""
        accessories = [safe_get(tokens, n) for n in with_nth[2:]]
        return title, subtitle, accessories

    title = tokens[0]
    subtitle = tokens[1] if len(tokens) > 1 else ""
    return title, subtitle, tokens[2:]
