"""Utility functions for rescan."""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Optional

_INTEGER = re.compile(r"[+-]?[0-9]+")

_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str) -> float:
    """Parse a duration such as ``30s``, ``1m30s`` or ``250ms`` into seconds.

    A leading ``-`` or ``+`` sign is accepted. ``0`` on its own is zero.
    Raises ValueError for anything else.
    """
    text = raw.strip()
    sign = 1.0
    if text[:1] in ("-", "+"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {raw!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration {raw!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total


def short_path(path: str) -> str:
    """Return abbreviated path showing only parent folder + name.

    Example: /very/long/path/to/Movies/Inception (2010) -> Movies/Inception (2010)
    """
    pure = PurePath(path)
    return f"{pure.parent.name}/{pure.name}"


def parse_int_or_zero(raw: Optional[str]) -> int:
    """Parse a decimal integer, returning 0 for anything that isn't one."""
    if raw is None or not _INTEGER.fullmatch(raw):
        return 0
    return int(raw)
