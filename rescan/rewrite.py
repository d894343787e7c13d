"""Path rewriting between the local filesystem and the remote service.

Rules are regular expressions applied in order; the first rule that matches
a path rewrites it and the remaining rules are skipped.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Callable, Iterable

from .errors import ConfigError

Rewriter = Callable[[str], str]

# Go-style replacement references: $name, ${name} and $$ for a literal $.
# A name is the longest run of letters, digits and underscores.
_GO_REFERENCE = re.compile(r"\$(?:\$|\{(\w+)\}|(\w+))")


@dataclasses.dataclass(frozen=True)
class Rewrite:
    from_pattern: str
    to: str


def parse_rewrite_rule(line: str) -> Rewrite:
    """Parse a ``FROM -> TO`` config line into a Rewrite rule."""
    if "->" not in line:
        raise ConfigError(f"invalid rewrite rule {line!r}: expected 'FROM -> TO'")
    from_pattern, to = line.split("->", 1)
    from_pattern = from_pattern.strip()
    if not from_pattern:
        raise ConfigError(f"invalid rewrite rule {line!r}: empty pattern")
    return Rewrite(from_pattern=from_pattern, to=to.strip())


def _translate_replacement(pattern: re.Pattern, to: str) -> str:
    """Turn a Go replacement template into a Python one for ``pattern``.

    References to groups the pattern doesn't have expand to nothing.
    """

    def reference(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name is None:
            return "$"
        if name.isdigit():
            if int(name) > pattern.groups:
                return ""
        elif name not in pattern.groupindex:
            return ""
        return "\\g<" + name + ">"

    return _GO_REFERENCE.sub(reference, to.replace("\\", "\\\\"))


def new_rewriter(rules: Iterable[Rewrite]) -> Rewriter:
    """Compile rules into a rewriter function.

    Raises ConfigError if any pattern is not a valid regular expression.
    """
    compiled = []
    for rule in rules:
        try:
            pattern = re.compile(rule.from_pattern)
        except re.error as exc:
            raise ConfigError(
                f"invalid rewrite pattern {rule.from_pattern!r}: {exc}"
            ) from exc
        compiled.append((pattern, _translate_replacement(pattern, rule.to)))

    def rewrite(path: str) -> str:
        for pattern, replacement in compiled:
            if pattern.search(path):
                return pattern.sub(replacement, path)
        return path

    return rewrite
