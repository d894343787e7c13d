"""Scan targets: remote services that can be told to re-index a folder."""

from __future__ import annotations

from typing import Protocol

from ..config import RescanConfig
from ..models import Scan


class Target(Protocol):
    def available(self) -> None:
        """Raise if the remote service can't be reached."""

    def scan(self, scan: Scan) -> None:
        """Trigger a re-index of ``scan.folder``; raise on failure."""


def build_targets(config: RescanConfig) -> list[Target]:
    """Construct every configured target. Any failure aborts startup."""
    from .plex import PlexTarget

    return [PlexTarget.new(config.plex)]
