"""Plain data types passed between the monitor, processor and targets."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone


@dataclasses.dataclass(frozen=True)
class Library:
    """A library on the remote service, rooted at ``path``.

    ``path`` is matched as a literal string prefix of scanned folders.
    """

    id: str
    name: str
    path: str


@dataclasses.dataclass(frozen=True)
class Scan:
    """A folder that changed and should be re-indexed."""

    folder: str
    time: datetime = dataclasses.field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )
