"""Plex Media Server target."""

from .api import PlexAPIClient
from .target import PlexTarget, is_supported_version, parse_timeout

__all__ = ["PlexAPIClient", "PlexTarget", "is_supported_version", "parse_timeout"]
