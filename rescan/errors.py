"""Exception types shared by targets, the processor and the CLI."""

from __future__ import annotations


class RescanError(Exception):
    """Base class for all rescan errors."""


class ConfigError(RescanError):
    """Invalid or missing configuration. Raised at startup only."""


class FatalError(RescanError):
    """The target can never succeed as configured; do not retry.

    Raised for remote services below the supported version and for rejected
    credentials.
    """


class TargetUnavailableError(RescanError):
    """The remote service could not be reached or returned an error status."""


class NoLibrariesError(RescanError):
    """No configured library contains the scanned folder."""
