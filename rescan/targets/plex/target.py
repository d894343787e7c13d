"""Plex scan target.

Construction checks the server version and loads the library catalog once.
Each scan rewrites the folder, picks every library whose path is a prefix of
it and triggers a refresh for each one in catalog order.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from ...config import PlexConfig
from ...errors import ConfigError, FatalError, NoLibrariesError
from ...logging_config import TargetLoggerAdapter, get_target_logger
from ...models import Library, Scan
from ...rewrite import Rewriter, new_rewriter
from ...utils import parse_duration, parse_int_or_zero
from .api import PlexAPIClient

DEFAULT_PRODUCT = "rescan"
DEFAULT_CLIENT_IDENTIFIER = "rescan"

MIN_MAJOR = 1
MIN_MINOR = 20


def parse_timeout(raw: str) -> Optional[float]:
    """Return the request timeout in seconds, or None for no timeout."""
    if not raw or not raw.strip():
        return None

    try:
        timeout = parse_duration(raw)
    except ValueError as exc:
        raise ConfigError(f"invalid plex timeout {raw!r}: {exc}") from exc

    if timeout <= 0:
        raise ConfigError(f"invalid plex timeout {raw!r}: must be greater than zero")
    return timeout


def default_client_identifier(raw_url: str) -> str:
    """Derive a client identifier from the server's host, without ``www.``."""
    try:
        host = urlsplit(raw_url).netloc.rpartition("@")[2]
    except ValueError:
        return DEFAULT_CLIENT_IDENTIFIER

    host = host.removeprefix("www.")
    if not host:
        return DEFAULT_CLIENT_IDENTIFIER
    return f"{DEFAULT_CLIENT_IDENTIFIER}-{host}"


def is_supported_version(version: str) -> bool:
    """Plex 1.20 and newer is supported. Non-numeric parts count as 0."""
    parts = version.split(".")
    if len(parts) < 2:
        return False

    major = parse_int_or_zero(parts[0])
    minor = parse_int_or_zero(parts[1])
    return major > MIN_MAJOR or (major == MIN_MAJOR and minor >= MIN_MINOR)


class PlexTarget:
    """Dispatch scans to the matching Plex libraries.

    The library catalog is fixed at construction; libraries added in Plex
    afterwards are only picked up after a restart.
    """

    def __init__(
        self,
        url: str,
        libraries: tuple[Library, ...],
        api: PlexAPIClient,
        rewrite: Rewriter,
        log: TargetLoggerAdapter,
    ):
        self.url = url
        self.libraries = libraries
        self.api = api
        self.rewrite = rewrite
        self.log = log

    @classmethod
    def new(
        cls,
        config: PlexConfig,
        log: Optional[TargetLoggerAdapter] = None,
        api: Optional[PlexAPIClient] = None,
    ) -> "PlexTarget":
        """Build a ready target or raise.

        Raises ConfigError for bad settings, FatalError for an unsupported
        server and TargetUnavailableError if the server can't be reached.
        """
        log = log or get_target_logger("plex", config.url, config.verbosity)

        rewriter = new_rewriter(config.rewrite)
        timeout = parse_timeout(config.timeout)

        product = config.product
        if not product.strip():
            product = DEFAULT_PRODUCT

        client_identifier = config.client_identifier
        if not client_identifier.strip():
            client_identifier = default_client_identifier(config.url)

        if api is None:
            api = PlexAPIClient(
                config.url, config.token, log, timeout, product, client_identifier
            )

        version = api.version()
        log.debug(f"Plex version: {version}")
        if not is_supported_version(version):
            raise FatalError(f"plex running unsupported version {version}")

        libraries = tuple(api.libraries())
        log.debug(f"Retrieved {len(libraries)} libraries: {list(libraries)}")

        return cls(config.url, libraries, api, rewriter, log)

    def available(self) -> None:
        self.api.version()

    def scan(self, scan: Scan) -> None:
        folder = self.rewrite(scan.folder)

        try:
            libraries = self.resolve(folder)
        except NoLibrariesError as exc:
            self.log.warning(f"No target libraries found: {exc}")
            return

        for library in libraries:
            context = {"path": folder, "library": library.name}
            self.log.trace("Sending scan request", extra=context)
            self.api.scan(folder, library.id)
            self.log.info("Scan moved to target", extra=context)

    def resolve(self, folder: str) -> list[Library]:
        """Return the libraries whose path is a string prefix of ``folder``.

        The comparison is on raw strings: ``/media/Mov`` matches
        ``/media/Movies2/...``.
        """
        libraries = [lib for lib in self.libraries if folder.startswith(lib.path)]
        if not libraries:
            raise NoLibrariesError(f"{folder}: failed determining libraries")
        return libraries
