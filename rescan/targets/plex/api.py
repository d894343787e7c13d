"""HTTP client for the Plex Media Server API.

Only the three calls the target needs are implemented:
- GET /                                   (server version)
- GET /library/sections                   (library catalog)
- GET /library/sections/{id}/refresh      (partial scan of one path)
"""

from __future__ import annotations

from typing import Any, Optional

import requests

from ...errors import FatalError, TargetUnavailableError
from ...logging_config import TargetLoggerAdapter
from ...models import Library


class PlexAPIClient:
    """Thin wrapper around a requests Session carrying the Plex headers."""

    def __init__(
        self,
        url: str,
        token: str,
        log: TargetLoggerAdapter,
        timeout: Optional[float],
        product: str,
        client_identifier: str,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.log = log
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "X-Plex-Token": token,
            "X-Plex-Product": product,
            "X-Plex-Client-Identifier": client_identifier,
        })

    def _get(self, path: str, params: Optional[dict[str, str]] = None) -> requests.Response:
        self.log.trace("Sending request", extra={"endpoint": path})
        try:
            res = self.session.get(
                self.url + path, params=params, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TargetUnavailableError(f"{path}: {exc}") from exc

        if 200 <= res.status_code < 300:
            return res

        status = f"{res.status_code} {res.reason or ''}".strip()
        if res.status_code == 401:
            raise FatalError(f"invalid plex token: {status}")
        raise TargetUnavailableError(f"{path}: {status}")

    def _get_json(self, path: str) -> dict[str, Any]:
        res = self._get(path)
        try:
            return res.json()
        except ValueError as exc:
            raise TargetUnavailableError(f"{path}: invalid JSON response") from exc

    def version(self) -> str:
        """Return the server version string, e.g. ``1.32.5.7349-8f4248874``."""
        data = self._get_json("/")
        try:
            return str(data["MediaContainer"]["version"])
        except (KeyError, TypeError) as exc:
            raise TargetUnavailableError("/: version missing from response") from exc

    def libraries(self) -> list[Library]:
        """Return one Library per section location, in server order."""
        data = self._get_json("/library/sections")
        libraries = []
        try:
            for directory in data["MediaContainer"].get("Directory") or []:
                for location in directory.get("Location") or []:
                    if not location.get("path"):
                        continue
                    libraries.append(
                        Library(
                            id=str(directory.get("key", "")),
                            name=directory.get("title", ""),
                            path=location.get("path", ""),
                        )
                    )
        except (KeyError, AttributeError, TypeError) as exc:
            raise TargetUnavailableError(
                "/library/sections: unexpected response"
            ) from exc
        return libraries

    def scan(self, path: str, library_id: str) -> None:
        """Ask Plex to refresh ``path`` inside the given library section."""
        self._get(f"/library/sections/{library_id}/refresh", params={"path": path})
