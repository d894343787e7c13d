"""Tests for the Plex HTTP client."""

from unittest.mock import Mock

import pytest
import requests

from rescan.errors import FatalError, TargetUnavailableError
from rescan.logging_config import get_target_logger
from rescan.models import Library
from rescan.targets.plex.api import PlexAPIClient


def _response(status_code=200, json_data=None, reason="OK"):
    res = Mock()
    res.status_code = status_code
    res.reason = reason
    if isinstance(json_data, Exception):
        res.json.side_effect = json_data
    else:
        res.json.return_value = json_data
    return res


def _client(session, timeout=30.0):
    log = get_target_logger("plex", "http://plex:32400", "info")
    return PlexAPIClient(
        "http://plex:32400/", "secret", log, timeout, "rescan", "rescan-plex", session=session
    )


def _session(*responses):
    session = Mock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


def test_client_sets_plex_headers():
    session = _session()
    _client(session)
    assert session.headers["X-Plex-Token"] == "secret"
    assert session.headers["X-Plex-Product"] == "rescan"
    assert session.headers["X-Plex-Client-Identifier"] == "rescan-plex"
    assert session.headers["Accept"] == "application/json"


def test_version():
    session = _session(_response(json_data={"MediaContainer": {"version": "1.32.5.7349"}}))
    assert _client(session, timeout=5.0).version() == "1.32.5.7349"
    session.get.assert_called_once_with("http://plex:32400/", params=None, timeout=5.0)


def test_libraries_flattens_locations():
    payload = {
        "MediaContainer": {
            "Directory": [
                {
                    "key": "1",
                    "title": "Movies",
                    "Location": [{"path": "/data/movies"}, {"path": "/data/movies-4k"}],
                },
                {"key": "2", "title": "TV", "Location": [{"path": "/data/tv"}]},
                {"key": "3", "title": "Empty"},
            ]
        }
    }
    libraries = _client(_session(_response(json_data=payload))).libraries()
    assert libraries == [
        Library(id="1", name="Movies", path="/data/movies"),
        Library(id="1", name="Movies", path="/data/movies-4k"),
        Library(id="2", name="TV", path="/data/tv"),
    ]


def test_libraries_empty_server():
    session = _session(_response(json_data={"MediaContainer": {"size": 0}}))
    assert _client(session).libraries() == []


@pytest.mark.parametrize(
    "container",
    [
        {"Directory": ["oops"]},
        {"Directory": [{"key": "1", "Location": ["/data/movies"]}]},
        {"Directory": [{"key": "1", "Location": 3}]},
    ],
)
def test_libraries_malformed_entries_are_unavailable(container):
    session = _session(_response(json_data={"MediaContainer": container}))
    with pytest.raises(TargetUnavailableError, match="unexpected response"):
        _client(session).libraries()


def test_scan_requests_refresh_with_path():
    session = _session(_response())
    _client(session, timeout=None).scan("/data/movies/Inception (2010)", "1")
    session.get.assert_called_once_with(
        "http://plex:32400/library/sections/1/refresh",
        params={"path": "/data/movies/Inception (2010)"},
        timeout=None,
    )


def test_unauthorized_is_fatal():
    session = _session(_response(status_code=401, reason="Unauthorized"))
    with pytest.raises(FatalError, match="invalid plex token"):
        _client(session).version()


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_error_status_is_unavailable(status_code):
    session = _session(_response(status_code=status_code, reason="Error"))
    with pytest.raises(TargetUnavailableError, match=str(status_code)):
        _client(session).scan("/data/tv", "2")


def test_connection_error_is_unavailable():
    session = _session(requests.ConnectionError("connection refused"))
    with pytest.raises(TargetUnavailableError, match="connection refused"):
        _client(session).version()


def test_invalid_json_is_unavailable():
    session = _session(_response(json_data=ValueError("not json")))
    with pytest.raises(TargetUnavailableError, match="invalid JSON"):
        _client(session).version()
