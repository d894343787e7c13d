"""Tests for the Plex target: version gate, library resolution and dispatch."""

import pytest

from rescan.config import PlexConfig
from rescan.errors import ConfigError, FatalError, NoLibrariesError, TargetUnavailableError
from rescan.logging_config import get_target_logger
from rescan.models import Library, Scan
from rescan.rewrite import Rewrite
from rescan.targets.plex.target import (
    PlexTarget,
    default_client_identifier,
    is_supported_version,
    parse_timeout,
)


class FakePlexAPI:
    """Records scan calls; fails for library ids listed in ``fail_ids``."""

    def __init__(self, version="1.32.5", libraries=None, fail_ids=()):
        self._version = version
        self._libraries = libraries or []
        self.fail_ids = set(fail_ids)
        self.scans = []
        self.version_calls = 0

    def version(self):
        self.version_calls += 1
        if isinstance(self._version, Exception):
            raise self._version
        return self._version

    def libraries(self):
        if isinstance(self._libraries, Exception):
            raise self._libraries
        return list(self._libraries)

    def scan(self, path, library_id):
        self.scans.append((path, library_id))
        if library_id in self.fail_ids:
            raise TargetUnavailableError(f"scan failed for {library_id}")


LIBRARIES = [
    Library(id="1", name="Movies", path="/data/movies"),
    Library(id="2", name="TV", path="/data/tv"),
]


def _log():
    return get_target_logger("plex", "http://plex:32400", "trace")


def _target(api, **config):
    return PlexTarget.new(PlexConfig(url="http://plex:32400", **config), log=_log(), api=api)


@pytest.mark.parametrize(
    "version, supported",
    [
        ("2.0.0", True),
        ("1.20.0", True),
        ("1.32.5.7349-8f4248874", True),
        ("1.19.9", False),
        ("0.9.16", False),
        ("1", False),
        ("", False),
        ("abc.def", False),
    ],
)
def test_is_supported_version(version, supported):
    assert is_supported_version(version) is supported


def test_parse_timeout_blank_means_no_timeout():
    assert parse_timeout("") is None
    assert parse_timeout("   ") is None


def test_parse_timeout_durations():
    assert parse_timeout("5s") == 5
    assert parse_timeout("1m30s") == 90
    assert parse_timeout("250ms") == pytest.approx(0.25)


@pytest.mark.parametrize("raw", ["-1s", "0s", "0", "abc", "5", "5x"])
def test_parse_timeout_rejects_invalid(raw):
    with pytest.raises(ConfigError):
        parse_timeout(raw)


def test_default_client_identifier_strips_www():
    assert default_client_identifier("https://www.example.com:32400") == "rescan-example.com:32400"
    assert default_client_identifier("http://plex.local") == "rescan-plex.local"


def test_default_client_identifier_fallback():
    assert default_client_identifier("http://[::1") == "rescan"
    assert default_client_identifier("not a url") == "rescan"
    assert default_client_identifier("") == "rescan"


def test_new_rejects_unsupported_version():
    """An old server is a fatal error and the catalog is never fetched."""
    api = FakePlexAPI(version="1.19.9", libraries=TargetUnavailableError("should not be called"))
    with pytest.raises(FatalError):
        _target(api)


def test_new_propagates_transport_errors():
    api = FakePlexAPI(version=TargetUnavailableError("connection refused"))
    with pytest.raises(TargetUnavailableError, match="connection refused"):
        _target(api)

    api = FakePlexAPI(libraries=TargetUnavailableError("503"))
    with pytest.raises(TargetUnavailableError, match="503"):
        _target(api)


def test_new_rejects_bad_timeout_before_contacting_server():
    api = FakePlexAPI()
    with pytest.raises(ConfigError):
        _target(api, timeout="-1s")
    assert api.version_calls == 0


def test_new_accepts_empty_catalog():
    target = _target(FakePlexAPI(libraries=[]))
    assert target.libraries == ()

    target.scan(Scan(folder="/data/movies/Inception (2010)"))
    assert target.api.scans == []


def test_resolve_literal_prefix_match():
    target = _target(FakePlexAPI(libraries=LIBRARIES))
    assert target.resolve("/data/movies/Inception (2010)") == [LIBRARIES[0]]
    assert target.resolve("/data/tv/Show/Season 1") == [LIBRARIES[1]]

    with pytest.raises(NoLibrariesError):
        target.resolve("/data/music/Album")


def test_resolve_matches_mid_segment_prefix():
    """Prefixes are compared as raw strings, not path components."""
    libraries = [Library(id="1", name="Mov", path="/media/Mov")]
    target = _target(FakePlexAPI(libraries=libraries))
    assert target.resolve("/media/Movies2/Film") == libraries


def test_resolve_returns_overlapping_libraries_in_catalog_order():
    libraries = [
        Library(id="3", name="All", path="/data"),
        Library(id="1", name="Movies", path="/data/movies"),
        Library(id="2", name="TV", path="/data/tv"),
    ]
    target = _target(FakePlexAPI(libraries=libraries))
    assert [lib.id for lib in target.resolve("/data/movies/x")] == ["3", "1"]


def test_scan_end_to_end_single_library():
    api = FakePlexAPI(libraries=LIBRARIES)
    target = _target(api)

    target.scan(Scan(folder="/data/movies/Inception (2010)"))

    assert api.scans == [("/data/movies/Inception (2010)", "1")]


def test_scan_without_match_is_a_noop():
    api = FakePlexAPI(libraries=LIBRARIES)
    target = _target(api)

    assert target.scan(Scan(folder="/elsewhere/file")) is None
    assert api.scans == []


def test_scan_applies_rewrite_before_resolving():
    api = FakePlexAPI(libraries=LIBRARIES)
    target = _target(api, rewrite=(Rewrite("^/mnt/unionfs/Media/Movies", "/data/movies"),))

    target.scan(Scan(folder="/mnt/unionfs/Media/Movies/Heat (1995)"))

    assert api.scans == [("/data/movies/Heat (1995)", "1")]


def test_scan_stops_at_first_failure():
    libraries = [
        Library(id="1", name="A", path="/data"),
        Library(id="2", name="B", path="/data/movies"),
        Library(id="3", name="C", path="/data/movies/4k"),
    ]
    api = FakePlexAPI(libraries=libraries, fail_ids={"2"})
    target = _target(api)

    with pytest.raises(TargetUnavailableError, match="scan failed for 2"):
        target.scan(Scan(folder="/data/movies/4k/Dune"))

    assert api.scans == [("/data/movies/4k/Dune", "1"), ("/data/movies/4k/Dune", "2")]


def test_target_stays_usable_after_failure():
    api = FakePlexAPI(libraries=LIBRARIES, fail_ids={"1"})
    target = _target(api)

    with pytest.raises(TargetUnavailableError):
        target.scan(Scan(folder="/data/movies/A"))
    target.scan(Scan(folder="/data/tv/B"))

    assert api.scans[-1] == ("/data/tv/B", "2")


def test_available_surfaces_transport_error():
    api = FakePlexAPI(libraries=LIBRARIES)
    target = _target(api)
    target.available()

    api._version = TargetUnavailableError("timed out")
    with pytest.raises(TargetUnavailableError, match="timed out"):
        target.available()
