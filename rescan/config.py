"""Config management for rescan.

Reads `config.ini` from the data directory (beside main.py unless DATA_DIR is set).
When running as PyInstaller onefile, PROJECT_ROOT is the directory containing the executable.
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
import re
import sys
from typing import Optional

from .errors import ConfigError
from .logging_config import get_logger
from .rewrite import Rewrite, parse_rewrite_rule

logger = get_logger(__name__)

def _get_project_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parents[1]


PROJECT_ROOT = _get_project_root()

# DATA_DIR holds config.ini and rescan.log.
# Set via env var for Docker; defaults to PROJECT_ROOT for standalone use.
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"

REDACTED_KEYS = ("token", "password", "api_key")


@dataclasses.dataclass(frozen=True)
class PlexConfig:
    url: str
    token: str = ""
    rewrite: tuple[Rewrite, ...] = ()
    verbosity: str = "info"
    timeout: str = ""
    product: str = ""
    client_identifier: str = ""


@dataclasses.dataclass(frozen=True)
class MonitoringConfig:
    enabled: bool = True
    paths: tuple[str, ...] = ()
    debounce_seconds: int = 2
    batch_window: float = 1.0
    retry_delay: float = 10.0


@dataclasses.dataclass(frozen=True)
class WebUIConfig:
    """Dashboard bind address and credentials. If both set, basic auth is required."""

    host: str = "0.0.0.0"
    port: int = 4040
    username: str = ""
    password: str = ""

    @property
    def auth_enabled(self) -> bool:
        return bool(self.username.strip() and self.password)


@dataclasses.dataclass(frozen=True)
class RescanConfig:
    plex: PlexConfig
    monitoring: MonitoringConfig = dataclasses.field(default_factory=MonitoringConfig)
    webui: WebUIConfig = dataclasses.field(default_factory=WebUIConfig)
    log_level: str = "INFO"
    source_path: Optional[pathlib.Path] = None


def _parse_bool(value: str, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in re.split(r"[,\n]", value) if item.strip())


def _parse_rewrites(value: str) -> tuple[Rewrite, ...]:
    return tuple(
        parse_rewrite_rule(line) for line in value.splitlines() if line.strip()
    )


def load_config(config_path: Optional[pathlib.Path] = None) -> RescanConfig:
    """Load configuration from config.ini.

    Defaults to `config.ini` in the data directory.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    # Interpolation off: tokens and rewrite patterns may contain '%'
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")

    if not parser.has_section("plex"):
        raise ConfigError(f"{path}: missing [plex] section")
    url = parser.get("plex", "url", fallback="").strip()
    if not url:
        raise ConfigError(f"{path}: [plex] url is required")

    plex = PlexConfig(
        url=url,
        token=parser.get("plex", "token", fallback="").strip(),
        rewrite=_parse_rewrites(parser.get("plex", "rewrite", fallback="")),
        verbosity=parser.get("plex", "verbosity", fallback="info").strip(),
        timeout=parser.get("plex", "timeout", fallback="").strip(),
        product=parser.get("plex", "product", fallback="").strip(),
        client_identifier=parser.get(
            "plex", "client_identifier", fallback=""
        ).strip(),
    )

    try:
        monitoring = MonitoringConfig(
            enabled=_parse_bool(
                parser.get("monitoring", "enabled", fallback="true"), True
            ),
            paths=_split_list(parser.get("monitoring", "paths", fallback="")),
            debounce_seconds=parser.getint(
                "monitoring", "debounce_seconds", fallback=2
            ),
            batch_window=parser.getfloat("monitoring", "batch_window", fallback=1.0),
            retry_delay=parser.getfloat("monitoring", "retry_delay", fallback=10.0),
        )

        webui = WebUIConfig(
            host=parser.get("webui", "host", fallback="0.0.0.0").strip(),
            port=parser.getint("webui", "port", fallback=4040),
            username=parser.get("webui", "username", fallback="").strip(),
            password=parser.get("webui", "password", fallback="").strip(),
        )
    except ValueError as exc:
        raise ConfigError(f"{path}: {exc}") from exc

    return RescanConfig(
        plex=plex,
        monitoring=monitoring,
        webui=webui,
        log_level=parser.get("general", "log_level", fallback="INFO").strip(),
        source_path=path,
    )


def redact_config(raw: str) -> str:
    """Replace the values of sensitive keys with REDACTED.

    Indentation and the key itself are preserved so the output still reads
    as the source INI file.
    """
    lines = raw.split("\n")
    for i, line in enumerate(lines):
        stripped = line.strip()
        for key in REDACTED_KEYS:
            match = re.match(rf"{key}\s*[=:]", stripped, re.IGNORECASE)
            if match:
                indent = line[: len(line) - len(line.lstrip())]
                lines[i] = f"{indent}{key} = REDACTED"
                break
    return "\n".join(lines)


def read_redacted_config(config: RescanConfig) -> str:
    """Return the config file text with secrets redacted, or '' if unknown."""
    if config.source_path is None or not config.source_path.exists():
        logger.warning("Config source not available for display")
        return ""
    return redact_config(config.source_path.read_text(encoding="utf-8"))
