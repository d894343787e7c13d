"""rescan CLI entry point."""

from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import List, Optional

import typer

from rescan import __version__
from rescan.config import DEFAULT_CONFIG_PATH, RescanConfig, load_config
from rescan.errors import ConfigError, FatalError, RescanError
from rescan.logging_config import setup_logging
from rescan.models import Scan
from rescan.monitor import start_file_monitoring
from rescan.processor import Processor
from rescan.targets import Target, build_targets
from rescan.targets.plex import PlexTarget
from webui import run_server


app = typer.Typer(add_completion=False, help="rescan: trigger Plex library scans for changed folders")
logger = logging.getLogger("rescan")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.ini")


def _ensure_config(config_path: Optional[Path]) -> RescanConfig:
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        typer.echo("[ERROR] config.ini not found. Run: rescan init --url http://plex:32400 --token TOKEN")
        raise typer.Exit(code=1)
    except ConfigError as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)

    setup_logging(config.log_level)
    return config


def _build_targets(config: RescanConfig) -> List[Target]:
    try:
        return build_targets(config)
    except FatalError as exc:
        typer.echo(f"[ERROR] {exc} (not retrying)")
        raise typer.Exit(code=1)
    except RescanError as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)


def _write_config(config_path: Path, url: str, token: str) -> None:
    parser = configparser.ConfigParser(interpolation=None)

    parser["general"] = {
        "log_level": "INFO",
    }
    parser["plex"] = {
        "url": url,
        "token": token,
        "verbosity": "info",
        "timeout": "30s",
        "product": "",
        "client_identifier": "",
        "rewrite": "",
    }
    parser["monitoring"] = {
        "enabled": "true",
        "paths": "",
        "debounce_seconds": "2",
        "batch_window": "1.0",
        "retry_delay": "10",
    }
    parser["webui"] = {
        "host": "0.0.0.0",
        "port": "4040",
        "username": "",
        "password": "",
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)


@app.command()
def init(
    url: str = typer.Option(..., "--url", help="Plex server URL"),
    token: str = typer.Option("", "--token", help="Plex token"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Initialize config.ini with default settings."""
    path = config_path or DEFAULT_CONFIG_PATH
    _write_config(path, url, token)
    typer.echo(f"[OK] Config created at {path}")


@app.command()
def check(config_path: Optional[Path] = ConfigOption) -> None:
    """Connect to every target and report whether it is usable."""
    config = _ensure_config(config_path)
    targets = _build_targets(config)

    for target in targets:
        if isinstance(target, PlexTarget):
            typer.echo(f"[OK] {target.url}: {len(target.libraries)} libraries")
        else:
            typer.echo(f"[OK] {target!r}")


@app.command()
def libraries(config_path: Optional[Path] = ConfigOption) -> None:
    """List the libraries scans will be matched against."""
    config = _ensure_config(config_path)
    targets = _build_targets(config)

    for target in targets:
        if not isinstance(target, PlexTarget):
            continue
        typer.echo(f"{target.url}:")
        for library in target.libraries:
            typer.echo(f"  [{library.id}] {library.name}: {library.path}")


@app.command()
def scan(
    dirs: List[str] = typer.Argument(..., help="Folders to scan"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Scan folders now, without the queue."""
    config = _ensure_config(config_path)
    targets = _build_targets(config)
    processor = Processor(targets)

    failed = 0
    for folder in dirs:
        try:
            processor.process_scan(Scan(folder=folder))
        except RescanError as exc:
            failed += 1
            logger.error(f"Scan failed for {folder}: {exc}")
        else:
            typer.echo(f"✓ {folder}")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Dashboard host"),
    port: Optional[int] = typer.Option(None, "--port", help="Dashboard port"),
    no_watch: bool = typer.Option(False, "--no-watch", help="Disable file monitoring"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Start the scan processor, file monitoring and dashboard."""
    config = _ensure_config(config_path)
    logger.info(f"rescan {__version__} starting")
    targets = _build_targets(config)

    processor = Processor(
        targets,
        batch_window=config.monitoring.batch_window,
        retry_delay=config.monitoring.retry_delay,
    )
    processor.start()

    observer = None
    if not no_watch and config.monitoring.enabled:
        observer = start_file_monitoring(config.monitoring, processor)
    elif no_watch:
        logger.info("File monitoring disabled")

    try:
        run_server(config, processor, host=host, port=port)
    except KeyboardInterrupt:
        pass
    finally:
        if observer:
            observer.stop()
            observer.join()
        processor.stop(timeout=5)

    if processor.fatal_error is not None:
        typer.echo(f"[ERROR] {processor.fatal_error} (not retrying)")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
