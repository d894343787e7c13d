"""FastAPI dashboard server for rescan.

Exposes:
- GET  /                  (redirect to /status)
- GET  /status
- GET  /config
- GET  /trigger
- POST /triggers/manual
- GET  /health
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI

from rescan.config import RescanConfig
from rescan.logging_config import get_logger
from rescan.processor import Processor

from .auth import require_auth
from .router import router

logger = get_logger(__name__)


def webui_addr(host: str, port: int) -> str:
    """Return ``host:port`` with IPv6 hosts bracketed."""
    base_host = host
    if base_host.startswith("[") and "]" in base_host:
        base_host = base_host[1 : base_host.index("]")]
    elif base_host.count(":") == 1:
        base_host = base_host.split(":", 1)[0]

    if ":" in base_host:
        base_host = f"[{base_host}]"
    return f"{base_host}:{port}"


def create_app(
    config: RescanConfig,
    processor: Processor,
    started_at: Optional[datetime] = None,
) -> FastAPI:
    app = FastAPI(
        title="rescan",
        docs_url=None,
        redoc_url=None,
        dependencies=[Depends(require_auth)],
    )
    app.state.config = config
    app.state.processor = processor
    app.state.started_at = started_at or datetime.now(timezone.utc)
    app.include_router(router)
    return app


class _AccessFilter(logging.Filter):
    """Filter out access log lines for successful requests to reduce console noise."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(code in msg for code in ('" 200', '" 302', '" 304'))


def build_server(
    config: RescanConfig,
    processor: Processor,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> uvicorn.Server:
    """Build the Uvicorn server. It shuts down when the processor hits a fatal error."""
    effective_host = host or config.webui.host
    effective_port = port or config.webui.port

    app = create_app(config, processor)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=effective_host,
            port=effective_port,
            log_level="info",
            log_config=None,
        )
    )

    def _shutdown(exc: Exception) -> None:
        logger.error(f"Shutting down dashboard: {exc}")
        server.should_exit = True

    processor.on_fatal = _shutdown
    if processor.fatal_error is not None:
        server.should_exit = True

    logger.info(f"Dashboard available at http://{webui_addr(effective_host, effective_port)}/")
    return server


def run_server(
    config: RescanConfig,
    processor: Processor,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """Run the dashboard with Uvicorn until interrupted or the processor fails."""
    logging.getLogger("uvicorn.access").addFilter(_AccessFilter())
    build_server(config, processor, host=host, port=port).run()
