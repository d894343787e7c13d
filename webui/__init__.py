"""Web dashboard for rescan.

Serves status, config and manual trigger pages.
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
