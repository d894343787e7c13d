"""rescan core package.

Modules:
- targets: remote services that re-index folders (Plex)
- processor: scan queue, batching and retry
- monitor: Watchdog-based filesystem monitoring
- rewrite: path rewrite rules
- config: INI parsing and config object
"""

__version__ = "0.1.0"
