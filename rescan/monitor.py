"""Filesystem monitoring for rescan.

Uses Watchdog to detect changes under the watched media folders and queues
a scan of the affected folder with the processor.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import MonitoringConfig
from .logging_config import get_logger
from .models import Scan
from .processor import Processor

logger = get_logger(__name__)


def _is_ignored(path: Path) -> bool:
    # macOS resource forks and metadata files
    return path.name.startswith("._") or path.name == ".DS_Store"


class MediaFolderHandler(FileSystemEventHandler):
    """Turn filesystem events into folder scans.

    File events scan the file's parent folder; directory events scan the
    directory itself (or its parent when it was removed).
    """

    def __init__(self, enqueue: Callable[[Scan], None], debounce_seconds: int = 2):
        super().__init__()
        self.enqueue = enqueue
        self.debounce_seconds = debounce_seconds
        self._last_modified: Dict[str, float] = {}

    def _queue_folder(self, folder: Path) -> None:
        logger.debug(f"Queueing scan for {folder}")
        self.enqueue(Scan(folder=str(folder)))

    def on_created(self, event: FileSystemEvent) -> None:
        path = Path(event.src_path)
        if _is_ignored(path):
            return

        self._queue_folder(path if event.is_directory else path.parent)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = Path(event.src_path)
        if _is_ignored(path):
            return

        self._queue_folder(path.parent)

    def on_moved(self, event: FileSystemEvent) -> None:
        src_path = Path(event.src_path)
        dest_path = Path(event.dest_path)

        if _is_ignored(src_path) or _is_ignored(dest_path):
            return

        self._queue_folder(src_path.parent)
        self._queue_folder(dest_path if event.is_directory else dest_path.parent)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        path = Path(event.src_path)
        if _is_ignored(path):
            return

        # Simple debounce for files that are still being written
        now = time.time()
        key = str(path)
        last = self._last_modified.get(key, 0)
        if now - last < self.debounce_seconds:
            return

        self._last_modified[key] = now
        self._queue_folder(path.parent)

        # Prune stale entries to prevent unbounded growth
        cutoff = now - self.debounce_seconds * 2
        self._last_modified = {
            k: v for k, v in self._last_modified.items() if v > cutoff
        }


def start_file_monitoring(
    config: MonitoringConfig, processor: Processor
) -> Optional[Observer]:
    """Start filesystem monitoring if enabled in config."""
    if not config.enabled:
        return None

    watched = []
    for raw in config.paths:
        path = Path(raw).expanduser()
        if not path.exists():
            logger.error(f"Watch path does not exist: {path}")
            continue
        watched.append(path)

    if not watched:
        logger.warning("No watch paths available, file monitoring disabled")
        return None

    event_handler = MediaFolderHandler(processor.add, config.debounce_seconds)

    observer = Observer()
    for path in watched:
        observer.schedule(event_handler, str(path), recursive=True)
        logger.info(f"Watching {path}")
    observer.start()

    return observer
