"""Scan queue and worker for rescan.

The processor owns the event queue: it batches incoming scans, drops
duplicates, and hands each scan to every target. Retrying after transport
errors happens here, never inside a target.
"""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Optional, Sequence

from .errors import FatalError, RescanError, TargetUnavailableError
from .logging_config import get_logger
from .models import Scan
from .targets import Target
from .utils import short_path

logger = get_logger(__name__)


def optimize_scans(scans: list[Scan]) -> list[Scan]:
    """Deduplicate a batch of scans.

    Only identical folders are merged; the first occurrence wins and batch
    order is kept. Subfolders are never folded into a parent, since the
    parent may resolve to different libraries (or none) after rewriting.
    """
    by_folder: dict[str, Scan] = {}
    for scan in scans:
        by_folder.setdefault(scan.folder, scan)
    return list(by_folder.values())


class Processor:
    """Queue scans and dispatch them to targets from a worker thread."""

    def __init__(
        self,
        targets: Sequence[Target],
        batch_window: float = 1.0,
        retry_delay: float = 10.0,
    ):
        self.targets = list(targets)
        self.batch_window = batch_window
        self.retry_delay = retry_delay

        self._queue: queue.Queue[Scan] = queue.Queue()
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._processed = 0
        self.fatal_error: Optional[FatalError] = None
        self.on_fatal: Optional[Callable[[FatalError], None]] = None

    @property
    def scans_processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def scans_remaining(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def add(self, *scans: Scan) -> bool:
        """Queue scans. Returns False, dropping them, once a fatal error stopped the worker."""
        with self._lock:
            if self.fatal_error is not None:
                logger.warning(
                    f"Processor stopped after fatal error, dropping {len(scans)} scans: "
                    f"{self.fatal_error}"
                )
                return False
            for scan in scans:
                self._queue.put(scan)
        return True

    def start(self) -> None:
        self._stop_event.clear()
        self._worker = threading.Thread(
            target=self._run,
            daemon=True,
            name="RescanProcessorWorker",
        )
        self._worker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._worker is not None:
            self._worker.join(timeout)

    def _next_batch(self) -> list[Scan]:
        try:
            first = self._queue.get(timeout=1.0)
        except queue.Empty:
            return []

        batch = [first]
        deadline = time.monotonic() + self.batch_window
        while time.monotonic() < deadline:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                time.sleep(0.1)
        return batch

    def _run(self) -> None:
        while not self._stop_event.is_set():
            batch = self._next_batch()
            if not batch:
                continue

            try:
                self.process_batch(batch)
            except FatalError as exc:
                self._fail(exc)
            except Exception as exc:
                logger.exception(f"Unexpected error processing batch of {len(batch)} scans: {exc}")

    def _fail(self, exc: FatalError) -> None:
        logger.error(f"Fatal error, stopping processor: {exc}")
        self._stop_event.set()
        with self._lock:
            self.fatal_error = exc
            # Scans still queued can never be processed
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
        if self.on_fatal is not None:
            self.on_fatal(exc)

    def _retry_later(self, scans: list[Scan]) -> None:
        if self._stop_event.wait(self.retry_delay):
            return
        self.add(*scans)

    def check_available(self) -> Optional[RescanError]:
        """Return the first availability error across targets, if any."""
        for target in self.targets:
            try:
                target.available()
            except TargetUnavailableError as exc:
                return exc
        return None

    def process_batch(self, batch: list[Scan]) -> None:
        """Dispatch one batch. FatalError propagates; other errors are handled."""
        scans = optimize_scans(batch)

        error = self.check_available()
        if error is not None:
            logger.warning(
                f"Target unavailable, retrying {len(scans)} scans in "
                f"{self.retry_delay:g}s: {error}"
            )
            self._retry_later(scans)
            return

        retry = []
        for scan in scans:
            try:
                self.process_scan(scan)
            except TargetUnavailableError as exc:
                logger.warning(f"Scan failed for {short_path(scan.folder)}, will retry: {exc}")
                retry.append(scan)
            except FatalError:
                raise
            except RescanError as exc:
                logger.error(f"Dropping scan for {scan.folder}: {exc}")
            except Exception as exc:
                logger.exception(f"Unexpected error processing scan for {scan.folder}: {exc}")
            else:
                with self._lock:
                    self._processed += 1

        if retry:
            self._retry_later(retry)

    def process_scan(self, scan: Scan) -> None:
        """Send one scan to every target, in order, stopping at the first error."""
        logger.debug(f"Processing scan: {scan.folder}")
        for target in self.targets:
            target.scan(scan)
