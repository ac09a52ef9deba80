"""Retention sweeper for the uploads directory.

Uploads are only needed for the duration of one request plus however long
the result page links to them. A background task periodically deletes files
whose modification time is older than the retention threshold. The
placeholder file (``.gitkeep``) is never touched.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from .schemas import SweepReport, now_ms

logger = logging.getLogger(__name__)


class SweepEntryFailure(Exception):
    """A single directory entry could not be inspected or deleted."""
    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        self.message = f"Could not sweep {path}: {cause}"
        super().__init__(self.message)


class RetentionSweeper:
    """Deletes aged files from a directory on a fixed interval."""

    def __init__(
        self,
        directory: Path,
        max_age_seconds: int = 3600,
        interval_seconds: int = 3600,
        placeholder_name: str = ".gitkeep",
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.directory = Path(directory)
        self.max_age_ms = max_age_seconds * 1000
        self.interval_seconds = interval_seconds
        self.placeholder_name = placeholder_name
        self._clock = clock
        self._sweep_task: Optional[asyncio.Task] = None  # type: ignore[type-arg]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start background sweep task."""
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            "Upload sweeper started (dir=%s, max_age=%ss, interval=%ss)",
            self.directory,
            self.max_age_ms // 1000,
            self.interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        logger.info("Upload sweeper stopped")

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.tick()

    async def tick(self) -> Optional[SweepReport]:
        """Run one sweep off the event loop.

        Returns None if the sweep as a whole failed; that failure is logged
        and the schedule carries on.
        """
        try:
            return await asyncio.to_thread(self.sweep_once)
        except Exception as e:
            logger.error("Upload sweep failed for %s: %s", self.directory, e)
            return None

    def _is_expired(self, entry: os.DirEntry, at_ms: int) -> bool:
        mtime_ms = entry.stat().st_mtime_ns // 1_000_000
        return at_ms - mtime_ms > self.max_age_ms

    def sweep_once(self, now_ms: Optional[int] = None) -> SweepReport:
        """Delete every file older than the retention threshold.

        Args:
            now_ms: Reference instant in epoch milliseconds; defaults to the clock.

        Returns:
            SweepReport with the deleted filenames and per-entry failures.

        Raises:
            OSError: If the directory itself cannot be listed.
        """
        at_ms = self._clock() if now_ms is None else now_ms
        report = SweepReport()

        with os.scandir(self.directory) as entries:
            for entry in entries:
                if entry.name == self.placeholder_name:
                    continue
                report.scanned += 1
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    if self._is_expired(entry, at_ms):
                        os.unlink(entry.path)
                        report.deleted.append(entry.name)
                except OSError as e:
                    failure = SweepEntryFailure(Path(entry.path), e)
                    logger.warning(failure.message)
                    report.failures.append(entry.name)

        if report.deleted or report.failures:
            logger.info(
                "Upload sweep: deleted %d of %d entries (%d failures)",
                len(report.deleted),
                report.scanned,
                len(report.failures),
            )
        return report
