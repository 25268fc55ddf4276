"""
Status Recorder

Appends one line per status record to a per-day log file and removes logs
that have aged out of the retention window.

Logs live in a flat directory, one file per local calendar day:
    logs/2020-04-19.log
    logs/2020-04-20.log
"""

import asyncio
import logging
import os
import threading
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path

from .models import StatusRecord, parse_timestamp

logger = logging.getLogger(__name__)

RETENTION_MODES = ("scan", "exact_day")

_file_locks: dict[str, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def file_lock(path: Path) -> threading.Lock:
    """Lock shared by every appender and reader of one log file."""
    key = os.path.abspath(path)
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.Lock()
        return lock


class Recorder:
    """Writes status records to daily logs and enforces retention."""

    def __init__(
        self,
        log_dir: str | os.PathLike,
        retention_days: int = 7,
        retention_mode: str = "scan",
        tz: tzinfo | None = None,
    ):
        """Initialize recorder.

        Args:
            log_dir: Directory holding the daily logs
            retention_days: Age in days at which a log is deleted
            retention_mode: "scan" deletes every expired log, "exact_day" only
                the log exactly retention_days old
            tz: Time zone defining calendar days (None = local time)
        """
        if retention_mode not in RETENTION_MODES:
            raise ValueError(f"Unknown retention mode: {retention_mode}")

        self.log_dir = Path(log_dir)
        self.retention_days = retention_days
        self.retention_mode = retention_mode
        self.tz = tz

        self._ready = False
        self._task: asyncio.Task | None = None
        self._running = False

    def setup(self):
        """Ensure the log directory exists."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._ready = True

    def day_for(self, timestamp: str) -> str:
        """Calendar day (YYYY-MM-DD) a timestamp belongs to."""
        moment = parse_timestamp(timestamp)
        if moment.tzinfo is not None:
            moment = moment.astimezone(self.tz)
        return moment.date().isoformat()

    def path_for(self, day: str) -> Path:
        return self.log_dir / f"{day}.log"

    def record(self, status: StatusRecord):
        """Append one record to the log for its calendar day.

        The line is written with a single append-mode write while holding the
        file's lock, and the descriptor is closed before returning.
        """
        if not self._ready:
            self.setup()

        path = self.path_for(self.day_for(status.timestamp))
        data = (status.to_csv_line() + "\n").encode("utf-8")

        with file_lock(path):
            fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
            try:
                os.write(fd, data)
            finally:
                os.close(fd)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    def sweep(self, today: date | None = None) -> list[Path]:
        """Delete logs that have aged out of the retention window.

        Args:
            today: Reference day (defaults to the current local day)

        Returns:
            Paths that were deleted
        """
        today = today or self.today()
        cutoff = today - timedelta(days=self.retention_days)

        if self.retention_mode == "exact_day":
            candidates = [self.path_for(cutoff.isoformat())]
        else:
            candidates = [path for path, day in self._logs() if day <= cutoff]

        removed = []
        for path in candidates:
            try:
                with file_lock(path):
                    path.unlink()
                removed.append(path)
                logger.info(f"Removed expired log {path}")
            except FileNotFoundError:
                logger.debug(f"Could not remove {path}, it does not exist")
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")

        return removed

    def _logs(self) -> list[tuple[Path, date]]:
        if not self.log_dir.is_dir():
            return []

        logs = []
        for path in self.log_dir.glob("*.log"):
            try:
                logs.append((path, date.fromisoformat(path.stem)))
            except ValueError:
                continue
        return logs

    async def start(self, interval_hours: float = 24):
        """Start the periodic retention sweep."""
        if self._running:
            logger.warning("Retention sweep already running")
            return

        self.setup()
        self._running = True
        self._task = asyncio.create_task(self._run_loop(interval_hours * 3600))
        logger.info(
            f"🧹 Retention sweep started: keep {self.retention_days} days ({self.retention_mode}), "
            f"every {interval_hours}h"
        )

    async def stop(self):
        """Stop the retention sweep."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("🧹 Retention sweep stopped")

    async def _run_loop(self, interval_seconds: float):
        while self._running:
            try:
                await asyncio.to_thread(self.sweep)
            except Exception as e:
                logger.error(f"Error in retention sweep: {e}", exc_info=True)

            await asyncio.sleep(interval_seconds)
