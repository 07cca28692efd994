"""
LogStore: append-only, timestamp-indexed log with per-day archives.

Layout under the configured data directory:

    <data_dir>/plugin.log            live log, one "[<timestamp>] <text>" per line
    <data_dir>/plugin.log.lock       advisory lock taken by writers
    <data_dir>/logs/YYYY-MM-DD.log   one archive per calendar day

Entries are appended to the live file by write(). Nothing moves to the
archives until rotate() is called explicitly; the live file may therefore
hold entries from earlier days, and between() always scans it alongside
the archives.

write(), clear() and rotate() serialize through an exclusive lock (a
thread lock plus fcntl.flock on the lock file). Queries take no lock: a
read racing an append may miss the line being written.
"""

from __future__ import annotations

import fcntl
import json
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Union

from pydantic import BaseModel

from configs.settings import Clock, LogStoreConfig, settings
from core.logfmt.archive_namer import ArchiveNamer
from core.logfmt.line_set import LogLineSet
from core.logfmt.models import LogEntry, Severity
from exceptions.exceptions import LogFileNotFound, StorageIOError


logger = logging.getLogger(__name__)

PayloadSerializer = Callable[[Any], str]


def json_serializer(payload: Any) -> str:
    """Compact JSON with unicode left unescaped; pydantic models dump themselves."""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


class LogStore:
    """File-backed log store.

    Parameters
    ----------
    config:
        Data directory, file names and clock. Use LogStore.from_settings()
        to build one from the environment-driven settings.
    """

    def __init__(self, config: LogStoreConfig) -> None:
        self.config = config
        self._clock: Clock = config.clock
        self._namer = ArchiveNamer(config.archive_dir)
        self._thread_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        data_dir: Union[str, Path, None] = None,
        clock: Optional[Clock] = None,
    ) -> "LogStore":
        return cls(settings.log_store_config(data_dir=data_dir, clock=clock))

    @property
    def live_file_path(self) -> Path:
        return self.config.live_file_path

    @property
    def archive_dir(self) -> Path:
        return self.config.archive_dir

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError("create directory", path, exc.strerror) from exc

    @contextmanager
    def _exclusive_lock(self) -> Iterator[None]:
        """Hold the store's write lock, across threads and processes."""
        with self._thread_lock:
            self._ensure_dir(self.config.base_dir)
            lock_path = self.config.lock_file_path
            try:
                handle = lock_path.open("a", encoding="utf-8")
            except OSError as exc:
                raise StorageIOError("open lock file", lock_path, exc.strerror) from exc
            with handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise LogFileNotFound(path) from exc
        except OSError as exc:
            raise StorageIOError("read", path, exc.strerror) from exc

    def _write_text(self, path: Path, text: str, mode: str = "w") -> None:
        try:
            with path.open(mode, encoding="utf-8") as f:
                f.write(text)
        except OSError as exc:
            raise StorageIOError("write", path, exc.strerror) from exc

    def _replace_if_changed(self, path: Path, text: str) -> bool:
        """Overwrite `path` with `text` unless it already holds exactly that."""
        if path.is_file() and self._read_text(path) == text:
            return False
        self._ensure_dir(path.parent)
        self._write_text(path, text)
        return True

    def _load(self, path: Path, timestamped: bool = True) -> LogLineSet:
        return LogLineSet.parse(self._read_text(path), timestamped=timestamped)

    def _load_live_or_empty(self) -> LogLineSet:
        if not self.live_file_path.is_file():
            return LogLineSet()
        return self._load(self.live_file_path)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(
        self,
        text: str,
        severity: Union[Severity, str, None] = None,
        timestamp: Optional[datetime] = None,
    ) -> LogEntry:
        """Append one entry to the live log and return it.

        The entry is stamped with the store's clock unless `timestamp` is
        given. Text containing a line break is rejected with a ValueError.
        """
        entry = LogEntry(
            timestamp=timestamp or self._clock(),
            text=text,
            severity=severity,
        )
        with self._exclusive_lock():
            self._write_text(self.live_file_path, entry.encode() + "\n", mode="a")
        logger.debug("Appended entry to %s", self.live_file_path)
        return entry

    def write_payload(
        self,
        payload: Any,
        serializer: Optional[PayloadSerializer] = None,
        severity: Union[Severity, str, None] = None,
    ) -> LogEntry:
        """Serialize a structured payload (JSON by default) and write it."""
        text = (serializer or json_serializer)(payload)
        return self.write(text, severity=severity)

    def clear(self, keep_placeholder: bool = False) -> None:
        """Truncate the live log.

        With keep_placeholder=True a single empty-text entry is left behind,
        for callers that expect at least one line after a clear.
        """
        content = ""
        if keep_placeholder:
            content = LogEntry(timestamp=self._clock(), text="").encode() + "\n"
        with self._exclusive_lock():
            self._write_text(self.live_file_path, content)
        logger.info("Cleared %s", self.live_file_path)

    # ------------------------------------------------------------------
    # Viewing
    # ------------------------------------------------------------------

    def lines(self, start: int = 0, count: int = 0, timestamped: bool = False) -> LogLineSet:
        """Return `count` live entries from zero-based line `start`.

        count == 0 returns everything from `start`; a negative count reads
        backwards (see LogLineSet.slice).

        Raises
        ------
        LogFileNotFound
            If nothing has been logged yet (no live file).
        RangeOutOfBounds
            If the range does not fit the available entries.
        """
        return self._load(self.live_file_path, timestamped=timestamped).slice(start, count)

    def tail(self, n: int = 0, timestamped: bool = False) -> LogLineSet:
        """The last `n` entries (all of them for n == 0)."""
        return self.lines(0, -n, timestamped)

    def line(self, number: int, timestamped: bool = False) -> LogEntry:
        return self.lines(number, 1, timestamped)[0]

    def is_empty(self) -> bool:
        if not self.live_file_path.is_file():
            return True
        return len(self._load(self.live_file_path)) == 0

    def archive(self, day: date) -> LogLineSet:
        """Entries archived for one calendar day.

        Raises LogFileNotFound if that day has no archive.
        """
        return self._load(self._namer.path_for(day))

    def archive_dates(self) -> List[date]:
        return [day for day, _ in self._namer.iter_archives()]

    # ------------------------------------------------------------------
    # Searching
    # ------------------------------------------------------------------

    def between(
        self,
        start: datetime,
        end: datetime,
        include_archives: bool = False,
    ) -> LogLineSet:
        """Entries with start <= timestamp < end, oldest first.

        The live file is always searched, since entries stay there until the
        next rotation. With include_archives=True, archives for every day
        from start's date through end's date are searched as well. A missing
        live file contributes nothing. Duplicates are not removed.
        """
        matching = LogLineSet()

        if include_archives:
            first_day = start.date()
            end_day = end.date() + timedelta(days=1)
            for day, path in self._namer.iter_archives():
                if not first_day <= day < end_day:
                    continue
                matching = matching.merge(self._load(path).filter_by_time(start, end))

        live = self._load_live_or_empty()
        if len(live) and live.earliest() < end and live.latest() >= start:
            matching = matching.merge(live.filter_by_time(start, end))

        return matching.sorted()

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def rotate(self) -> int:
        """Move every entry dated before today into its day's archive.

        Each past day's entries are merged into any existing archive for that
        day, skipping entries the archive already holds. The live file keeps
        only today's (and any later-dated) entries. Returns the number of
        files written; files whose content would not change are left alone,
        so a second rotate() with no writes in between returns 0.

        The live file is rewritten from decoded entries whenever it changes,
        so lines that do not decode as timestamped entries are discarded; a
        live file holding such lines is rewritten (and counted) even when no
        past-day entries exist.

        There is no rollback: if a write fails part-way, the error propagates
        and re-running rotate() completes the job without duplicating lines.
        """
        with self._exclusive_lock():
            live = self._load_live_or_empty()
            if not len(live):
                return 0

            today = self._clock().date()
            past_days = sorted({e.timestamp.date() for e in live if e.timestamp.date() < today})
            affected = 0

            for day in past_days:
                day_start = datetime.combine(day, time.min)
                current = live.filter_by_time(day_start, day_start + timedelta(days=1))
                path = self._namer.path_for(day)
                if path.is_file():
                    current = self._load(path).union(current)
                if self._replace_if_changed(path, current.sorted().serialize()):
                    affected += 1

            remaining = LogLineSet(e for e in live if e.timestamp.date() >= today)
            if self._replace_if_changed(self.live_file_path, remaining.serialize()):
                affected += 1

        logger.info("Rotation touched %d file(s) across %d past day(s)", affected, len(past_days))
        return affected
