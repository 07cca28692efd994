"""
LogLineSet: an ordered collection of decoded log entries.

Entries keep file order. Two entries may share a timestamp (two writes in
the same microsecond); both are kept, so the set is a sequence of entries,
not a mapping keyed by timestamp.

Reading is deliberately lossy: lines that do not decode as timestamped
entries are dropped rather than failing the whole read. Hand-edited or
foreign log files therefore still load, at the cost of silently shrinking
the result.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Tuple

from core.logfmt.models import LogEntry
from core.logfmt.timestamp_codec import format_timestamp
from exceptions.exceptions import MalformedLogLine, MalformedTimestamp, RangeOutOfBounds


logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r"[\r\n]+")


class LogLineSet:
    """Ordered, timestamp-keyed log entries.

    Parameters
    ----------
    entries:
        Entries in the order they should be kept.
    timestamped:
        Whether the caller asked for timestamps. Only timestamped sets can be
        serialized back to log text; see serialize().
    """

    def __init__(self, entries: Iterable[LogEntry] = (), timestamped: bool = True) -> None:
        self._entries: List[LogEntry] = list(entries)
        self.timestamped = timestamped

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, raw_text: str, timestamped: bool = True) -> "LogLineSet":
        entries: List[LogEntry] = []
        dropped = 0
        for line in _LINE_BREAKS.split(raw_text):
            if not line.strip():
                continue
            try:
                entries.append(LogEntry.decode(line))
            except (MalformedLogLine, MalformedTimestamp):
                dropped += 1
        if dropped:
            logger.debug("Dropped %d undecodable log line(s)", dropped)
        return cls(entries, timestamped=timestamped)

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> LogEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LogLineSet):
            return NotImplemented
        return self.items() == other.items()

    def __repr__(self) -> str:
        return f"LogLineSet({len(self._entries)} entries, timestamped={self.timestamped})"

    def count(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def texts(self) -> List[str]:
        return [entry.body for entry in self._entries]

    def items(self) -> List[Tuple[str, str]]:
        """(formatted timestamp, text) pairs in set order."""
        return [(format_timestamp(e.timestamp), e.body) for e in self._entries]

    def first(self) -> Optional[LogEntry]:
        return self._entries[0] if self._entries else None

    def last(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def earliest(self) -> Optional[datetime]:
        return min((e.timestamp for e in self._entries), default=None)

    def latest(self) -> Optional[datetime]:
        return max((e.timestamp for e in self._entries), default=None)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def slice(self, start: int = 0, count: int = 0) -> "LogLineSet":
        """Return `count` entries beginning at zero-based offset `start`.

        count == 0 selects everything from `start` to the end. A negative
        count selects |count| entries ending just before `start`; a start of
        0 then stands for the end of the set, so slice(0, -n) is a tail.

        Raises
        ------
        RangeOutOfBounds
            If the resolved start is negative or the range runs past the end.
        """
        total = len(self._entries)
        requested = (start, count)

        if count == 0:
            count = total - start
        elif count < 0:
            if start == 0:
                start = total
            start += count
            count = -count

        if start < 0 or count < 0 or start + count > total:
            raise RangeOutOfBounds(requested[0], requested[1], total)

        return LogLineSet(self._entries[start:start + count], timestamped=self.timestamped)

    def merge(self, other: "LogLineSet") -> "LogLineSet":
        """Concatenate, keeping each side's order. No de-duplication."""
        return LogLineSet(
            self._entries + other._entries,
            timestamped=self.timestamped and other.timestamped,
        )

    def union(self, other: "LogLineSet") -> "LogLineSet":
        """Like merge(), but entries of `other` already present here are skipped.

        Matching is by (timestamp, text) and counts occurrences: each entry
        in this set absorbs at most one equal entry from `other`, so genuine
        duplicates written to the same microsecond survive.
        """
        remaining = Counter(entry.key for entry in self._entries)
        merged: List[LogEntry] = list(self._entries)
        for entry in other._entries:
            if remaining[entry.key]:
                remaining[entry.key] -= 1
                continue
            merged.append(entry)
        return LogLineSet(merged, timestamped=self.timestamped and other.timestamped)

    def filter_by_time(self, start_inclusive: datetime, end_exclusive: datetime) -> "LogLineSet":
        return LogLineSet(
            (e for e in self._entries if start_inclusive <= e.timestamp < end_exclusive),
            timestamped=self.timestamped,
        )

    def sorted(self) -> "LogLineSet":
        """Chronological order; entries with equal timestamps keep their relative order."""
        return LogLineSet(
            sorted(self._entries, key=lambda e: e.timestamp),
            timestamped=self.timestamped,
        )

    def serialize(self) -> Optional[str]:
        """Render back to log file text, one "[<timestamp>] <text>" line per entry.

        Returns None for a set that was not requested as timestamped, so a
        plain list of texts is never written out as if it were a log.
        """
        if not self.timestamped:
            return None
        return "".join(f"{entry.encode()}\n" for entry in self._entries)
