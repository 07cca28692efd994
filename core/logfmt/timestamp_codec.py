"""
Fixed-precision timestamp formatting for log lines and archive names.

Line timestamps look like ``2024-03-09 17:45:02.000318``: fixed width, so
lexicographic order equals chronological order. Archive files are keyed by
the date portion alone (``2024-03-09``).
"""

from __future__ import annotations

import re
from datetime import date, datetime

from exceptions.exceptions import MalformedTimestamp


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
DATE_FORMAT = "%Y-%m-%d"

_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6}")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def format_timestamp(t: datetime) -> str:
    return t.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(s: str) -> datetime:
    """Inverse of format_timestamp. Raises MalformedTimestamp on mismatch."""
    if not _TIMESTAMP_RE.fullmatch(s):
        raise MalformedTimestamp(s)
    try:
        return datetime.strptime(s, TIMESTAMP_FORMAT)
    except ValueError as exc:
        # Right shape, impossible value (e.g. month 13).
        raise MalformedTimestamp(s) from exc


def date_key(t: date) -> str:
    return t.strftime(DATE_FORMAT)


def parse_date_key(s: str) -> date:
    if not _DATE_RE.fullmatch(s):
        raise MalformedTimestamp(s, expected="YYYY-MM-DD")
    try:
        return datetime.strptime(s, DATE_FORMAT).date()
    except ValueError as exc:
        raise MalformedTimestamp(s, expected="YYYY-MM-DD") from exc
