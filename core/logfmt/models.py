"""
Log entry models.

A LogEntry is one physical line of a log file:

    [2024-03-09 17:45:02.000318] WARNING: disk almost full

Severity is a write-time convenience only. It is folded into the stored
text and is not recovered when a line is decoded.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from core.logfmt.timestamp_codec import format_timestamp, parse_timestamp
from exceptions.exceptions import MalformedLogLine


SEPARATOR = "] "


class Severity(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    text: str
    severity: Optional[Severity] = None

    @field_validator("text")
    @classmethod
    def no_line_breaks(cls, value: str) -> str:
        # One entry per physical line; a raw line break would split the entry.
        if "\n" in value or "\r" in value:
            raise ValueError("log text must not contain line breaks")
        return value

    @property
    def body(self) -> str:
        """The text as stored on disk, including any severity prefix."""
        if self.severity is None:
            return self.text
        return f"{self.severity.value}: {self.text}"

    @property
    def key(self) -> tuple[datetime, str]:
        return (self.timestamp, self.body)

    def encode(self) -> str:
        return f"[{format_timestamp(self.timestamp)}{SEPARATOR}{self.body}"

    @classmethod
    def decode(cls, line: str) -> "LogEntry":
        """
        Parse one stored line back into an entry.

        Splits on the first "] " after the leading "[". Everything after the
        separator, including further "] " sequences, is the text.

        Raises
        ------
        MalformedLogLine
            If the line does not start with "[" or has no separator.
        MalformedTimestamp
            If the bracketed part is not a valid timestamp.
        """
        if not line.startswith("["):
            raise MalformedLogLine(line, "missing leading '['")
        stamp, sep, text = line[1:].partition(SEPARATOR)
        if not sep:
            raise MalformedLogLine(line, "missing '] ' separator")
        return cls(timestamp=parse_timestamp(stamp), text=text)
