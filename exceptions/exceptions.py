"""
Custom exceptions for the Daylog log store.

These exceptions are intentionally simple and descriptive.
They are used across:

  - core/logfmt/
  - runtime/store/
  - cli/

Each error kind also derives from the closest builtin exception so callers
that only know about builtins (FileNotFoundError, IndexError, ValueError,
OSError) still catch them.
"""


class LogStoreError(Exception):
    """Base class for every error raised by the log store."""


class LogFileNotFound(LogStoreError, FileNotFoundError):
    """
    Raised when a query is issued against a log file that does not exist.

    This is distinct from "the log is empty": callers should check
    LogStore.is_empty() first if absence is an expected state.
    """

    def __init__(self, path):
        self.path = path
        super().__init__(f"A log file could not be found at '{path}'.")

    def __str__(self) -> str:
        return self.args[0]


class RangeOutOfBounds(LogStoreError, IndexError):
    """
    Raised when a requested line range falls outside the available entries.

    Example:
        lines(10, 5) on a log holding 5 entries
    """

    def __init__(self, start, count, available):
        self.start = start
        self.count = count
        self.available = available
        msg = (
            f"Line range start={start}, count={count} is out of bounds "
            f"for {available} available entries."
        )
        super().__init__(msg)


class MalformedTimestamp(LogStoreError, ValueError):
    """Raised when a string does not match the fixed timestamp format."""

    def __init__(self, value, expected=None):
        self.value = value
        self.expected = expected or "YYYY-MM-DD HH:MM:SS.ffffff"
        super().__init__(f"Malformed timestamp {value!r}; expected {self.expected}.")


class MalformedLogLine(LogStoreError, ValueError):
    """
    Raised when a line cannot be decoded into a timestamped log entry.

    Example:
        '[2024-01-02 03:04:05.000006] text'  ← expected
        'text without a timestamp'           ← raises this exception
    """

    def __init__(self, line, details=None):
        self.line = line
        self.details = details or "Expected '[<timestamp>] <text>'."
        super().__init__(f"Malformed log line: {line!r}\nDetails: {self.details}")


class MalformedArchiveName(LogStoreError, ValueError):
    """Raised when an archive filename is not of the form 'YYYY-MM-DD.log'."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Not a dated archive file name: '{path}'.")


class StorageIOError(LogStoreError, OSError):
    """
    Raised when the underlying file system fails on read, write or create.

    The original OSError is always chained as __cause__.
    """

    def __init__(self, operation, path, details=None):
        self.operation = operation
        self.path = path
        self.details = details
        msg = f"Failed to {operation} '{path}'"
        if details:
            msg += f": {details}"
        super().__init__(msg)

    def __str__(self) -> str:
        return self.args[0]
