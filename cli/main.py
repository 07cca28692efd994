#!/usr/bin/env python3
"""
Daylog CLI

Thin command-line wrapper around runtime.store.log_store.LogStore.

Commands:

1) write
   - Append a line (optionally with a severity tag) to:
       <data_dir>/plugin.log

2) lines / tail / line
   - Print entries from the live log by line offset.

3) between
   - Print entries in a time range, optionally searching the per-day
     archives in <data_dir>/logs/ as well.

4) clear
   - Truncate the live log.

5) rotate
   - Move entries from previous days into <data_dir>/logs/YYYY-MM-DD.log.

6) status
   - Report whether the live log is empty and which archives exist.

Timestamps on the command line use the stored format
("YYYY-MM-DD HH:MM:SS.ffffff") or ISO 8601 ("2024-03-09T17:45:00").
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from configs.settings import settings
from core.logfmt.line_set import LogLineSet
from core.logfmt.models import Severity
from core.logfmt.timestamp_codec import format_timestamp, parse_timestamp
from exceptions.exceptions import LogStoreError, MalformedTimestamp
from runtime.store.log_store import LogStore


def _parse_when(value: str) -> datetime:
    """argparse type for timestamps: stored format first, then ISO 8601."""
    try:
        return parse_timestamp(value)
    except MalformedTimestamp:
        pass
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {value!r}") from None


def _print_set(lines: LogLineSet) -> None:
    if lines.timestamped:
        for entry in lines:
            print(entry.encode())
    else:
        for text in lines.texts():
            print(text)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_write(store: LogStore, text: str, severity: Optional[str]) -> None:
    entry = store.write(text, severity=severity)
    print(entry.encode())


def cmd_lines(store: LogStore, start: int, count: int, timestamped: bool) -> None:
    _print_set(store.lines(start, count, timestamped))


def cmd_tail(store: LogStore, n: int, timestamped: bool) -> None:
    _print_set(store.tail(n, timestamped))


def cmd_line(store: LogStore, number: int, timestamped: bool) -> None:
    entry = store.line(number, timestamped)
    print(entry.encode() if timestamped else entry.body)


def cmd_between(store: LogStore, start: datetime, end: datetime, archives: bool) -> None:
    _print_set(store.between(start, end, include_archives=archives))


def cmd_clear(store: LogStore, keep_placeholder: bool) -> None:
    store.clear(keep_placeholder=keep_placeholder)
    print(f"[Daylog] ✓ Cleared {store.live_file_path}")


def cmd_rotate(store: LogStore) -> None:
    affected = store.rotate()
    print(f"[Daylog] ✓ Rotation wrote {affected} file(s) → {store.archive_dir}")


def cmd_status(store: LogStore) -> None:
    print(f"[Daylog] Live log: {store.live_file_path}")
    if store.is_empty():
        print("[Daylog] Live log is empty")
    else:
        entries = store.lines(timestamped=True)
        print(
            f"[Daylog] {len(entries)} entries, "
            f"{format_timestamp(entries.earliest())} → {format_timestamp(entries.latest())}"
        )
    days = store.archive_dates()
    print(f"[Daylog] {len(days)} archive file(s) in {store.archive_dir}")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Daylog CLI")
    parser.add_argument(
        "--data-dir",
        default=str(settings.data_dir),
        help="Data directory holding plugin.log and logs/ (default: DAYLOG_DATA_DIR or 'data')",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # write
    p_write = subparsers.add_parser("write", help="Append a line to the live log")
    p_write.add_argument("text", help="Text to log (must be a single line)")
    p_write.add_argument(
        "--severity",
        choices=[s.value for s in Severity],
        default=None,
        help="Optional severity tag prefixed to the text",
    )

    # lines
    p_lines = subparsers.add_parser("lines", help="Print live entries by line range")
    p_lines.add_argument("--start", type=int, default=0, help="Zero-based first line")
    p_lines.add_argument(
        "--count",
        type=int,
        default=0,
        help="Number of lines (0 = to the end, negative = backwards from --start)",
    )
    p_lines.add_argument("-t", "--timestamped", action="store_true", help="Include timestamps")

    # tail
    p_tail = subparsers.add_parser("tail", help="Print the last N live entries")
    p_tail.add_argument("n", type=int, nargs="?", default=10, help="Number of lines (0 = all)")
    p_tail.add_argument("-t", "--timestamped", action="store_true", help="Include timestamps")

    # line
    p_line = subparsers.add_parser("line", help="Print a single live entry")
    p_line.add_argument("number", type=int, help="Zero-based line number")
    p_line.add_argument("-t", "--timestamped", action="store_true", help="Include the timestamp")

    # between
    p_between = subparsers.add_parser("between", help="Print entries in [start, end)")
    p_between.add_argument("start", type=_parse_when, help="Inclusive start timestamp")
    p_between.add_argument("end", type=_parse_when, help="Exclusive end timestamp")
    p_between.add_argument(
        "--archives",
        action="store_true",
        help="Also search rotated per-day archives",
    )

    # clear
    p_clear = subparsers.add_parser("clear", help="Truncate the live log")
    p_clear.add_argument(
        "--keep-placeholder",
        action="store_true",
        help="Leave a single empty entry behind",
    )

    # rotate / status
    subparsers.add_parser("rotate", help="Archive entries from previous days")
    subparsers.add_parser("status", help="Summarize the live log and archives")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = LogStore.from_settings(data_dir=args.data_dir)
    command: str = args.command

    try:
        if command == "write":
            cmd_write(store, text=args.text, severity=args.severity)
        elif command == "lines":
            cmd_lines(store, start=args.start, count=args.count, timestamped=args.timestamped)
        elif command == "tail":
            cmd_tail(store, n=args.n, timestamped=args.timestamped)
        elif command == "line":
            cmd_line(store, number=args.number, timestamped=args.timestamped)
        elif command == "between":
            cmd_between(store, start=args.start, end=args.end, archives=args.archives)
        elif command == "clear":
            cmd_clear(store, keep_placeholder=args.keep_placeholder)
        elif command == "rotate":
            cmd_rotate(store)
        elif command == "status":
            cmd_status(store)
        else:
            parser.error(f"Unknown command: {command}")
    except (LogStoreError, ValueError) as exc:
        print(f"[Daylog] ✗ {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
