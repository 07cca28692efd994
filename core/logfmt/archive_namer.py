"""ArchiveNamer: maps calendar days to archive files and back.

Expected layout:

    <archive_dir>/2024-03-08.log
    <archive_dir>/2024-03-09.log

Each file holds only the entries whose timestamp falls on that day.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Iterator, Tuple, Union

from core.logfmt.timestamp_codec import date_key, parse_date_key
from exceptions.exceptions import MalformedArchiveName, MalformedTimestamp


logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".log"


class ArchiveNamer:
    def __init__(self, archive_dir: Union[str, Path]) -> None:
        self.archive_dir = Path(archive_dir)

    def path_for(self, day: date) -> Path:
        return self.archive_dir / f"{date_key(day)}{ARCHIVE_SUFFIX}"

    def date_for(self, path: Union[str, Path]) -> date:
        """Return the day an archive file belongs to.

        Raises
        ------
        MalformedArchiveName
            If the file name is not "<YYYY-MM-DD>.log".
        """
        name = Path(path).name
        if not name.endswith(ARCHIVE_SUFFIX):
            raise MalformedArchiveName(path)
        try:
            return parse_date_key(name[: -len(ARCHIVE_SUFFIX)])
        except MalformedTimestamp as exc:
            raise MalformedArchiveName(path) from exc

    def iter_archives(self) -> Iterator[Tuple[date, Path]]:
        """Yield (day, path) for every dated archive file, in file name order.

        Directories and files that are not named like an archive are skipped.
        A missing archive directory yields nothing.
        """
        if not self.archive_dir.is_dir():
            return
        for path in sorted(self.archive_dir.iterdir()):
            if not path.is_file():
                continue
            try:
                day = self.date_for(path)
            except MalformedArchiveName:
                logger.debug("Skipping non-archive file %s", path)
                continue
            yield day, path
