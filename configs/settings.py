from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from dotenv import load_dotenv


load_dotenv()


Clock = Callable[[], datetime]


@dataclass(frozen=True)
class LogStoreConfig:
    """
    Everything a LogStore needs from its host application.

    base_dir:
        Writable data directory. The live log and the archive directory
        are placed directly inside it.
    clock:
        Source of "now", used to timestamp writes and to decide which day
        is "today" during rotation. Tests inject a fixed clock here.
    """

    base_dir: Path
    log_file_name: str = "plugin.log"
    archive_dir_name: str = "logs"
    clock: Clock = field(default=datetime.now)

    @property
    def live_file_path(self) -> Path:
        return self.base_dir / self.log_file_name

    @property
    def archive_dir(self) -> Path:
        return self.base_dir / self.archive_dir_name

    @property
    def lock_file_path(self) -> Path:
        return self.base_dir / f"{self.log_file_name}.lock"


class Settings:
    """
    Central configuration for Daylog.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties.
    """

    def __init__(self) -> None:
        # Storage locations
        self._data_dir = Path(os.getenv("DAYLOG_DATA_DIR", "data"))
        self._log_file_name = os.getenv("DAYLOG_LOG_FILE", "plugin.log")
        self._archive_dir_name = os.getenv("DAYLOG_ARCHIVE_DIR", "logs")

        # Diagnostics emitted by the store itself (not the stored entries)
        self._log_level = os.getenv("DAYLOG_LOG_LEVEL", "WARNING").upper()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def log_file_name(self) -> str:
        return self._log_file_name

    @property
    def archive_dir_name(self) -> str:
        return self._archive_dir_name

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def log_level(self) -> str:
        return self._log_level

    def log_store_config(
        self,
        data_dir: Union[str, Path, None] = None,
        clock: Optional[Clock] = None,
    ) -> LogStoreConfig:
        """Build a LogStoreConfig from these settings, with optional overrides."""
        return LogStoreConfig(
            base_dir=Path(data_dir) if data_dir is not None else self._data_dir,
            log_file_name=self._log_file_name,
            archive_dir_name=self._archive_dir_name,
            clock=clock or datetime.now,
        )


settings = Settings()
