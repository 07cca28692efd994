from datetime import datetime, timedelta

import pytest

from configs.settings import LogStoreConfig
from runtime.store.log_store import LogStore


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 9, 12, 0, 0))


@pytest.fixture
def store(tmp_path, clock):
    return LogStore(LogStoreConfig(base_dir=tmp_path / "data", clock=clock))
