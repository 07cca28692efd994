import threading
from datetime import date, datetime, timedelta

import pytest
from pydantic import BaseModel, ValidationError

from configs.settings import LogStoreConfig
from core.logfmt.line_set import LogLineSet
from core.logfmt.models import Severity
from exceptions.exceptions import LogFileNotFound, RangeOutOfBounds, StorageIOError
from runtime.store.log_store import LogStore


def write_lines(store, clock, n):
    for i in range(1, n + 1):
        store.write(f"line {i}")
        clock.advance(seconds=1)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def test_write_creates_directory_and_file_lazily(store, clock):
    assert not store.config.base_dir.exists()
    entry = store.write("hello")
    assert entry.timestamp == clock.now
    assert store.live_file_path.read_text(encoding="utf-8") == (
        "[2024-03-09 12:00:00.000000] hello\n"
    )


def test_write_with_severity_and_explicit_timestamp(store):
    when = datetime(2024, 3, 9, 1, 2, 3, 4)
    store.write("low disk", severity=Severity.WARNING, timestamp=when)
    assert store.line(0).text == "WARNING: low disk"
    assert store.line(0, timestamped=True).timestamp == when


def test_write_rejects_multiline_text(store):
    with pytest.raises(ValidationError):
        store.write("one\ntwo")
    assert not store.live_file_path.exists()


def test_write_payload_uses_compact_json(store):
    store.write_payload({"user": "zoë", "path": "/a/b", "ids": [1, 2]})
    assert store.line(0).text == '{"user":"zoë","path":"/a/b","ids":[1,2]}'


def test_write_payload_with_pydantic_model_and_custom_serializer(store):
    class Event(BaseModel):
        kind: str
        count: int

    store.write_payload(Event(kind="sync", count=3))
    store.write_payload([1, 2, 3], serializer=lambda p: ",".join(map(str, p)))
    assert store.lines().texts() == ['{"kind":"sync","count":3}', "1,2,3"]


def test_round_trip_preserves_pairs_in_order(store, clock):
    texts = ["plain", "with ] bracket", '{"json": true}', "  padded  ", ""]
    written = []
    for text in texts:
        written.append(store.write(text))
        clock.advance(microseconds=1)
    raw = store.live_file_path.read_text(encoding="utf-8")
    parsed = LogLineSet.parse(raw)
    assert parsed.serialize() == raw
    assert [e.key for e in parsed] == [e.key for e in written]


# ---------------------------------------------------------------------------
# Viewing
# ---------------------------------------------------------------------------


def test_lines_slices(store, clock):
    write_lines(store, clock, 5)
    assert store.lines(1, 3).texts() == ["line 2", "line 3", "line 4"]
    assert store.lines().count() == 5


def test_tail_and_negative_count(store, clock):
    write_lines(store, clock, 5)
    assert store.tail(2).texts() == ["line 4", "line 5"]
    assert store.lines(0, -2) == store.tail(2)
    assert store.tail().count() == 5


def test_line_returns_single_entry(store, clock):
    write_lines(store, clock, 5)
    assert store.line(3).text == "line 4"
    with pytest.raises(RangeOutOfBounds):
        store.line(5)


def test_lines_out_of_bounds(store, clock):
    write_lines(store, clock, 5)
    with pytest.raises(RangeOutOfBounds):
        store.lines(10, 5)


def test_timestamped_flag(store, clock):
    write_lines(store, clock, 2)
    assert store.lines(timestamped=True).items()[0] == ("2024-03-09 12:00:00.000000", "line 1")
    assert store.lines().serialize() is None


def test_missing_live_file(store):
    with pytest.raises(LogFileNotFound):
        store.lines()
    with pytest.raises(FileNotFoundError):
        store.tail(1)
    assert store.is_empty() is True


def test_is_empty_ignores_undecodable_lines(store):
    store.config.base_dir.mkdir(parents=True)
    store.live_file_path.write_text("not a log line\n\n", encoding="utf-8")
    assert store.is_empty() is True


def test_clear(store, clock):
    write_lines(store, clock, 3)
    store.clear()
    assert store.is_empty()
    assert store.live_file_path.read_text(encoding="utf-8") == ""
    store.clear(keep_placeholder=True)
    assert not store.is_empty()
    assert store.lines().texts() == [""]


def test_read_failure_is_storage_error(store, clock):
    store.write("x")
    store.live_file_path.unlink()
    store.live_file_path.mkdir()
    with pytest.raises(StorageIOError):
        store.lines()


# ---------------------------------------------------------------------------
# Searching
# ---------------------------------------------------------------------------


def test_between_bounds(store, clock):
    write_lines(store, clock, 5)
    t0 = datetime(2024, 3, 9, 12, 0, 1)
    t1 = datetime(2024, 3, 9, 12, 0, 3)
    assert store.between(t0, t1).texts() == ["line 2", "line 3"]


def test_between_without_live_file_is_empty(store):
    assert store.between(datetime(2024, 1, 1), datetime(2025, 1, 1)).count() == 0


def test_between_live_file_outside_range(store, clock):
    write_lines(store, clock, 3)
    assert store.between(datetime(2024, 3, 10), datetime(2024, 3, 11)).count() == 0


def test_between_merges_archives_in_chronological_order(store, clock):
    yesterday = clock.now - timedelta(days=1)
    store.write("old", timestamp=yesterday)
    store.write("new")
    store.rotate()

    start = datetime(2024, 3, 8)
    end = datetime(2024, 3, 10)
    assert store.between(start, end).texts() == ["new"]
    assert store.between(start, end, include_archives=True).texts() == ["old", "new"]


def test_between_skips_archives_outside_date_range(store, clock):
    archive_dir = store.archive_dir
    archive_dir.mkdir(parents=True)
    (archive_dir / "2024-03-01.log").write_text("[2024-03-01 10:00:00.000000] far\n", encoding="utf-8")
    (archive_dir / "2024-03-07.log").write_text("[2024-03-07 10:00:00.000000] near\n", encoding="utf-8")
    (archive_dir / "notes.txt").write_text("ignored\n", encoding="utf-8")

    result = store.between(datetime(2024, 3, 7), datetime(2024, 3, 8), include_archives=True)
    assert result.texts() == ["near"]


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------


def test_rotate_empty_or_missing_is_noop(store):
    assert store.rotate() == 0
    store.clear()
    assert store.rotate() == 0


def test_rotate_only_today_touches_nothing(store, clock):
    write_lines(store, clock, 3)
    before = store.live_file_path.read_text(encoding="utf-8")
    assert store.rotate() == 0
    assert store.live_file_path.read_text(encoding="utf-8") == before
    assert store.archive_dates() == []


def test_rotate_moves_past_days_into_archives(store, clock):
    store.write("two days ago", timestamp=clock.now - timedelta(days=2))
    store.write("yesterday a", timestamp=clock.now - timedelta(days=1, hours=1))
    store.write("yesterday b", timestamp=clock.now - timedelta(days=1))
    store.write("today")

    assert store.rotate() == 3
    assert store.archive_dates() == [date(2024, 3, 7), date(2024, 3, 8)]
    assert store.archive(date(2024, 3, 8)).texts() == ["yesterday a", "yesterday b"]
    assert store.archive(date(2024, 3, 7)).texts() == ["two days ago"]
    assert store.lines().texts() == ["today"]


def test_rotate_keeps_future_entries_live(store, clock):
    store.write("yesterday", timestamp=clock.now - timedelta(days=1))
    store.write("tomorrow", timestamp=clock.now + timedelta(days=1))
    store.rotate()
    assert store.lines().texts() == ["tomorrow"]


def test_rotate_is_idempotent(store, clock):
    store.write("yesterday", timestamp=clock.now - timedelta(days=1))
    store.write("today")
    window = (datetime(2024, 3, 1), datetime(2024, 3, 31))

    assert store.rotate() == 2
    after_first = store.between(*window, include_archives=True)
    assert store.rotate() == 0
    assert store.between(*window, include_archives=True) == after_first


def test_rotate_merges_with_existing_archive_without_duplicates(store, clock):
    archive = store.archive_dir / "2024-03-08.log"
    archive.parent.mkdir(parents=True)
    archive.write_text(
        "[2024-03-08 09:00:00.000000] archived\n[2024-03-08 10:00:00.000000] overlap\n",
        encoding="utf-8",
    )
    store.write("overlap", timestamp=datetime(2024, 3, 8, 10))
    store.write("fresh", timestamp=datetime(2024, 3, 8, 11))

    assert store.rotate() == 2
    assert store.archive(date(2024, 3, 8)).texts() == ["archived", "overlap", "fresh"]
    assert store.is_empty()


def test_rotate_rerun_after_partial_failure_does_not_duplicate(store, clock):
    store.write("yesterday", timestamp=clock.now - timedelta(days=1))
    # Simulate a crash after the archive was written but before the live file was rewritten.
    archive = store.archive_dir / "2024-03-08.log"
    archive.parent.mkdir(parents=True)
    archive.write_text(store.live_file_path.read_text(encoding="utf-8"), encoding="utf-8")

    assert store.rotate() == 1
    assert store.archive(date(2024, 3, 8)).texts() == ["yesterday"]


def test_rotate_into_existing_archive_keeps_same_microsecond_duplicates(store, clock):
    yesterday = clock.now - timedelta(days=1)
    store.write("earlier", timestamp=yesterday - timedelta(hours=1))
    assert store.rotate() == 2

    store.write("tick", timestamp=yesterday)
    store.write("tick", timestamp=yesterday)
    window = (datetime(2024, 3, 1), datetime(2024, 3, 31))
    assert store.between(*window, include_archives=True).count() == 3

    store.rotate()
    assert store.between(*window, include_archives=True).count() == 3
    assert store.archive(date(2024, 3, 8)).texts() == ["earlier", "tick", "tick"]


def test_archive_missing_day(store):
    with pytest.raises(LogFileNotFound):
        store.archive(date(2020, 1, 1))


def test_from_settings_uses_configured_names(tmp_path, clock):
    store = LogStore.from_settings(data_dir=tmp_path, clock=clock)
    assert store.live_file_path == tmp_path / "plugin.log"
    assert store.archive_dir == tmp_path / "logs"
    assert store.write("x").timestamp == clock.now


def test_config_paths(tmp_path):
    config = LogStoreConfig(base_dir=tmp_path, log_file_name="app.log", archive_dir_name="old")
    assert config.live_file_path == tmp_path / "app.log"
    assert config.archive_dir == tmp_path / "old"
    assert config.lock_file_path == tmp_path / "app.log.lock"


def test_rotate_discards_undecodable_live_lines(store, clock):
    store.write("today")
    with store.live_file_path.open("a", encoding="utf-8") as f:
        f.write("hand-written note\n")

    assert store.rotate() == 1
    assert store.live_file_path.read_text(encoding="utf-8") == (
        "[2024-03-09 12:00:00.000000] today\n"
    )
    assert store.rotate() == 0


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_writers_never_interleave_lines(tmp_path, clock):
    config = LogStoreConfig(base_dir=tmp_path / "data", clock=clock)
    writers, per_writer = 4, 200
    errors = []

    def worker(n):
        # One store per thread, so the file lock is exercised as well.
        store = LogStore(config)
        try:
            for i in range(per_writer):
                store.write(f"writer {n} entry {i} " + str(n) * 2000)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(writers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    store = LogStore(config)
    raw_lines = store.live_file_path.read_text(encoding="utf-8").splitlines()
    assert len(raw_lines) == writers * per_writer
    assert store.lines().count() == writers * per_writer
    for entry in store.lines():
        n = entry.text.split()[1]
        assert entry.text.endswith(n * 2000)


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


def test_end_to_end_scenario(store, clock):
    write_lines(store, clock, 5)
    assert store.tail(2).texts() == ["line 4", "line 5"]
    assert store.line(2).text == "line 3"

    store.clear()
    assert store.is_empty()

    yesterday_start = datetime(2024, 3, 8)
    today_start = datetime(2024, 3, 9)
    store.write("late night", timestamp=datetime(2024, 3, 8, 23, 30))

    assert store.rotate() == 2
    assert store.archive_dates() == [date(2024, 3, 8)]
    assert store.is_empty()

    found = store.between(yesterday_start, today_start, include_archives=True)
    assert found.texts() == ["late night"]
