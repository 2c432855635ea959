"""
Unit tests for cleanup helpers.
"""

import asyncio
import os
import time
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

from linkgrab import cleanup
from linkgrab.cleanup import (
    clean_directory,
    cleanup_old_files,
    delete_file,
    delete_file_job,
    get_directory_stats,
    get_disk_usage,
    monitor_disk_space,
    periodic_cleanup,
    schedule_file_deletion,
)


def _touch_file(path: Path, mtime: float | None = None, size: int = 1) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    if mtime is not None:
        os.utime(path, (mtime, mtime))


class TestDeleteFile:
    def test_deletes_existing_file(self, tmp_path):
        target = tmp_path / "a.mp4"
        _touch_file(target)

        assert delete_file(str(target)) is True
        assert not target.exists()

    def test_missing_file_counts_as_deleted(self, tmp_path):
        assert delete_file(str(tmp_path / "gone.mp4")) is True

    def test_other_errors_are_reported(self, tmp_path, monkeypatch):
        def deny(_path):
            raise PermissionError("denied")

        monkeypatch.setattr(cleanup.os, "remove", deny)

        assert delete_file(str(tmp_path / "locked.mp4")) is False


def test_schedule_file_deletion_registers_one_shot_job():
    job_queue = Mock()

    schedule_file_deletion(job_queue, "/downloads/clip.mp4")

    job_queue.run_once.assert_called_once()
    args, kwargs = job_queue.run_once.call_args
    assert args[0] is delete_file_job
    assert kwargs["when"] == cleanup.FILE_RETENTION_SECONDS == 120
    assert kwargs["data"] == "/downloads/clip.mp4"


def test_schedule_file_deletion_custom_delay():
    job_queue = Mock()
    schedule_file_deletion(job_queue, "/downloads/clip.mp4", delay=5)
    assert job_queue.run_once.call_args.kwargs["when"] == 5


def test_delete_file_job_removes_job_data(tmp_path):
    target = tmp_path / "clip.mp4"
    _touch_file(target)
    context = SimpleNamespace(job=SimpleNamespace(data=str(target)))

    asyncio.run(delete_file_job(context))
    # Second run finds nothing and must not fail
    asyncio.run(delete_file_job(context))

    assert not target.exists()


class TestCleanupOldFiles:
    def test_removes_stale_files_only(self, tmp_path):
        now = time.time()
        old_file = tmp_path / "old.mp4"
        new_file = tmp_path / "fresh.mp4"
        _touch_file(old_file, now - 121)
        _touch_file(new_file, now - 30)

        deleted = cleanup_old_files(str(tmp_path), max_age_seconds=120)

        assert deleted == 1
        assert not old_file.exists()
        assert new_file.exists()

    def test_leaves_subdirectories_alone(self, tmp_path):
        now = time.time()
        nested = tmp_path / "nested" / "old.mp4"
        _touch_file(nested, now - 3600)

        assert cleanup_old_files(str(tmp_path), max_age_seconds=120) == 0
        assert nested.exists()

    def test_nonexistent_directory(self):
        assert cleanup_old_files("/tmp/path-that-does-not-exist", max_age_seconds=120) == 0

    def test_continues_after_per_file_error(self, tmp_path, monkeypatch):
        now = time.time()
        first = tmp_path / "a.mp4"
        second = tmp_path / "b.mp4"
        _touch_file(first, now - 600)
        _touch_file(second, now - 600)

        real_remove = os.remove

        def flaky_remove(path):
            if path.endswith("a.mp4"):
                raise PermissionError("busy")
            real_remove(path)

        monkeypatch.setattr(cleanup.os, "remove", flaky_remove)

        assert cleanup_old_files(str(tmp_path), max_age_seconds=120) == 1
        assert first.exists()
        assert not second.exists()

    def test_file_deleted_concurrently_is_skipped(self, tmp_path, monkeypatch):
        target = tmp_path / "a.mp4"
        _touch_file(target, time.time() - 600)

        def already_gone(path):
            raise FileNotFoundError(path)

        monkeypatch.setattr(cleanup.os, "remove", already_gone)

        assert cleanup_old_files(str(tmp_path), max_age_seconds=120) == 0


def test_sweep_alone_enforces_retention(download_dir, monkeypatch):
    """A file whose scheduled deletion was lost is removed by the sweep."""
    created = time.time()
    target = download_dir / "orphan.mp4"
    _touch_file(target, created)

    # Sweep before the window: file survives
    monkeypatch.setattr(cleanup.time, "time", lambda: created + 60)
    asyncio.run(periodic_cleanup(Mock()))
    assert target.exists()

    # Sweep after the window: gone within retention + one interval
    monkeypatch.setattr(
        cleanup.time, "time",
        lambda: created + cleanup.FILE_RETENTION_SECONDS + cleanup.CLEANUP_INTERVAL_SECONDS,
    )
    asyncio.run(periodic_cleanup(Mock()))
    assert not target.exists()


def test_periodic_cleanup_never_raises(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(cleanup, "cleanup_old_files", boom)

    asyncio.run(periodic_cleanup(Mock()))


def test_clean_directory_removes_everything(tmp_path):
    _touch_file(tmp_path / "a.mp4")
    _touch_file(tmp_path / "b.png")
    (tmp_path / "sub").mkdir()

    assert clean_directory(str(tmp_path)) == 2
    assert sorted(p.name for p in tmp_path.iterdir()) == ["sub"]


def test_clean_directory_missing_dir():
    assert clean_directory("/tmp/path-that-does-not-exist") == 0


def test_get_directory_stats(tmp_path):
    _touch_file(tmp_path / "a.mp4", size=1024 * 1024)
    _touch_file(tmp_path / "b.mp4", size=1024 * 1024)

    count, size_mb = get_directory_stats(str(tmp_path))

    assert count == 2
    assert round(size_mb, 2) == 2.0
    assert get_directory_stats("/tmp/path-that-does-not-exist") == (0, 0)


def test_get_disk_usage_returns_disk_usage(monkeypatch):
    total = 100 * 1024 ** 3
    used = 40 * 1024 ** 3
    free = 60 * 1024 ** 3

    monkeypatch.setattr(cleanup.shutil, "disk_usage", lambda _path: (total, used, free))
    used_gb, free_gb, total_gb, usage_percent = get_disk_usage()

    assert round(used_gb, 2) == 40.0
    assert round(free_gb, 2) == 60.0
    assert round(total_gb, 2) == 100.0
    assert usage_percent == 40.0


def test_get_disk_usage_statvfs_fallback(monkeypatch):
    monkeypatch.setattr(cleanup.shutil, "disk_usage", lambda _path: (_ for _ in ()).throw(OSError("boom")))
    monkeypatch.setattr(cleanup.os, "statvfs", lambda _path: SimpleNamespace(
        f_blocks=200,
        f_frsize=1024 ** 2,
        f_avail=100,
    ), raising=False)

    got = get_disk_usage()
    assert got == (100.0 / 1024, 100.0 / 1024, 200.0 / 1024, 50.0)


def test_get_disk_usage_all_methods_fail(monkeypatch):
    def fail(_path):
        raise OSError("boom")

    monkeypatch.setattr(cleanup.shutil, "disk_usage", fail)
    monkeypatch.setattr(cleanup.os, "statvfs", fail, raising=False)

    assert get_disk_usage() == (0, 0, 0, 0)


def test_monitor_disk_space_warns_when_low(monkeypatch, caplog):
    monkeypatch.setattr(cleanup, "get_disk_usage", lambda: (95.0, 4.0, 100.0, 96.0))

    with caplog.at_level("WARNING"):
        assert monitor_disk_space() == 4.0

    assert "Critically low disk space" in caplog.text


def test_monitor_disk_space_quiet_when_disk_available(monkeypatch, caplog):
    monkeypatch.setattr(cleanup, "get_disk_usage", lambda: (80.0, 20.0, 100.0, 80.0))

    with caplog.at_level("WARNING"):
        monitor_disk_space()

    assert "low disk space" not in caplog.text.lower()
