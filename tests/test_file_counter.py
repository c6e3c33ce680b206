"""Tests for pre-flight file counting."""

import logging
from pathlib import Path

from flagsync.config.settings import JobConfiguration, SyncMode
from flagsync.filesystem import LocalFileSystem
from flagsync.sync.file_counter import FileCounter, FileCounterResult


class UnreadableFileSystem(LocalFileSystem):
    """Local filesystem refusing to list directories with a given name."""

    def __init__(self, unreadable: str):
        self.unreadable = unreadable

    def list_entries(self, path):
        if Path(path).name == self.unreadable:
            raise PermissionError(13, "Permission denied", path)
        return super().list_entries(path)


class TestFileCounterResult:
    """Tests for FileCounterResult."""

    def test_addition(self) -> None:
        total = FileCounterResult(1, 10) + FileCounterResult(2, 5)

        assert total == FileCounterResult(counted_files=3, counted_bytes=15)

    def test_empty(self) -> None:
        assert FileCounterResult() == FileCounterResult(0, 0)


class TestFileCounter:
    """Tests for FileCounter."""

    def test_counts_recursively(self, dir_a: Path, make_file) -> None:
        make_file(dir_a / "a.txt", b"12345")
        make_file(dir_a / "sub" / "b.txt", b"123")
        make_file(dir_a / "sub" / "deeper" / "c.txt", b"1")
        (dir_a / "empty").mkdir()

        result = FileCounter().count_directory(LocalFileSystem(), str(dir_a))

        assert result == FileCounterResult(counted_files=3, counted_bytes=9)

    def test_backup_counts_source_only(self, dir_a: Path, dir_b: Path, make_file) -> None:
        make_file(dir_a / "a.txt", b"1234")
        make_file(dir_b / "b.txt", b"12345678")
        config = JobConfiguration(name="backup", source_path=str(dir_a), target_path=str(dir_b))

        assert FileCounter().count_job_files(config) == FileCounterResult(1, 4)

    def test_sync_counts_both_sides(self, dir_a: Path, dir_b: Path, make_file) -> None:
        make_file(dir_a / "a.txt", b"1234")
        make_file(dir_b / "b.txt", b"12345678")
        config = JobConfiguration(name="sync", source_path=str(dir_a), target_path=str(dir_b),
                                  mode=SyncMode.SYNC)

        assert FileCounter().count_job_files(config) == FileCounterResult(2, 12)

    def test_count_sums_jobs(self, dir_a: Path, dir_b: Path, temp_dir: Path, make_file) -> None:
        make_file(dir_a / "a.txt", b"12")
        make_file(dir_b / "b.txt", b"123")
        configs = [
            JobConfiguration(name="one", source_path=str(dir_a), target_path=str(temp_dir / "x")),
            JobConfiguration(name="two", source_path=str(dir_b), target_path=str(temp_dir / "y")),
        ]

        assert FileCounter().count(configs) == FileCounterResult(2, 5)

    def test_missing_directory_counts_zero(self, temp_dir: Path) -> None:
        result = FileCounter().count_directory(LocalFileSystem(), str(temp_dir / "missing"))

        assert result == FileCounterResult()

    def test_unreadable_directory_is_skipped(self, dir_a: Path, make_file, caplog) -> None:
        make_file(dir_a / "a.txt", b"1")
        make_file(dir_a / "locked" / "secret.txt", b"secret")
        counter = FileCounter(filesystem_resolver=lambda path: UnreadableFileSystem("locked"))
        config = JobConfiguration(name="partial", source_path=str(dir_a), target_path="/nowhere")

        with caplog.at_level(logging.WARNING, logger="flagsync"):
            result = counter.count_job_files(config)

        assert result == FileCounterResult(1, 1)
        assert "Skipping unreadable directory" in caplog.text

    def test_counting_does_not_modify(self, dir_a: Path, make_file, snapshot) -> None:
        make_file(dir_a / "sub" / "b.txt", b"123")
        before = snapshot(dir_a)

        FileCounter().count_directory(LocalFileSystem(), str(dir_a))

        assert snapshot(dir_a) == before

    def test_directory_link_loop_is_not_followed(self, dir_a: Path, make_file) -> None:
        make_file(dir_a / "sub" / "real.txt", b"real")
        (dir_a / "sub" / "loop").symlink_to(dir_a, target_is_directory=True)

        result = FileCounter().count_directory(LocalFileSystem(), str(dir_a))

        # The link itself is an entry of sub, never a directory to descend into
        assert result.counted_files == 2
