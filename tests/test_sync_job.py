"""Tests for the bidirectional sync job."""

from pathlib import Path

from flagsync.config.settings import JobConfiguration, SyncMode
from flagsync.sync.job import JobPhase
from flagsync.sync.notifications import NotificationKind
from flagsync.sync.sync_job import SyncJob

T0 = 1_600_000_000
T1 = T0 + 3600


def _sync(dir_a: Path, dir_b: Path, bus, preview: bool = False, **kwargs) -> SyncJob:
    config = JobConfiguration(name="sync", source_path=str(dir_a), target_path=str(dir_b), mode=SyncMode.SYNC)
    job = SyncJob(config, preview=preview, bus=bus, **kwargs)
    job.start()
    return job


class TestSyncJob:
    """Tests for SyncJob."""

    def test_orphan_in_b_is_deleted_not_copied_back(self, dir_a: Path, dir_b: Path, bus, recorder,
                                                    make_file) -> None:
        make_file(dir_b / "old.txt", b"old")

        _sync(dir_a, dir_b, bus)

        assert list(dir_a.iterdir()) == []
        assert list(dir_b.iterdir()) == []
        assert [n.target_path for n in recorder.of_kind(NotificationKind.FILE_DELETED)] == [str(dir_b / "old.txt")]
        assert recorder.of_kind(NotificationKind.FILE_CREATED) == []

    def test_newer_file_in_b_propagates_to_a(self, dir_a: Path, dir_b: Path, bus, recorder, make_file) -> None:
        make_file(dir_a / "x.txt", b"old", mtime=T0)
        make_file(dir_b / "x.txt", b"new version", mtime=T1)

        job = _sync(dir_a, dir_b, bus)

        assert (dir_a / "x.txt").read_bytes() == b"new version"
        assert (dir_b / "x.txt").read_bytes() == b"new version"
        modified = recorder.of_kind(NotificationKind.FILE_MODIFIED)
        assert [(n.source_path, n.target_path) for n in modified] == [(str(dir_b / "x.txt"), str(dir_a / "x.txt"))]
        assert job.written_bytes == len(b"new version")

    def test_newer_file_in_a_propagates_to_b(self, dir_a: Path, dir_b: Path, bus, make_file) -> None:
        make_file(dir_a / "x.txt", b"from a", mtime=T1)
        make_file(dir_b / "x.txt", b"from b", mtime=T0)

        _sync(dir_a, dir_b, bus)

        assert (dir_a / "x.txt").read_bytes() == b"from a"
        assert (dir_b / "x.txt").read_bytes() == b"from a"

    def test_trees_converge(self, dir_a: Path, dir_b: Path, bus, recorder, make_file, snapshot) -> None:
        make_file(dir_a / "a_only.txt", b"a")
        make_file(dir_a / "shared" / "doc.txt", b"a side", mtime=T0)
        make_file(dir_b / "shared" / "doc.txt", b"b side newer", mtime=T1)
        make_file(dir_b / "b_only" / "stale.txt", b"b")

        _sync(dir_a, dir_b, bus)

        assert snapshot(dir_a) == snapshot(dir_b)
        assert (dir_a / "shared" / "doc.txt").read_bytes() == b"b side newer"
        assert not (dir_a / "b_only").exists()

        recorder.notifications.clear()
        job = _sync(dir_a, dir_b, bus)

        assert recorder.mutations() == []
        assert job.written_bytes == 0

    def test_both_passes_report_proceeded_files(self, dir_a: Path, dir_b: Path, bus, recorder,
                                                make_file) -> None:
        make_file(dir_a / "x.txt", b"12345")

        _sync(dir_a, dir_b, bus)

        proceeded = recorder.of_kind(NotificationKind.FILE_PROCEEDED)
        assert [n.source_path for n in proceeded] == [str(dir_a / "x.txt"), str(dir_b / "x.txt")]

    def test_single_job_lifecycle(self, dir_a: Path, dir_b: Path, bus, recorder, make_file) -> None:
        make_file(dir_a / "x.txt", b"1")

        job = _sync(dir_a, dir_b, bus)

        assert job.phase == JobPhase.FINISHED
        assert recorder.kinds().count(NotificationKind.JOB_STARTED) == 1
        assert recorder.kinds().count(NotificationKind.JOB_FINISHED) == 1

    def test_preview_changes_nothing(self, dir_a: Path, dir_b: Path, bus, recorder, make_file,
                                     snapshot) -> None:
        make_file(dir_a / "new.txt", b"new")
        make_file(dir_a / "x.txt", b"old", mtime=T0)
        make_file(dir_b / "x.txt", b"newer", mtime=T1)
        make_file(dir_b / "orphan" / "y.txt", b"y")
        before_a, before_b = snapshot(dir_a), snapshot(dir_b)

        job = _sync(dir_a, dir_b, bus, preview=True)

        assert snapshot(dir_a) == before_a
        assert snapshot(dir_b) == before_b
        assert job.written_bytes == 0
        assert recorder.of_kind(NotificationKind.FILE_CREATED)
        assert recorder.of_kind(NotificationKind.DIRECTORY_DELETED)

    def test_interrupted_copy_damages_neither_side(self, dir_a: Path, dir_b: Path, bus, recorder, make_file,
                                                   read_failing_fs, snapshot) -> None:
        make_file(dir_a / "x.bin", b"N" * 100, mtime=T1)
        make_file(dir_b / "x.bin", b"O" * 100, mtime=T0)
        before_a, before_b = snapshot(dir_a), snapshot(dir_b)

        job = _sync(dir_a, dir_b, bus, source_filesystem=read_failing_fs, chunk_size=10)

        assert snapshot(dir_a) == before_a
        assert snapshot(dir_b) == before_b
        assert len(recorder.of_kind(NotificationKind.FILE_COPY_ERROR)) == 1
        assert recorder.mutations() == []
        assert job.written_bytes == 0

        _sync(dir_a, dir_b, bus)

        assert (dir_a / "x.bin").read_bytes() == b"N" * 100
        assert (dir_b / "x.bin").read_bytes() == b"N" * 100
