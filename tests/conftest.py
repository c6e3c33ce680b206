"""Shared test fixtures for FlagSync."""

import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from flagsync.filesystem import LocalFileSystem
from flagsync.sync.notifications import Notification, NotificationBus, NotificationKind

# Fixed timestamps keep comparisons independent of the test clock
T0 = 1_600_000_000

MUTATION_KINDS = frozenset({
    NotificationKind.DIRECTORY_CREATED,
    NotificationKind.DIRECTORY_DELETED,
    NotificationKind.FILE_CREATED,
    NotificationKind.FILE_MODIFIED,
    NotificationKind.FILE_DELETED,
})


class Recorder:
    """Subscriber remembering every notification it receives."""

    def __init__(self):
        self._lock = threading.Lock()
        self.notifications: List[Notification] = []

    def __call__(self, notification: Notification) -> None:
        with self._lock:
            self.notifications.append(notification)

    def __len__(self) -> int:
        with self._lock:
            return len(self.notifications)

    def kinds(self) -> List[NotificationKind]:
        with self._lock:
            return [n.kind for n in self.notifications]

    def of_kind(self, *kinds: NotificationKind) -> List[Notification]:
        with self._lock:
            return [n for n in self.notifications if n.kind in kinds]

    def mutations(self) -> List[Notification]:
        return self.of_kind(*MUTATION_KINDS)


class _FailingReader:
    """File wrapper raising an I/O error on a given read call."""

    def __init__(self, handle, fail_on_read: int):
        self._handle = handle
        self._reads = 0
        self._fail_on_read = fail_on_read

    def read(self, size: int = -1) -> bytes:
        self._reads += 1
        if self._reads == self._fail_on_read:
            raise OSError(5, "Input/output error")
        return self._handle.read(size)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._handle.close()


class ReadFailingFileSystem(LocalFileSystem):
    """Local filesystem whose reads break partway through a file."""

    def __init__(self, fail_on_read: int = 2):
        self.fail_on_read = fail_on_read

    def open_read(self, path):
        return _FailingReader(super().open_read(path), self.fail_on_read)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def dir_a(temp_dir: Path) -> Path:
    path = temp_dir / "a"
    path.mkdir()
    return path


@pytest.fixture
def dir_b(temp_dir: Path) -> Path:
    path = temp_dir / "b"
    path.mkdir()
    return path


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def recorder(bus: NotificationBus) -> Recorder:
    rec = Recorder()
    bus.subscribe(rec)
    return rec


@pytest.fixture
def make_file():
    """Return a helper writing a file with an optional modification time."""
    def _make_file(path: Path, content: bytes = b"", mtime: Optional[float] = T0) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _make_file


@pytest.fixture
def snapshot():
    """Return a helper capturing a tree as {relative path: (content, mtime_ns)}."""
    def _snapshot(root: Path) -> Dict[str, Tuple[Optional[bytes], int]]:
        result = {}
        for path in sorted(root.rglob("*")):
            rel = path.relative_to(root).as_posix()
            if path.is_dir():
                result[rel + "/"] = (None, 0)
            else:
                result[rel] = (path.read_bytes(), path.stat().st_mtime_ns)
        return result
    return _snapshot


@pytest.fixture
def read_failing_fs() -> ReadFailingFileSystem:
    """Filesystem failing on the second chunk read of every file."""
    return ReadFailingFileSystem(fail_on_read=2)
