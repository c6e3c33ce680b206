"""Filesystem capability required by the sync engine.

The engine never touches ``os`` directly; every directory listing, copy and
deletion goes through a :class:`FileSystem`. A concrete backing (local disk,
FTP, a media library) only has to implement the primitives below; streaming
copies with progress reporting are provided by the base class, so the two
sides of a job may be different implementations.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Callable, List, Optional

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1MB
TEMP_SUFFIX = ".flagsync-tmp"

logger = logging.getLogger(__name__)

# (transferred_bytes, total_bytes, instantaneous_speed in bytes/s)
ProgressCallback = Callable[[int, int, float], None]


@dataclass(frozen=True)
class FileEntry:
    """A single directory entry."""
    name: str
    is_directory: bool
    size: int
    modified_time: datetime  # timezone-aware UTC, microsecond precision


class FileSystem(ABC):
    """Abstract filesystem capability.

    All failures must be raised as ``OSError`` (``FileNotFoundError`` for a
    missing path).
    """

    @abstractmethod
    def join(self, *parts: str) -> str:
        """Join path components."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a path exists."""

    @abstractmethod
    def stat(self, path: str) -> FileEntry:
        """Get the entry describing a single path."""

    @abstractmethod
    def list_entries(self, path: str) -> List[FileEntry]:
        """List the direct children of a directory."""

    @abstractmethod
    def create_directory(self, path: str) -> None:
        """Create a directory (parents included)."""

    @abstractmethod
    def delete_directory(self, path: str, recursive: bool = True) -> None:
        """Delete a directory, with its contents when ``recursive``."""

    @abstractmethod
    def delete_file(self, path: str) -> None:
        """Delete a file."""

    @abstractmethod
    def open_read(self, path: str) -> BinaryIO:
        """Open a file for binary reading."""

    @abstractmethod
    def open_write(self, path: str) -> BinaryIO:
        """Open (truncate or create) a file for binary writing."""

    @abstractmethod
    def set_modified_time(self, path: str, modified_time: datetime) -> None:
        """Set the last-write timestamp of a file."""

    @abstractmethod
    def replace(self, source_path: str, target_path: str) -> None:
        """Rename a file, overwriting ``target_path`` if it exists."""

    def copy_file(self, source_path: str, target_path: str,
                  on_progress: Optional[ProgressCallback] = None,
                  target_filesystem: Optional["FileSystem"] = None,
                  chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Copy a file from this filesystem to ``target_filesystem``.

        Data is streamed into a temporary sibling of ``target_path`` which
        replaces the target only once it is complete, so a failed copy leaves
        an existing target untouched.

        Args:
            source_path: File to read on this filesystem
            target_path: File to write on the target filesystem
            on_progress: Called after every chunk with transferred bytes,
                total bytes and the speed of that chunk in bytes per second
            target_filesystem: Destination filesystem (defaults to this one)
            chunk_size: Size of chunks to read

        Returns:
            Number of bytes written
        """
        target_fs = target_filesystem or self
        source_entry = self.stat(source_path)
        total = source_entry.size
        temp_path = target_path + TEMP_SUFFIX
        transferred = 0
        last_tick = time.perf_counter()

        with self.open_read(source_path) as src:
            try:
                with target_fs.open_write(temp_path) as dst:
                    for chunk in iter(lambda: src.read(chunk_size), b""):
                        dst.write(chunk)
                        transferred += len(chunk)

                        now = time.perf_counter()
                        elapsed = now - last_tick
                        last_tick = now
                        speed = len(chunk) / elapsed if elapsed > 0 else 0.0

                        if on_progress:
                            on_progress(transferred, max(total, transferred), speed)

                # Equal timestamps mean "up to date" on the next run
                target_fs.set_modified_time(temp_path, source_entry.modified_time)
                target_fs.replace(temp_path, target_path)
            except Exception:
                self._discard(target_fs, temp_path)
                raise

        return transferred

    @staticmethod
    def _discard(filesystem: "FileSystem", path: str) -> None:
        if not filesystem.exists(path):
            return
        try:
            filesystem.delete_file(path)
        except OSError as e:
            logger.warning(f"Could not remove incomplete copy {path}: {e}")
