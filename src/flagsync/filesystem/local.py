"""Local disk implementation of the filesystem capability."""

import logging
import os
import shutil
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, List

from .base import FileEntry, FileSystem

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _from_mtime_ns(mtime_ns: int) -> datetime:
    # Integer arithmetic keeps copied timestamps comparing equal
    return EPOCH + timedelta(microseconds=mtime_ns // 1000)


def _to_mtime_ns(modified_time: datetime) -> int:
    if modified_time.tzinfo is None:
        modified_time = modified_time.astimezone(timezone.utc)
    return ((modified_time - EPOCH) // _MICROSECOND) * 1000


class LocalFileSystem(FileSystem):
    """Filesystem backed by the local disk."""

    def join(self, *parts: str) -> str:
        return os.path.join(*parts)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def stat(self, path: str) -> FileEntry:
        st = os.stat(path)
        is_directory = os.path.isdir(path)
        return FileEntry(
            name=os.path.basename(os.path.normpath(path)),
            is_directory=is_directory,
            size=0 if is_directory else st.st_size,
            modified_time=_from_mtime_ns(st.st_mtime_ns),
        )

    def list_entries(self, path: str) -> List[FileEntry]:
        """List a directory without following symbolic links.

        A link is reported as a file carrying its target's size and time,
        so a dangling link or a link to a directory surfaces as a failing copy
        rather than being traversed.
        """
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    st = entry.stat(follow_symlinks=False)
                    is_directory = entry.is_dir(follow_symlinks=False)
                    if entry.is_symlink() and os.path.isfile(entry.path):
                        st = entry.stat()
                except OSError as e:
                    logger.warning(f"Skipping unreadable entry {entry.path}: {e}")
                    continue
                entries.append(FileEntry(
                    name=entry.name,
                    is_directory=is_directory,
                    size=0 if is_directory else st.st_size,
                    modified_time=_from_mtime_ns(st.st_mtime_ns),
                ))
        return entries

    def create_directory(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def delete_directory(self, path: str, recursive: bool = True) -> None:
        if recursive:
            shutil.rmtree(path)
        else:
            os.rmdir(path)

    def delete_file(self, path: str) -> None:
        os.remove(path)

    def open_read(self, path: str) -> BinaryIO:
        return open(path, 'rb')

    def open_write(self, path: str) -> BinaryIO:
        return open(path, 'wb')

    def set_modified_time(self, path: str, modified_time: datetime) -> None:
        mtime_ns = _to_mtime_ns(modified_time)
        os.utime(path, ns=(mtime_ns, mtime_ns))

    def replace(self, source_path: str, target_path: str) -> None:
        os.replace(source_path, target_path)
