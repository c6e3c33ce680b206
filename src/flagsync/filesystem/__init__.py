"""Filesystem capabilities used by the engine."""

from .base import DEFAULT_CHUNK_SIZE, FileEntry, FileSystem
from .local import LocalFileSystem


def default_filesystem_resolver(path: str) -> FileSystem:
    """Resolve every path to the local disk."""
    return LocalFileSystem()


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "FileEntry",
    "FileSystem",
    "LocalFileSystem",
    "default_filesystem_resolver",
]
