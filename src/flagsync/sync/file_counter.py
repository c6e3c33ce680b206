"""Pre-flight file counting used to size progress reporting."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..config.settings import JobConfiguration, SyncMode
from ..filesystem import FileSystem, default_filesystem_resolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileCounterResult:
    """Aggregate totals of a counting pass."""
    counted_files: int = 0
    counted_bytes: int = 0

    def __add__(self, other: "FileCounterResult") -> "FileCounterResult":
        if not isinstance(other, FileCounterResult):
            return NotImplemented
        return FileCounterResult(
            counted_files=self.counted_files + other.counted_files,
            counted_bytes=self.counted_bytes + other.counted_bytes,
        )


class FileCounter:
    """Count files and bytes reachable from job directories.

    Counting is read-only. Directories that cannot be listed are skipped, so
    totals may undercount but a count never fails.
    """

    def __init__(self, filesystem_resolver: Optional[Callable[[str], FileSystem]] = None):
        self.filesystem_resolver = filesystem_resolver or default_filesystem_resolver

    def count(self, configs: Iterable[JobConfiguration]) -> FileCounterResult:
        """Count the files of several jobs and sum the totals."""
        result = FileCounterResult()
        for config in configs:
            result += self.count_job_files(config)
        return result

    def count_job_files(self, config: JobConfiguration) -> FileCounterResult:
        """Count the files a single job will visit.

        Backup visits only the source tree; sync visits both trees.
        """
        result = self.count_directory(self.filesystem_resolver(config.source_path), config.source_path)

        if config.mode == SyncMode.SYNC:
            result += self.count_directory(self.filesystem_resolver(config.target_path), config.target_path)

        logger.debug(f"Counted {result.counted_files} files ({result.counted_bytes:,} bytes) for job {config.name}")
        return result

    def count_directory(self, filesystem: FileSystem, path: str) -> FileCounterResult:
        """Recursively count files below ``path``."""
        try:
            entries = filesystem.list_entries(path)
        except FileNotFoundError:
            logger.debug(f"Skipping missing directory while counting: {path}")
            return FileCounterResult()
        except OSError as e:
            logger.warning(f"Skipping unreadable directory while counting: {path} ({e})")
            return FileCounterResult()

        files = [entry for entry in entries if not entry.is_directory]
        result = FileCounterResult(
            counted_files=len(files),
            counted_bytes=sum(entry.size for entry in files),
        )

        for entry in entries:
            if entry.is_directory:
                result += self.count_directory(filesystem, filesystem.join(path, entry.name))

        return result
