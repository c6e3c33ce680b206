"""Bidirectional job built from two one-directional passes."""

from .job import Job


class SyncJob(Job):
    """Synchronize directory A and directory B.

    Runs the backup algorithm from A to B, then from B back to A. The order
    matters: the second pass sees B already updated by the first, so newer
    files win on either side, while orphans in B are removed by the first
    pass before they could be copied back.
    """

    def _run(self) -> None:
        directory_a = self._configuration.directory_a
        directory_b = self._configuration.directory_b

        self.backup_directories(self.source_filesystem, directory_a, self.target_filesystem, directory_b)
        self.backup_directories(self.target_filesystem, directory_b, self.source_filesystem, directory_a)
