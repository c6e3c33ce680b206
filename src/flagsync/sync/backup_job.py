"""One-directional job: directory A dictates the contents of directory B."""

from .job import Job


class BackupJob(Job):
    """Mirror directory A into directory B."""

    def _run(self) -> None:
        self.backup_directories(self.source_filesystem, self._configuration.source_path,
                                self.target_filesystem, self._configuration.target_path)
