"""Abstract job: run state machine and the directory reconciliation algorithm."""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Set

from ..config.settings import JobConfiguration
from ..filesystem import DEFAULT_CHUNK_SIZE, FileEntry, FileSystem, LocalFileSystem
from ..utils.logging import ContextualLogger
from .control import JobControl, JobStopped
from .notifications import Notification, NotificationBus, NotificationKind

# Module logger
logger = logging.getLogger(__name__)


class JobPhase(str, Enum):
    """Run state of a job."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"
    STOPPED = "stopped"


class JobStateError(RuntimeError):
    """Raised on an illegal job state transition."""


class Job(ABC):
    """Base class of backup and sync jobs.

    A job reconciles a pair of directory trees once. :meth:`start` runs the
    whole traversal on the calling thread; :meth:`pause`, :meth:`resume` and
    :meth:`stop` may be called from any thread and take effect at the next
    checkpoint (before every file or directory operation).
    """

    def __init__(self, configuration: JobConfiguration, preview: bool = False,
                 bus: Optional[NotificationBus] = None,
                 source_filesystem: Optional[FileSystem] = None,
                 target_filesystem: Optional[FileSystem] = None,
                 control: Optional[JobControl] = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        """Initialize job.

        Args:
            configuration: Job configuration (never mutated)
            preview: Report every action without touching the filesystem;
                the configuration's own preview flag also enables it
            bus: Bus receiving the job's notifications
            source_filesystem: Filesystem holding directory A
            target_filesystem: Filesystem holding directory B
            control: Pause/stop token (a private one by default)
            chunk_size: Copy chunk size in bytes
        """
        self._configuration = configuration
        self._preview = preview or configuration.preview
        self._bus = bus or NotificationBus()
        self.source_filesystem = source_filesystem or LocalFileSystem()
        self.target_filesystem = target_filesystem or LocalFileSystem()
        self._control = control or JobControl()
        self.chunk_size = chunk_size

        self._written_bytes = 0
        self._phase = JobPhase.IDLE
        self._phase_lock = threading.Lock()
        self.log = ContextualLogger(logger, {'job': configuration.name})

    @property
    def configuration(self) -> JobConfiguration:
        return self._configuration

    @property
    def name(self) -> str:
        return self._configuration.name

    @property
    def preview(self) -> bool:
        return self._preview

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def control(self) -> JobControl:
        return self._control

    @property
    def written_bytes(self) -> int:
        """Bytes actually written by completed copies."""
        return self._written_bytes

    @property
    def phase(self) -> JobPhase:
        if self._phase == JobPhase.RUNNING and self._control.is_paused:
            return JobPhase.PAUSED
        return self._phase

    def start(self) -> None:
        """Run the job to completion (or until stopped) on this thread."""
        with self._phase_lock:
            if self._phase != JobPhase.IDLE:
                raise JobStateError(f"Job {self.name} cannot start from phase {self._phase.value}")
            self._phase = JobPhase.RUNNING

        self.log.info(f"Starting {'preview of ' if self.preview else ''}"
                      f"{self._configuration.mode.value} job: "
                      f"{self._configuration.source_path} -> {self._configuration.target_path}")
        self._notify(NotificationKind.JOB_STARTED)

        stopped = True
        try:
            self._run()
            self._control.checkpoint()
            stopped = False
        except JobStopped:
            self.log.info("Stop requested, traversal aborted")
        finally:
            self._phase = JobPhase.STOPPED if stopped else JobPhase.FINISHED
            self.log.info(f"Job {self._phase.value}, {self._written_bytes:,} bytes written")
            self._notify(NotificationKind.JOB_FINISHED,
                         written_bytes=self._written_bytes, stopped=stopped)

    def pause(self) -> None:
        self._control.pause()

    def resume(self) -> None:
        self._control.resume()

    def stop(self) -> None:
        self._control.stop()

    @abstractmethod
    def _run(self) -> None:
        """Perform the job's reconciliation passes."""

    def backup_directories(self, source_fs: FileSystem, source_dir: str,
                           target_fs: FileSystem, target_dir: str) -> None:
        """Reconcile ``target_dir`` with ``source_dir``, one direction only.

        New and newer source files are copied, orphans on the target side are
        deleted, then every sub-directory pair is processed depth-first.
        """
        self._control.checkpoint()

        if not source_fs.exists(source_dir):
            self.log.warning(f"Source directory does not exist, nothing to do: {source_dir}")
            return

        if not target_fs.exists(target_dir):
            if not self._create_directory(source_dir, target_fs, target_dir):
                return

        self._reconcile_directory(source_fs, source_dir, target_fs, target_dir)

    def _reconcile_directory(self, source_fs: FileSystem, source_dir: str,
                             target_fs: FileSystem, target_dir: str) -> None:
        try:
            source_entries = self._list_by_name(source_fs, source_dir)
        except OSError as e:
            self.log.warning(f"Skipping unreadable source directory {source_dir}: {e}")
            return

        # Only a preview reaches a target directory that was never created
        target_entries: Dict[str, FileEntry] = {}
        if target_fs.exists(target_dir):
            try:
                target_entries = self._list_by_name(target_fs, target_dir)
            except OSError as e:
                self.log.warning(f"Skipping unreadable target directory {target_dir}: {e}")
                return

        source_dirs = sorted(name for name, entry in source_entries.items() if entry.is_directory)
        source_files = sorted(name for name, entry in source_entries.items() if not entry.is_directory)
        target_dirs = {name for name, entry in target_entries.items() if entry.is_directory}
        target_files = {name for name, entry in target_entries.items() if not entry.is_directory}

        failed_dirs: Set[str] = set()

        for name in source_dirs:
            if name not in target_dirs:
                self._control.checkpoint()
                if not self._create_directory(source_fs.join(source_dir, name),
                                              target_fs, target_fs.join(target_dir, name)):
                    failed_dirs.add(name)

        for name in source_files:
            self._control.checkpoint()
            source_entry = source_entries[name]
            source_path = source_fs.join(source_dir, name)
            target_path = target_fs.join(target_dir, name)

            if name not in target_files:
                self._copy_file(source_fs, source_path, source_entry, target_fs, target_path, modify=False)
            elif source_entry.modified_time > target_entries[name].modified_time:
                self._copy_file(source_fs, source_path, source_entry, target_fs, target_path, modify=True)

            self._notify(NotificationKind.FILE_PROCEEDED,
                         source_path=source_path, file_size=source_entry.size)

        for name in sorted(target_files - set(source_files)):
            self._control.checkpoint()
            self._delete_file(target_fs, target_fs.join(target_dir, name), target_entries[name])

        for name in sorted(target_dirs - set(source_dirs)):
            self._control.checkpoint()
            self._delete_directory(target_fs, target_fs.join(target_dir, name))

        for name in source_dirs:
            if name in failed_dirs:
                continue
            self._control.checkpoint()
            self._reconcile_directory(source_fs, source_fs.join(source_dir, name),
                                      target_fs, target_fs.join(target_dir, name))

    @staticmethod
    def _list_by_name(filesystem: FileSystem, path: str) -> Dict[str, FileEntry]:
        return {entry.name: entry for entry in filesystem.list_entries(path)}

    def _create_directory(self, source_dir: str, target_fs: FileSystem, target_dir: str) -> bool:
        self._notify(NotificationKind.DIRECTORY_CREATING, source_path=source_dir, target_path=target_dir)

        if not self.preview:
            try:
                target_fs.create_directory(target_dir)
            except OSError as e:
                self.log.warning(f"Could not create directory {target_dir}: {e}")
                self._notify(NotificationKind.DIRECTORY_CREATION_ERROR,
                             source_path=source_dir, target_path=target_dir, error=str(e))
                return False

        self.log.debug(f"Created directory {target_dir}")
        self._notify(NotificationKind.DIRECTORY_CREATED, source_path=source_dir, target_path=target_dir)
        return True

    def _copy_file(self, source_fs: FileSystem, source_path: str, source_entry: FileEntry,
                   target_fs: FileSystem, target_path: str, modify: bool) -> None:
        if modify:
            started, done = NotificationKind.FILE_MODIFYING, NotificationKind.FILE_MODIFIED
        else:
            started, done = NotificationKind.FILE_CREATING, NotificationKind.FILE_CREATED

        self._notify(started, source_path=source_path, target_path=target_path, file_size=source_entry.size)

        if self.preview:
            self._notify(done, source_path=source_path, target_path=target_path, file_size=source_entry.size)
            return

        def on_progress(transferred: int, total: int, speed: float) -> None:
            self._notify(NotificationKind.FILE_COPY_PROGRESS,
                         source_path=source_path, target_path=target_path,
                         transferred_bytes=transferred, total_bytes=total, speed=speed)

        try:
            written = source_fs.copy_file(source_path, target_path, on_progress=on_progress,
                                          target_filesystem=target_fs, chunk_size=self.chunk_size)
        except OSError as e:
            self.log.warning(f"Could not copy {source_path} to {target_path}: {e}")
            self._notify(NotificationKind.FILE_COPY_ERROR, source_path=source_path,
                         target_path=target_path, file_size=source_entry.size, error=str(e))
            return

        self._written_bytes += written
        self.log.debug(f"{'Modified' if modify else 'Created'} {target_path} ({written:,} bytes)")
        self._notify(done, source_path=source_path, target_path=target_path, file_size=written)

    def _delete_file(self, target_fs: FileSystem, target_path: str, entry: FileEntry) -> None:
        self._notify(NotificationKind.FILE_DELETING, target_path=target_path, file_size=entry.size)

        if not self.preview:
            try:
                target_fs.delete_file(target_path)
            except OSError as e:
                self.log.warning(f"Could not delete file {target_path}: {e}")
                self._notify(NotificationKind.FILE_DELETION_ERROR, target_path=target_path,
                             file_size=entry.size, error=str(e))
                return

        self.log.debug(f"Deleted file {target_path}")
        self._notify(NotificationKind.FILE_DELETED, target_path=target_path, file_size=entry.size)

    def _delete_directory(self, target_fs: FileSystem, target_dir: str) -> None:
        self._notify(NotificationKind.DIRECTORY_DELETING, target_path=target_dir)

        if not self.preview:
            try:
                target_fs.delete_directory(target_dir, recursive=True)
            except OSError as e:
                self.log.warning(f"Could not delete directory {target_dir}: {e}")
                self._notify(NotificationKind.DIRECTORY_DELETION_ERROR, target_path=target_dir, error=str(e))
                return

        self.log.debug(f"Deleted directory {target_dir}")
        self._notify(NotificationKind.DIRECTORY_DELETED, target_path=target_dir)

    def _notify(self, kind: NotificationKind, **fields) -> None:
        self._bus.publish(Notification(kind=kind, job_name=self.name, **fields))
