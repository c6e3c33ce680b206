"""Consumer-side aggregation of the notification stream.

A :class:`ProgressTracker` subscribes to a bus and keeps the numbers a
presentation layer needs: overall progress, current file progress, average
transfer speed and a log of actions taken.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from ..utils.file_utils import FileHelper
from .notifications import Notification, NotificationKind

logger = logging.getLogger(__name__)

FILE = "File"
DIRECTORY = "Directory"

# kind -> (action, item type) for notifications that open a log entry
_STARTING_ACTIONS = {
    NotificationKind.DIRECTORY_CREATING: ("Creating", DIRECTORY),
    NotificationKind.DIRECTORY_DELETING: ("Deleting", DIRECTORY),
    NotificationKind.FILE_CREATING: ("Creating", FILE),
    NotificationKind.FILE_MODIFYING: ("Modifying", FILE),
    NotificationKind.FILE_DELETING: ("Deleting", FILE),
}

_COMPLETING_KINDS = frozenset({
    NotificationKind.DIRECTORY_CREATED,
    NotificationKind.DIRECTORY_DELETED,
    NotificationKind.FILE_CREATED,
    NotificationKind.FILE_MODIFIED,
    NotificationKind.FILE_DELETED,
})

_ERROR_ACTIONS = {
    NotificationKind.DIRECTORY_CREATION_ERROR: ("Creation error", DIRECTORY),
    NotificationKind.DIRECTORY_DELETION_ERROR: ("Deletion error", DIRECTORY),
    NotificationKind.FILE_COPY_ERROR: ("Copy error", FILE),
    NotificationKind.FILE_DELETION_ERROR: ("Deletion error", FILE),
}


@dataclass
class LogEntry:
    """One line of the action log."""
    action: str
    item_type: str
    source_path: str
    target_path: str
    is_error: bool = False
    file_size: Optional[int] = None
    progress: int = 0  # percent

    @property
    def is_in_progress(self) -> bool:
        return self.progress != 100

    @property
    def file_size_text(self) -> str:
        if self.file_size is None:
            return ""
        return FileHelper.format_file_size(self.file_size)


class ProgressTracker:
    """Aggregate notifications into progress figures.

    Subscribe an instance to a bus (it is callable) or feed it notifications
    directly with :meth:`handle`.
    """

    def __init__(self, speed_samples: int = 500):
        self._lock = threading.Lock()
        self._speeds: Deque[float] = deque(maxlen=speed_samples)
        self.entries: List[LogEntry] = []
        self.counted_files = 0
        self.counted_bytes = 0
        self.proceeded_files = 0
        self._proceeded_bytes = 0
        self.written_bytes = 0
        self.error_count = 0
        self.current_job: Optional[str] = None
        self.finished_jobs: List[str] = []
        self.all_finished = False

    def __call__(self, notification: Notification) -> None:
        self.handle(notification)

    @property
    def proceeded_bytes(self) -> int:
        return self._proceeded_bytes

    @property
    def last_entry(self) -> Optional[LogEntry]:
        return self.entries[-1] if self.entries else None

    @property
    def current_progress(self) -> int:
        """Progress of the latest action in percent."""
        entry = self.last_entry
        return entry.progress if entry else 0

    @property
    def total_progress_percentage(self) -> float:
        if self.all_finished:
            return 100.0
        if self.counted_bytes <= 0:
            return 0.0
        return self._proceeded_bytes / self.counted_bytes * 100.0

    @property
    def average_speed(self) -> float:
        """Average copy speed in bytes per second over the recent samples."""
        with self._lock:
            if not self._speeds:
                return 0.0
            return sum(self._speeds) / len(self._speeds)

    @property
    def average_speed_text(self) -> str:
        return f"{FileHelper.format_file_size(int(self.average_speed))}/s"

    def handle(self, notification: Notification) -> None:
        """Update the figures from a single notification."""
        kind = notification.kind

        with self._lock:
            if kind == NotificationKind.FILES_COUNTED and notification.counted is not None:
                self.counted_files = notification.counted.counted_files
                self.counted_bytes = notification.counted.counted_bytes

            elif kind == NotificationKind.JOB_STARTED:
                self.current_job = notification.job_name

            elif kind == NotificationKind.JOB_FINISHED:
                self.finished_jobs.append(notification.job_name)
                self.written_bytes += notification.written_bytes or 0

            elif kind == NotificationKind.ALL_FINISHED:
                self.current_job = None
                self.all_finished = True
                self._proceeded_bytes = self.counted_bytes
                # An error in the last copy may leave its entry unfinished
                if self.entries:
                    self.entries[-1].progress = 100

            elif kind == NotificationKind.FILE_PROCEEDED:
                self._add_proceeded(notification.file_size or 0)

            elif kind == NotificationKind.FILE_COPY_PROGRESS:
                self._update_copy_progress(notification)

            elif kind in _STARTING_ACTIONS:
                action, item_type = _STARTING_ACTIONS[kind]
                self.entries.append(LogEntry(action, item_type, notification.source_path or "",
                                             notification.target_path or "", False, notification.file_size))

            elif kind in _COMPLETING_KINDS:
                if self.entries:
                    self.entries[-1].progress = 100

            elif kind in _ERROR_ACTIONS:
                self._replace_with_error(notification)

    def _add_proceeded(self, size: int) -> None:
        self.proceeded_files += 1
        proceeded = self._proceeded_bytes + size
        if proceeded > self.counted_bytes:
            logger.debug(f"Proceeded bytes exceeding range! {proceeded} of maximum {self.counted_bytes}")
            proceeded = self.counted_bytes
        self._proceeded_bytes = proceeded

    def _update_copy_progress(self, notification: Notification) -> None:
        if not notification.total_bytes:
            return
        if self.entries:
            percent = int(notification.transferred_bytes / notification.total_bytes * 100)
            self.entries[-1].progress = max(0, min(percent, 100))
        self._speeds.append(notification.speed or 0.0)

    def _replace_with_error(self, notification: Notification) -> None:
        action, item_type = _ERROR_ACTIONS[notification.kind]
        self.error_count += 1

        last = self.last_entry
        if last is not None and last.is_in_progress and not last.is_error:
            self.entries.pop()

        # Deletion errors only know the path being deleted
        if notification.source_path:
            source_path, target_path = notification.source_path, notification.target_path or ""
        else:
            source_path, target_path = notification.target_path or "", ""

        self.entries.append(LogEntry(action, item_type, source_path, target_path,
                                     True, notification.file_size, progress=100))
