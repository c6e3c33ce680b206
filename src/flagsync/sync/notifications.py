"""Progress notifications: the engine's only output channel.

Jobs and the worker publish :class:`Notification` objects to a
:class:`NotificationBus`. Subscribers are plain callables and run on the
thread that produced the notification; a consumer that must process
notifications on its own thread (a UI loop, for example) subscribes a
:class:`QueueSubscriber` and drains it.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from .file_counter import FileCounterResult

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Every notification the engine can emit."""
    FILES_COUNTED = "files_counted"
    JOB_STARTED = "job_started"
    JOB_FINISHED = "job_finished"
    ALL_FINISHED = "all_finished"

    DIRECTORY_CREATING = "directory_creating"
    DIRECTORY_CREATED = "directory_created"
    DIRECTORY_CREATION_ERROR = "directory_creation_error"
    DIRECTORY_DELETING = "directory_deleting"
    DIRECTORY_DELETED = "directory_deleted"
    DIRECTORY_DELETION_ERROR = "directory_deletion_error"

    FILE_CREATING = "file_creating"
    FILE_CREATED = "file_created"
    FILE_MODIFYING = "file_modifying"
    FILE_MODIFIED = "file_modified"
    FILE_COPY_PROGRESS = "file_copy_progress"
    FILE_COPY_ERROR = "file_copy_error"
    FILE_DELETING = "file_deleting"
    FILE_DELETED = "file_deleted"
    FILE_DELETION_ERROR = "file_deletion_error"
    FILE_PROCEEDED = "file_proceeded"


ERROR_KINDS = frozenset({
    NotificationKind.DIRECTORY_CREATION_ERROR,
    NotificationKind.DIRECTORY_DELETION_ERROR,
    NotificationKind.FILE_COPY_ERROR,
    NotificationKind.FILE_DELETION_ERROR,
})


@dataclass(frozen=True)
class Notification:
    """A single progress notification.

    Only the payload fields relevant to ``kind`` are set; see
    :class:`NotificationKind` for the vocabulary.
    """
    kind: NotificationKind
    job_name: Optional[str] = None
    source_path: Optional[str] = None
    target_path: Optional[str] = None
    file_size: Optional[int] = None
    transferred_bytes: Optional[int] = None
    total_bytes: Optional[int] = None
    speed: Optional[float] = None  # bytes per second
    written_bytes: Optional[int] = None
    stopped: bool = False
    error: Optional[str] = None
    counted: Optional[FileCounterResult] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_error(self) -> bool:
        return self.kind in ERROR_KINDS


Subscriber = Callable[[Notification], None]


class NotificationBus:
    """Thread-safe registry of notification subscribers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Tuple[Subscriber, Optional[FrozenSet[NotificationKind]]]] = []

    def subscribe(self, callback: Subscriber,
                  kinds: Optional[Iterable[NotificationKind]] = None) -> Callable[[], None]:
        """Register a subscriber.

        Args:
            callback: Called with every matching notification
            kinds: Restrict delivery to these kinds (default: all)

        Returns:
            A callable that removes the subscription
        """
        kind_filter = frozenset(kinds) if kinds is not None else None
        with self._lock:
            self._subscribers.append((callback, kind_filter))
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers = [(cb, kinds) for cb, kinds in self._subscribers if cb is not callback]

    def publish(self, notification: Notification) -> None:
        """Deliver a notification to every matching subscriber."""
        with self._lock:
            subscribers = list(self._subscribers)

        for callback, kinds in subscribers:
            if kinds is not None and notification.kind not in kinds:
                continue
            try:
                callback(notification)
            except Exception:
                # A broken consumer must not abort a running job
                logger.exception(f"Notification subscriber failed on {notification.kind.value}")


class QueueSubscriber:
    """Subscriber that hands notifications over to another thread."""

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[Notification]" = queue.Queue(maxsize=maxsize)

    def __call__(self, notification: Notification) -> None:
        self._queue.put(notification)

    def get(self, timeout: Optional[float] = None) -> Optional[Notification]:
        """Get the next notification, or None when ``timeout`` expires."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Notification]:
        """Get every notification queued so far without blocking."""
        notifications = []
        while True:
            try:
                notifications.append(self._queue.get_nowait())
            except queue.Empty:
                return notifications
