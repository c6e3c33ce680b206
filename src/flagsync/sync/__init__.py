"""Sync engine: jobs, worker and progress notifications."""

from .backup_job import BackupJob
from .control import JobControl, JobStopped
from .file_counter import FileCounter, FileCounterResult
from .job import Job, JobPhase, JobStateError
from .job_worker import JobWorker
from .notifications import Notification, NotificationBus, NotificationKind, QueueSubscriber
from .progress import LogEntry, ProgressTracker
from .sync_job import SyncJob

__all__ = [
    "BackupJob",
    "FileCounter",
    "FileCounterResult",
    "Job",
    "JobControl",
    "JobPhase",
    "JobStateError",
    "JobStopped",
    "JobWorker",
    "LogEntry",
    "Notification",
    "NotificationBus",
    "NotificationKind",
    "ProgressTracker",
    "QueueSubscriber",
    "SyncJob",
]
