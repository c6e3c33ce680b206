"""
FlagSync

Directory backup and synchronization engine. Detects new, modified and
orphaned files between directory pairs and reconciles them one way (backup)
or both ways (sync), with progress notifications, pause, resume and stop.
"""

__version__ = "1.0.0"
__author__ = "FlagSync"
__description__ = "Directory backup and synchronization engine"

from .config.settings import JobConfiguration, JobsConfig, SyncMode
from .sync.job_worker import JobWorker

__all__ = ["JobConfiguration", "JobsConfig", "JobWorker", "SyncMode"]
