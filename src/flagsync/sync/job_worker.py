"""Job worker running a queue of backup and sync jobs one at a time."""

import logging
import threading
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

from ..config.settings import EngineOptions, JobConfiguration, SyncMode
from ..filesystem import FileSystem, default_filesystem_resolver
from ..utils.logging import TimedOperation
from .backup_job import BackupJob
from .file_counter import FileCounter, FileCounterResult
from .job import Job
from .notifications import Notification, NotificationBus, NotificationKind, Subscriber
from .sync_job import SyncJob

logger = logging.getLogger(__name__)


class JobWorker:
    """Runs an ordered batch of jobs on background threads.

    Files of the whole batch are counted up front so consumers can size
    their progress display, then jobs run strictly in submission order, each
    on its own thread, never two at a time.
    """

    def __init__(self, bus: Optional[NotificationBus] = None,
                 filesystem_resolver: Optional[Callable[[str], FileSystem]] = None,
                 options: Optional[EngineOptions] = None):
        """Initialize the job worker.

        Args:
            bus: Bus receiving all notifications (a new one by default)
            filesystem_resolver: Maps a job directory to the filesystem holding it
            options: Engine options
        """
        self._bus = bus or NotificationBus()
        self.filesystem_resolver = filesystem_resolver or default_filesystem_resolver
        self.options = options or EngineOptions()

        self._lock = threading.RLock()
        self._queue: Deque[Job] = deque()
        self._current_job: Optional[Job] = None
        self._worker_thread: Optional[threading.Thread] = None
        self._finished = threading.Event()
        self._finished.set()
        self._paused = False

        self.total_written_bytes = 0
        self.file_counter_result = FileCounterResult()

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def current_job(self) -> Optional[Job]:
        return self._current_job

    @property
    def is_running(self) -> bool:
        return not self._finished.is_set()

    @property
    def is_paused(self) -> bool:
        return self._paused

    def subscribe(self, callback: Subscriber,
                  kinds: Optional[Iterable[NotificationKind]] = None) -> Callable[[], None]:
        """Subscribe to the worker's notifications."""
        return self._bus.subscribe(callback, kinds)

    def start(self, configs: Iterable[JobConfiguration], preview: bool = False) -> None:
        """Count the files of all jobs, then start processing them in order.

        Counting happens on the calling thread; the jobs run in the background.

        Args:
            configs: Ordered job configurations; disabled ones are skipped
            preview: Run every job in preview mode
        """
        with self._lock:
            if self.is_running:
                raise RuntimeError("Job worker is already running")

            configs = list(configs)
            jobs: List[Job] = []
            for config in configs:
                if not config.enabled:
                    logger.info(f"Skipping disabled job: {config.name}")
                    continue
                jobs.append(self._create_job(config, preview))

            self._queue = deque(jobs)
            self._current_job = None
            self._paused = False
            self.total_written_bytes = 0
            self._finished.clear()

        logger.info(f"Counting files of {len(jobs)} jobs")
        counter = FileCounter(self.filesystem_resolver)
        try:
            self.file_counter_result = counter.count(job.configuration for job in jobs)
        except Exception:
            logger.exception("Counting files failed, batch not started")
            with self._lock:
                self._queue.clear()
                self._finished.set()
            raise
        logger.info(f"Counted {self.file_counter_result.counted_files} files "
                    f"({self.file_counter_result.counted_bytes:,} bytes)")
        self._notify(NotificationKind.FILES_COUNTED, counted=self.file_counter_result)

        self._do_next_job()

    def pause(self) -> None:
        """Pause the active job at its next checkpoint."""
        with self._lock:
            if self._current_job is not None:
                self._current_job.pause()
                self._paused = True
                logger.info(f"Paused job: {self._current_job.name}")

    def resume(self) -> None:
        """Continue the active job."""
        with self._lock:
            if self._current_job is not None:
                self._current_job.resume()
                self._paused = False
                logger.info(f"Continuing job: {self._current_job.name}")

    def stop(self) -> None:
        """Stop the active job and drop every job still queued."""
        with self._lock:
            if self._queue:
                logger.info(f"Dropping {len(self._queue)} queued jobs")
            self._queue.clear()
            if self._current_job is not None:
                self._current_job.stop()
                logger.info(f"Stopping job: {self._current_job.name}")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until the batch has finished.

        Returns:
            True if finished, False if the timeout expired
        """
        return self._finished.wait(timeout)

    def _create_job(self, config: JobConfiguration, preview: bool) -> Job:
        job_class = SyncJob if config.mode == SyncMode.SYNC else BackupJob
        return job_class(
            config,
            preview=preview,
            bus=self._bus,
            source_filesystem=self.filesystem_resolver(config.source_path),
            target_filesystem=self.filesystem_resolver(config.target_path),
            chunk_size=self.options.copy_chunk_size,
        )

    def _do_next_job(self) -> None:
        with self._lock:
            if not self._queue:
                self._current_job = None
                self._worker_thread = None
                all_done = True
            else:
                all_done = False
                job = self._queue.popleft()
                self._current_job = job
                if self._paused:
                    job.pause()
                self._worker_thread = threading.Thread(
                    target=self._run_job, args=(job,), name=f"flagsync-job-{job.name}", daemon=True
                )
                self._worker_thread.start()

        if all_done:
            logger.info(f"All jobs finished, {self.total_written_bytes:,} bytes written")
            self._notify(NotificationKind.ALL_FINISHED, written_bytes=self.total_written_bytes)
            self._finished.set()

    def _run_job(self, job: Job) -> None:
        try:
            with TimedOperation(logger, f"job '{job.name}'"):
                job.start()
        except Exception:
            logger.exception(f"Job {job.name} failed unexpectedly")

        with self._lock:
            self.total_written_bytes += job.written_bytes

        self._do_next_job()

    def _notify(self, kind: NotificationKind, **fields) -> None:
        self._bus.publish(Notification(kind=kind, **fields))
