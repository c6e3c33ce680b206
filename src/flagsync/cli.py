"""Command-line interface for the FlagSync engine."""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import click
from rich import print as rprint
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from . import __version__
from .config.settings import JobConfiguration, JobsConfig, SyncMode
from .sync.file_counter import FileCounter
from .sync.job_worker import JobWorker
from .sync.notifications import Notification, NotificationKind
from .sync.progress import ProgressTracker
from .utils.file_utils import FileHelper
from .utils.logging import setup_logging

console = Console()

DEFAULT_CONFIG = Path('config/jobs.yaml')


class JobResultCollector:
    """Collect per-job outcome counters from the notification stream."""

    _COUNTED_KINDS = {
        NotificationKind.DIRECTORY_CREATED: 'directories_created',
        NotificationKind.DIRECTORY_DELETED: 'directories_deleted',
        NotificationKind.FILE_CREATED: 'files_created',
        NotificationKind.FILE_MODIFIED: 'files_modified',
        NotificationKind.FILE_DELETED: 'files_deleted',
    }

    def __init__(self):
        self.results: Dict[str, dict] = {}
        self.errors: List[Notification] = []

    def _result(self, job_name: str) -> dict:
        if job_name not in self.results:
            self.results[job_name] = {
                'job_name': job_name,
                'status': 'running',
                'directories_created': 0,
                'directories_deleted': 0,
                'files_created': 0,
                'files_modified': 0,
                'files_deleted': 0,
                'bytes_written': 0,
                'errors': 0,
            }
        return self.results[job_name]

    def __call__(self, notification: Notification) -> None:
        if notification.job_name is None:
            return

        result = self._result(notification.job_name)
        if notification.kind == NotificationKind.JOB_FINISHED:
            result['status'] = 'stopped' if notification.stopped else 'completed'
            result['bytes_written'] = notification.written_bytes or 0
        elif notification.kind in self._COUNTED_KINDS:
            result[self._COUNTED_KINDS[notification.kind]] += 1
        elif notification.is_error:
            result['errors'] += 1
            self.errors.append(notification)


@click.group()
@click.version_option(version=__version__)
def cli():
    """FlagSync - directory backup and synchronization

    Backup jobs mirror directory A into directory B; sync jobs reconcile both
    directions. Files are compared by name, size and modification time.
    """
    pass


def _select_jobs(jobs_config: JobsConfig, job_name: Optional[str]) -> List[JobConfiguration]:
    if job_name:
        job = jobs_config.get_job_by_name(job_name)
        if job is None:
            raise click.ClickException(f"Job '{job_name}' not found")
        if not job.enabled:
            raise click.ClickException(f"Job '{job_name}' is disabled")
        return [job]
    return jobs_config.get_enabled_jobs()


@cli.command()
@click.option('--config', '-c',
              type=click.Path(exists=True, path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to job configuration file')
@click.option('--job', '-j',
              help='Run specific job by name (default: run all enabled jobs)')
@click.option('--preview', '-p',
              is_flag=True,
              help='Show what would be done without changing any file')
@click.option('--verbose', '-v',
              is_flag=True,
              help='Log every file operation')
def run(config: Path, job: Optional[str], preview: bool, verbose: bool):
    """Run backup and sync jobs."""
    try:
        with console.status("Loading configuration..."):
            jobs_config = JobsConfig.from_yaml(config)
        configs = _select_jobs(jobs_config, job)
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    options = jobs_config.options
    setup_logging(log_level="DEBUG" if verbose else options.log_level,
                  log_file=Path(options.log_file) if options.log_file else None)

    if not configs:
        console.print("⚠️ No enabled jobs to run", style="yellow")
        return

    if preview:
        console.print("🔍 PREVIEW MODE - No files will be changed", style="yellow bold")

    worker = JobWorker(options=options)
    tracker = ProgressTracker(speed_samples=options.speed_samples)
    collector = JobResultCollector()
    worker.subscribe(tracker)
    worker.subscribe(collector)

    console.print(f"🚀 Running {len(configs)} job(s)")
    stopped = _run_with_progress(worker, tracker, configs, preview)

    _display_results(collector, tracker)

    if stopped:
        console.print("⏹️ Stopped by user", style="yellow bold")
        sys.exit(130)
    if collector.errors:
        sys.exit(1)


def _run_with_progress(worker: JobWorker, tracker: ProgressTracker,
                       configs: List[JobConfiguration], preview: bool) -> bool:
    """Run the worker while rendering a progress bar.

    Returns:
        True if the user interrupted the run
    """
    stopped = False
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("{task.fields[speed]}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Counting files...", total=None, speed="")
        worker.start(configs, preview=preview)

        while True:
            try:
                finished = worker.join(timeout=0.2)
            except KeyboardInterrupt:
                worker.stop()
                stopped = True
                finished = worker.join()

            progress.update(
                task,
                description=tracker.current_job or "Finishing",
                total=tracker.counted_bytes or None,
                completed=tracker.proceeded_bytes,
                speed=tracker.average_speed_text,
            )
            if finished:
                break

    return stopped


def _display_results(collector: JobResultCollector, tracker: ProgressTracker):
    """Display job results in a table."""
    table = Table(title="Job Results")
    table.add_column("Job Name", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Created", justify="right", style="green")
    table.add_column("Modified", justify="right", style="green")
    table.add_column("Deleted", justify="right", style="yellow")
    table.add_column("Data Written", justify="right")
    table.add_column("Errors", justify="right", style="red")

    for result in collector.results.values():
        status_style = "green" if result['status'] == 'completed' else "yellow"
        table.add_row(
            result['job_name'],
            f"[{status_style}]{result['status']}[/{status_style}]",
            str(result['files_created'] + result['directories_created']),
            str(result['files_modified']),
            str(result['files_deleted'] + result['directories_deleted']),
            FileHelper.format_file_size(result['bytes_written']),
            str(result['errors']),
        )

    console.print(table)

    rprint(f"\n📊 [bold]Summary:[/bold]")
    rprint(f"   • Files counted: {tracker.counted_files} ({FileHelper.format_file_size(tracker.counted_bytes)})")
    rprint(f"   • Files proceeded: {tracker.proceeded_files}")
    rprint(f"   • Data written: [green]{FileHelper.format_file_size(tracker.written_bytes)}[/green]")
    rprint(f"   • Average speed: {tracker.average_speed_text}")

    if collector.errors:
        rprint(f"\n⚠️ [yellow]{len(collector.errors)} errors occurred:[/yellow]")
        for error in collector.errors:
            path = error.source_path or error.target_path
            rprint(f"   • [red]{error.kind.value}: {path} ({error.error})[/red]")


@cli.command()
@click.option('--config', '-c',
              type=click.Path(exists=True, path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to job configuration file')
@click.option('--job', '-j',
              help='Count files of a specific job (default: all enabled jobs)')
def count(config: Path, job: Optional[str]):
    """Count the files and bytes the jobs will visit."""
    try:
        jobs_config = JobsConfig.from_yaml(config)
        configs = _select_jobs(jobs_config, job)
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    counter = FileCounter()
    table = Table(title="File Count")
    table.add_column("Job Name", style="cyan")
    table.add_column("Mode", style="magenta")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    total = None
    with console.status("Counting files..."):
        for job_config in configs:
            result = counter.count_job_files(job_config)
            total = result if total is None else total + result
            table.add_row(job_config.name, job_config.mode.value,
                          str(result.counted_files), FileHelper.format_file_size(result.counted_bytes))

    console.print(table)
    if total is not None:
        rprint(f"\n📊 [bold]Total:[/bold] {total.counted_files} files, "
               f"{FileHelper.format_file_size(total.counted_bytes)}")


@cli.command()
@click.option('--config', '-c',
              type=click.Path(path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to save configuration file')
def init(config: Path):
    """Initialize a new job configuration file."""
    if config.exists():
        if not click.confirm(f"Configuration file {config} already exists. Overwrite?"):
            return

    console.print("🚀 Creating new configuration file...")

    sample_config = {
        'jobs': [
            {
                'name': 'documents_backup',
                'source_path': str(Path.home() / 'Documents'),
                'target_path': str(Path('/mnt/backup/Documents')),
                'mode': SyncMode.BACKUP.value,
            },
            {
                'name': 'music_sync',
                'source_path': str(Path.home() / 'Music'),
                'target_path': str(Path('/mnt/player/Music')),
                'mode': SyncMode.SYNC.value,
                'enabled': False,
            },
        ],
        'options': {
            'copy_chunk_size': 1024 * 1024,
            'speed_samples': 500,
            'log_level': 'INFO',
            'log_file': 'logs/flagsync.log',
        },
    }

    JobsConfig(**sample_config).to_yaml(config)

    console.print(f"✅ Configuration saved to {config}", style="green")
    console.print("\n📝 Next steps:")
    console.print("1. Edit the configuration file to point at your directories")
    console.print("2. Run 'flagsync run --preview' to see what would change")
    console.print("3. Run 'flagsync run' to start")


@cli.command()
@click.option('--config', '-c',
              type=click.Path(exists=True, path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to job configuration file')
def status(config: Path):
    """Show the configured jobs."""
    try:
        jobs_config = JobsConfig.from_yaml(config)
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    console.print("📋 [bold]Jobs:[/bold]")
    table = Table()
    table.add_column("Job Name", style="cyan")
    table.add_column("Mode", style="magenta")
    table.add_column("Directory A")
    table.add_column("Directory B")
    table.add_column("Status", style="green")

    for job in jobs_config.jobs:
        state = "✅ Enabled" if job.enabled else "❌ Disabled"
        if job.preview:
            state += " (preview)"
        table.add_row(job.name, job.mode.value, job.source_path, job.target_path, state)

    console.print(table)


if __name__ == '__main__':
    cli()
