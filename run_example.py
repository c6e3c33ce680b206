#!/usr/bin/env python3
"""
Example script demonstrating how to drive the FlagSync engine from code.

This script shows how to:
1. Build job configurations
2. Subscribe to progress notifications from another thread
3. Run a preview, then the real run
4. Handle errors and logging

It works on throw-away directories in a temporary folder.
"""

import sys
import tempfile
from pathlib import Path

# Add src to Python path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent / "src"))

from flagsync.config.settings import JobConfiguration, SyncMode
from flagsync.sync.job_worker import JobWorker
from flagsync.sync.notifications import NotificationKind, QueueSubscriber
from flagsync.utils.file_utils import FileHelper
from flagsync.utils.logging import setup_logging


def create_sample_tree(root: Path):
    """Create a small directory tree to back up."""
    (root / "photos" / "2024").mkdir(parents=True)
    (root / "notes.txt").write_text("shopping list\n", encoding="utf-8")
    (root / "photos" / "2024" / "beach.jpg").write_bytes(b"\xff\xd8" + b"\x00" * 4096)
    (root / "photos" / "cover.png").write_bytes(b"\x89PNG" + b"\x00" * 1024)


def run_batch(configs, preview: bool) -> int:
    """Run a batch and print notifications as they arrive on this thread."""
    worker = JobWorker()
    inbox = QueueSubscriber()
    worker.subscribe(inbox)

    worker.start(configs, preview=preview)

    while True:
        notification = inbox.get(timeout=5)
        if notification is None:
            print("⚠️  No notification for 5 seconds, stopping")
            worker.stop()
            worker.join()
            return 1

        kind = notification.kind
        if kind == NotificationKind.FILES_COUNTED:
            counted = notification.counted
            print(f"   📦 {counted.counted_files} files to visit "
                  f"({FileHelper.format_file_size(counted.counted_bytes)})")
        elif kind == NotificationKind.JOB_STARTED:
            print(f"   ▶️  {notification.job_name}")
        elif kind in (NotificationKind.FILE_CREATED, NotificationKind.FILE_MODIFIED,
                      NotificationKind.FILE_DELETED, NotificationKind.DIRECTORY_CREATED,
                      NotificationKind.DIRECTORY_DELETED):
            print(f"      {kind.value}: {notification.target_path}")
        elif notification.is_error:
            print(f"      ❌ {kind.value}: {notification.error}")
        elif kind == NotificationKind.ALL_FINISHED:
            print(f"   ✅ Done, {FileHelper.format_file_size(notification.written_bytes)} written")
            return 0


def main():
    """Main example function."""
    print("🚀 FlagSync - Example Run")
    print("=" * 60)

    logger = setup_logging(log_level="WARNING")

    try:
        with tempfile.TemporaryDirectory() as workspace:
            workspace = Path(workspace)
            source = workspace / "source"
            mirror = workspace / "mirror"
            create_sample_tree(source)

            configs = [
                JobConfiguration(name="example backup", source_path=str(source),
                                 target_path=str(mirror), mode=SyncMode.BACKUP),
            ]

            print("\n🔍 Preview run (nothing is written):")
            run_batch(configs, preview=True)

            print("\n🏃 Real run:")
            run_batch(configs, preview=False)

            print("\n🏃 Second run (everything is up to date):")
            run_batch(configs, preview=False)

        print("\n🎉 Example run completed!")
        print("\n📖 Next steps:")
        print("1. Run: flagsync init")
        print("2. Edit config/jobs.yaml to point at your directories")
        print("3. Run: flagsync run --preview")

    except Exception as e:
        print(f"❌ Error during example run: {e}")
        logger.exception("Example run failed")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
