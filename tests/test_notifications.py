"""Tests for the notification bus."""

import logging
import threading

from flagsync.sync.notifications import (
    Notification,
    NotificationBus,
    NotificationKind,
    QueueSubscriber,
)


class TestNotification:
    """Tests for the Notification value."""

    def test_error_kinds(self) -> None:
        assert Notification(kind=NotificationKind.FILE_COPY_ERROR, error="boom").is_error
        assert Notification(kind=NotificationKind.DIRECTORY_DELETION_ERROR).is_error
        assert not Notification(kind=NotificationKind.FILE_CREATED).is_error

    def test_defaults(self) -> None:
        notification = Notification(kind=NotificationKind.JOB_STARTED, job_name="docs")

        assert notification.source_path is None
        assert notification.stopped is False
        assert notification.timestamp is not None


class TestNotificationBus:
    """Tests for NotificationBus."""

    def test_subscribers_receive_in_order(self) -> None:
        bus = NotificationBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        bus.publish(Notification(kind=NotificationKind.JOB_STARTED))
        bus.publish(Notification(kind=NotificationKind.JOB_FINISHED))

        assert [n.kind for n in first] == [NotificationKind.JOB_STARTED, NotificationKind.JOB_FINISHED]
        assert [n.kind for n in second] == [n.kind for n in first]

    def test_kind_filter(self) -> None:
        bus = NotificationBus()
        received = []
        bus.subscribe(received.append, kinds=[NotificationKind.FILE_CREATED])

        bus.publish(Notification(kind=NotificationKind.FILE_CREATING))
        bus.publish(Notification(kind=NotificationKind.FILE_CREATED))

        assert [n.kind for n in received] == [NotificationKind.FILE_CREATED]

    def test_unsubscribe(self) -> None:
        bus = NotificationBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        bus.publish(Notification(kind=NotificationKind.JOB_STARTED))
        unsubscribe()
        bus.publish(Notification(kind=NotificationKind.JOB_FINISHED))

        assert len(received) == 1

    def test_failing_subscriber_is_isolated(self, caplog) -> None:
        bus = NotificationBus()
        received = []

        def broken(notification):
            raise ValueError("consumer bug")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        with caplog.at_level(logging.ERROR, logger="flagsync"):
            bus.publish(Notification(kind=NotificationKind.JOB_STARTED))

        assert len(received) == 1
        assert "Notification subscriber failed on job_started" in caplog.text

    def test_subscriber_runs_on_publishing_thread(self) -> None:
        bus = NotificationBus()
        threads = []
        bus.subscribe(lambda n: threads.append(threading.current_thread()))

        worker = threading.Thread(target=bus.publish, args=(Notification(kind=NotificationKind.JOB_STARTED),))
        worker.start()
        worker.join()

        assert threads == [worker]


class TestQueueSubscriber:
    """Tests for QueueSubscriber."""

    def test_hands_over_across_threads(self) -> None:
        bus = NotificationBus()
        inbox = QueueSubscriber()
        bus.subscribe(inbox)

        thread = threading.Thread(target=bus.publish, args=(Notification(kind=NotificationKind.ALL_FINISHED),))
        thread.start()

        notification = inbox.get(timeout=5)
        thread.join()
        assert notification.kind == NotificationKind.ALL_FINISHED

    def test_get_times_out(self) -> None:
        assert QueueSubscriber().get(timeout=0.01) is None

    def test_drain(self) -> None:
        inbox = QueueSubscriber()
        inbox(Notification(kind=NotificationKind.JOB_STARTED))
        inbox(Notification(kind=NotificationKind.JOB_FINISHED))

        assert [n.kind for n in inbox.drain()] == [NotificationKind.JOB_STARTED, NotificationKind.JOB_FINISHED]
        assert inbox.drain() == []
