"""Tests for SignalBus."""

from taskmaster_jira_sync.services.signals import TAG_SYNCED, TASK_SYNCED, SignalBus


class TestSignalBus:
    def test_publish_to_subscribers_of_name(self):
        bus = SignalBus()
        received = []
        bus.subscribe(TAG_SYNCED, received.append)

        bus.publish(TAG_SYNCED, tag_name="master", task_count=2)
        bus.publish(TASK_SYNCED, task_id="t-1", tag_name="master")

        assert received == [{"tag_name": "master", "task_count": 2}]

    def test_failing_handler_does_not_stop_others(self):
        bus = SignalBus()
        received = []

        def broken(payload):
            raise ValueError("broken subscriber")

        bus.subscribe(TASK_SYNCED, broken)
        bus.subscribe(TASK_SYNCED, received.append)

        bus.publish(TASK_SYNCED, task_id="t-1")

        assert received == [{"task_id": "t-1"}]

    def test_unsubscribe(self):
        bus = SignalBus()
        received = []
        bus.subscribe(TAG_SYNCED, received.append)
        bus.unsubscribe(TAG_SYNCED, received.append)

        bus.publish(TAG_SYNCED, tag_name="master")

        assert received == []
