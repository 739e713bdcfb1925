from leavetest.core.config import settings
from leavetest.tasks import notifications


class MemoryCache:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def aget(self, key):
        return self.values.get(key)

    async def aset(self, key, value, ttl=None):
        self.values[key] = value
        self.ttls[key] = ttl
        return True


class RecordingTask:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def delay(self, **payload):
        if self.error:
            raise self.error
        self.calls.append(payload)
        return "queued"


PAYLOAD = dict(student_id=4, leave_id=2, attempt_id=9, percentage=72.456, result="pass", status="completed")


async def test_notifications_keep_the_latest_ten(monkeypatch):
    memory = MemoryCache()
    monkeypatch.setattr(notifications, "cache", memory)

    for attempt_id in range(12):
        await notifications._store_result_notification(**{**PAYLOAD, "attempt_id": attempt_id})

    stored = memory.values["user_notifications:4"]
    assert len(stored) == 10
    assert stored[0]["data"]["attempt_id"] == 2
    assert stored[-1]["data"]["percentage"] == 72.46
    assert memory.ttls["user_notifications:4"] == settings.notification_ttl


def test_dispatch_is_skipped_when_disabled(monkeypatch):
    task = RecordingTask()
    monkeypatch.setattr(notifications, "notify_test_result", task)
    monkeypatch.setattr(settings, "notifications_enabled", False)

    assert notifications.dispatch_result_notification(**PAYLOAD) is None
    assert task.calls == []


def test_dispatch_queues_task(monkeypatch):
    task = RecordingTask()
    monkeypatch.setattr(notifications, "notify_test_result", task)
    monkeypatch.setattr(settings, "notifications_enabled", True)

    assert notifications.dispatch_result_notification(**PAYLOAD) == "queued"
    assert task.calls == [PAYLOAD]


def test_broker_failure_is_not_raised(monkeypatch):
    monkeypatch.setattr(notifications, "notify_test_result", RecordingTask(error=ConnectionError("broker down")))
    monkeypatch.setattr(settings, "notifications_enabled", True)

    assert notifications.dispatch_result_notification(**PAYLOAD) is None
