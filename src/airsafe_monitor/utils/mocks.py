import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from airsafe_monitor.domain.ports import KeyValueStore, Notifier, StorageError, StorageWriter


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; set ``fail_writes``/``fail_reads`` to simulate storage errors."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.fail_reads = False

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageError(f"read of {key} failed")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"write of {key} failed")
        self.data[key] = value


class RecordingWriter(StorageWriter):
    """Writer that applies writes immediately and remembers them in order."""

    def __init__(self, store: Optional[InMemoryKeyValueStore] = None):
        self.store = store or InMemoryKeyValueStore()
        self.writes: List[Tuple[str, str]] = []

    def submit(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        self.store.set(key, value)


class GatedWriter(RecordingWriter):
    """Writer whose next ``submit`` blocks until ``release`` is set.

    Lets a test hold one thread between serializing a document and handing it
    to storage while another thread runs.
    """

    def __init__(self, store: Optional[InMemoryKeyValueStore] = None):
        super().__init__(store)
        self.armed = False
        self.entered = threading.Event()
        self.release = threading.Event()

    def submit(self, key: str, value: str) -> None:
        if self.armed:
            self.armed = False
            self.entered.set()
            self.release.wait(timeout=5)
        super().submit(key, value)


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self.fail = fail

    def send_notification(self, title: str, body: str, data: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("notification platform unavailable")
        self.sent.append((title, body, data))


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _ScheduledCall:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Records delayed callbacks instead of starting timers; tests fire them explicitly."""

    def __init__(self):
        self.calls: List[_ScheduledCall] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> _ScheduledCall:
        call = _ScheduledCall(delay, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> List[_ScheduledCall]:
        return [c for c in self.calls if not c.cancelled]

    def run_pending(self) -> int:
        """Fire every pending call once; returns how many ran."""
        due = self.pending
        for call in due:
            call.cancelled = True
            call.callback()
        return len(due)


class FakeMessage:
    """Stand-in for ``paho.mqtt.client.MQTTMessage``."""

    def __init__(self, topic: str, payload: str):
        self.topic = topic
        self.payload = payload.encode("utf-8")
