import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from airsafe_monitor.application.persistence import load_json
from airsafe_monitor.domain.models import SensorSnapshot
from airsafe_monitor.domain.ports import KeyValueStore, StorageKey, StorageWriter
from airsafe_monitor.events import EventEmitter

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class SensorStateStore(EventEmitter):
    """Owns the single live SensorSnapshot.

    Readers get the live object, not a copy, so a reader may see fields from
    consecutive messages side by side. Emits ``dataLoaded`` after a restore.
    """

    def __init__(
        self,
        store: KeyValueStore,
        writer: StorageWriter,
        clock: Callable[[], str] = utc_now_iso,
    ):
        super().__init__()
        self._store = store
        self._writer = writer
        self._clock = clock
        self._snapshot = SensorSnapshot()

    def get_current(self) -> SensorSnapshot:
        return self._snapshot

    def load_from_storage(self) -> Optional[SensorSnapshot]:
        data = load_json(self._store, StorageKey.SENSOR_DATA.value)
        if not isinstance(data, dict):
            logger.info("No persisted sensor data found")
            return None

        self._snapshot.replace_with(SensorSnapshot.from_dict(data))
        logger.info("Restored sensor data (last update %s)", self._snapshot.last_update)
        self.emit("dataLoaded", self._snapshot)
        return self._snapshot

    def update(self, key: str, value: Any) -> None:
        """Store one reading and stamp the snapshot."""
        self._snapshot.set(key, value)
        self._touch()

    def merge(self, key: str, document: Any) -> None:
        """Store a structured payload and shallow-merge an object's fields."""
        self._snapshot.set(key, document)
        if isinstance(document, Mapping):
            for field_name, value in document.items():
                self._snapshot.set(str(field_name), value)
        self._touch()

    def persist(self) -> None:
        self._writer.submit(
            StorageKey.SENSOR_DATA.value,
            json.dumps(self._snapshot.to_dict(), default=str),
        )

    def _touch(self) -> None:
        self._snapshot.last_update = self._clock()
        self.persist()
