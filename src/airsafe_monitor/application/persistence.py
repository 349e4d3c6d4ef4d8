import json
import logging
import queue
import threading
from typing import Any, Optional, Tuple

from airsafe_monitor.domain.ports import KeyValueStore, StorageError, StorageWriter

logger = logging.getLogger(__name__)


class ImmediateWriter(StorageWriter):
    """Writes synchronously on the caller's thread; failures are logged."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def submit(self, key: str, value: str) -> None:
        try:
            self._store.set(key, value)
        except StorageError as e:
            logger.error("Storage write for %s failed: %s", key, e)


class BackgroundWriter(threading.Thread):
    """Thread that drains queued key-value writes into the store.

    ``submit`` never blocks the caller. Writes land in submission order, so the
    store may lag in-memory state but never reorders it.
    """

    def __init__(self, store: KeyValueStore, maxsize: int = 1000):
        super().__init__(name="storage-writer", daemon=True)
        self._store = store
        self._q: queue.Queue[Tuple[str, str]] = queue.Queue(maxsize=maxsize)
        self._stop_event = threading.Event()

    def submit(self, key: str, value: str) -> None:
        try:
            self._q.put_nowait((key, value))
        except queue.Full:
            logger.warning("Storage queue full, dropping write for %s", key)

    def stop(self) -> None:
        """Signal the writer to stop once pending writes are flushed."""
        logger.info("Stopping storage writer")
        self._stop_event.set()

    def run(self) -> None:
        logger.info("Starting storage writer")

        while not self._stop_event.is_set():
            try:
                key, value = self._q.get(timeout=1)
            except queue.Empty:
                continue
            self._write(key, value)

        # flush what was queued before stop()
        while True:
            try:
                key, value = self._q.get_nowait()
            except queue.Empty:
                break
            self._write(key, value)

        logger.info("Storage writer stopped")

    def _write(self, key: str, value: str) -> None:
        try:
            self._store.set(key, value)
            logger.debug("Persisted %s", key)
        except StorageError as e:
            logger.error("Storage write for %s failed: %s", key, e)
        finally:
            self._q.task_done()

    def join_pending(self) -> None:
        """Block until every submitted write has been attempted."""
        self._q.join()


def load_json(store: KeyValueStore, key: str) -> Optional[Any]:
    """Read and decode a JSON document, ``None`` when absent or unreadable."""
    try:
        raw = store.get(key)
    except StorageError as e:
        logger.error("Storage read for %s failed: %s", key, e)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error("Stored value for %s is not valid JSON: %s", key, e)
        return None
