import json
import logging
import threading
import time
import uuid
from typing import Callable, List, Optional

from airsafe_monitor.application.alert_engine import aqi_proxy, reading_or_zero, start_of_local_day
from airsafe_monitor.application.persistence import load_json
from airsafe_monitor.domain.models import AlertType, EventRecord, SensorSnapshot
from airsafe_monitor.domain.ports import KeyValueStore, StorageKey, StorageWriter

logger = logging.getLogger(__name__)

MAX_EVENTS = 20
SIMILAR_EVENT_WINDOW_SEC = 300
MAX_EVENT_AGE_SEC = 24 * 60 * 60


class EventLog:
    """Short newest-first list of human-readable events for display.

    Mutations and the write that persists them happen under one lock, so the
    stored list is never older than a list already written.
    """

    def __init__(
        self,
        store: KeyValueStore,
        writer: StorageWriter,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._writer = writer
        self._clock = clock
        self._lock = threading.RLock()
        self.events: List[EventRecord] = []

    def load(self) -> None:
        stored = load_json(self._store, StorageKey.EVENTS.value)
        if not isinstance(stored, list):
            return
        events = []
        for item in stored:
            try:
                events.append(EventRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed stored event: %s", e)
        events = events[:MAX_EVENTS]
        with self._lock:
            self.events = events
        logger.info("Loaded %d events", len(events))

    def _save(self) -> None:
        self._writer.submit(
            StorageKey.EVENTS.value, json.dumps([e.to_dict() for e in self.events])
        )

    def generate_event(self, snapshot: SensorSnapshot) -> EventRecord:
        pm25 = reading_or_zero(snapshot.pm25)
        pm10 = reading_or_zero(snapshot.pm10)
        temperature = reading_or_zero(snapshot.temperature)
        humidity = reading_or_zero(snapshot.humidity)
        aqi = round(aqi_proxy(pm25, pm10))

        if pm25 > 75:
            kind = AlertType.DANGER
            title = f"PM2.5 Very High: {pm25:.1f} μg/m³"
            description = f"Status: Unhealthy | AQI: {aqi}"
        elif pm25 > 35:
            kind = AlertType.WARNING
            title = f"PM2.5 High: {pm25:.1f} μg/m³"
            description = f"Status: Unhealthy for sensitive groups | AQI: {aqi}"
        elif pm10 > 50:
            kind = AlertType.WARNING
            title = f"PM10 Elevated: {pm10:.1f} μg/m³"
            description = f"Status: Moderate | AQI: {aqi}"
        elif temperature > 30:
            kind = AlertType.WARNING
            title = f"High Temperature: {temperature:.1f}°C"
            description = f"Condition: Hot | Humidity: {humidity:.1f}%"
        elif temperature < 10:
            kind = AlertType.INFO
            title = f"Low Temperature: {temperature:.1f}°C"
            description = f"Condition: Cold | Humidity: {humidity:.1f}%"
        elif humidity > 70:
            kind = AlertType.INFO
            title = f"High Humidity: {humidity:.1f}%"
            description = f"Condition: Humid | Temperature: {temperature:.1f}°C"
        else:
            kind = AlertType.SUCCESS
            title = f"Good Quality: PM2.5 {pm25:.1f} μg/m³"
            description = f"Status: Healthy | AQI: {aqi}"

        return EventRecord(
            id=uuid.uuid4().hex,
            type=kind,
            title=title,
            description=description,
            timestamp=self._clock(),
        )

    def add_event(self, snapshot: SensorSnapshot) -> Optional[EventRecord]:
        """Record an event unless one of the same category was added recently."""
        event = self.generate_event(snapshot)
        since = event.timestamp - SIMILAR_EVENT_WINDOW_SEC
        with self._lock:
            if any(e.timestamp > since and e.category == event.category for e in self.events):
                logger.debug("Skipping event %r, similar event is recent", event.category)
                return None

            self.events.insert(0, event)
            del self.events[MAX_EVENTS:]
            self._save()
        return event

    def get_recent_events(self, count: int = 5) -> List[EventRecord]:
        with self._lock:
            return self.events[:count]

    def get_today_events(self) -> List[EventRecord]:
        today = start_of_local_day(self._clock())
        with self._lock:
            return [e for e in self.events if e.timestamp >= today]

    def clean_old_events(self, max_age: float = MAX_EVENT_AGE_SEC) -> int:
        cutoff = self._clock() - max_age
        with self._lock:
            kept = [e for e in self.events if e.timestamp > cutoff]
            removed = len(self.events) - len(kept)
            if removed:
                self.events = kept
                self._save()
        return removed
