from enum import Enum
from typing import Any, Dict, Optional, Protocol


class StorageKey(str, Enum):
    SENSOR_DATA = "@airsafe_data"
    ALERTS = "@airsafe_alerts"
    ALERT_SETTINGS = "@airsafe_alert_settings"
    EVENTS = "@airsafe_events"
    NOTIFICATIONS = "@airsafe_notifications"


class StorageError(Exception):
    """Raised by key-value stores when a read or write cannot be completed."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class StorageWriter(Protocol):
    def submit(self, key: str, value: str) -> None: ...


class Notifier(Protocol):
    def send_notification(self, title: str, body: str, data: Dict[str, Any]) -> None: ...
