import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from airsafe_monitor.application.air_quality import (
    AirQualityCategory,
    QualityReading,
    classify_overall,
    should_alert,
)
from airsafe_monitor.application.persistence import load_json
from airsafe_monitor.domain.models import SensorSnapshot
from airsafe_monitor.domain.ports import KeyValueStore, Notifier, StorageKey, StorageWriter

logger = logging.getLogger(__name__)

NOTIFICATION_COOLDOWN_SEC = 5 * 60
AIR_QUALITY = "air-quality"
CONNECTION = "connection"


class NotificationService:
    """Sends category-level notifications with a per-category cooldown.

    Air-quality notifications go out when the overall category worsens; the
    connection category uses twice the standard cooldown.
    """

    def __init__(
        self,
        notifier: Notifier,
        store: KeyValueStore,
        writer: StorageWriter,
        cooldown: float = NOTIFICATION_COOLDOWN_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self._notifier = notifier
        self._store = store
        self._writer = writer
        self.cooldown = cooldown
        self._clock = clock
        self.last_notification_time: Dict[str, float] = {}
        self._previous: Optional[Dict[str, Any]] = None

    def load(self) -> None:
        stored = load_json(self._store, StorageKey.NOTIFICATIONS.value)
        if isinstance(stored, dict):
            self.last_notification_time = {
                k: float(v) for k, v in stored.items() if isinstance(v, (int, float))
            }

    def _mark_sent(self, category: str, now: float) -> None:
        self.last_notification_time[category] = now
        self._writer.submit(
            StorageKey.NOTIFICATIONS.value, json.dumps(self.last_notification_time)
        )

    def _cooling_down(self, category: str, now: float, cooldown: float) -> bool:
        last = self.last_notification_time.get(category, 0.0)
        return now - last < cooldown

    def _send(self, title: str, body: str, data: Dict[str, Any]) -> bool:
        try:
            self._notifier.send_notification(title, body, data)
        except Exception as e:
            logger.error("Error sending notification %r: %s", title, e)
            return False
        return True

    def check_air_quality(self, snapshot: SensorSnapshot) -> bool:
        """Notify when the air got worse since the previous snapshot."""
        previous = self._previous or {}
        self._previous = {"pm25": snapshot.pm25, "pm10": snapshot.pm10}

        if not should_alert(snapshot.pm25, snapshot.pm10, previous.get("pm25"), previous.get("pm10")):
            return False

        now = self._clock()
        if self._cooling_down(AIR_QUALITY, now, self.cooldown):
            logger.info("Air quality notification cooldown active, skipping")
            return False

        quality = classify_overall(snapshot.pm25, snapshot.pm10)
        if quality is None:
            return False

        title, body = self._air_quality_message(quality, snapshot.pm25, snapshot.pm10)
        data = {
            "type": AIR_QUALITY,
            "pm25": snapshot.pm25,
            "pm10": snapshot.pm10,
            "category": quality.category.value,
            "aqi": quality.aqi,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        }
        if not self._send(title, body, data):
            return False
        self._mark_sent(AIR_QUALITY, now)
        logger.info("Air quality notification sent: %s", title)
        return True

    @staticmethod
    def _air_quality_message(quality: QualityReading, pm25: Any, pm10: Any):
        levels = f"PM2.5: {pm25} μg/m³, PM10: {pm10} μg/m³."
        rank = quality.category.rank
        if rank >= AirQualityCategory.UNHEALTHY.rank:
            return (
                f"{quality.icon} Alert: air quality {quality.label.lower()}",
                f"{levels} Avoid outdoor activities.",
            )
        if rank == AirQualityCategory.UNHEALTHY_SENSITIVE.rank:
            return (
                f"{quality.icon} Air quality {quality.label.lower()}",
                f"{levels} Sensitive groups should take precautions.",
            )
        if rank == AirQualityCategory.MODERATE.rank:
            return (
                f"{quality.icon} Air quality {quality.label.lower()}",
                f"{levels} Acceptable for most people.",
            )
        return (
            f"{quality.icon} Air quality {quality.label.lower()}",
            f"{levels} Great for outdoor activities.",
        )

    def send_connection_alert(self, is_connected: bool) -> bool:
        now = self._clock()
        if self._cooling_down(CONNECTION, now, self.cooldown * 2):
            return False

        title = "Connected" if is_connected else "Disconnected"
        body = (
            "Connection with the sensors restored"
            if is_connected
            else "Lost the connection with the sensors"
        )
        data = {
            "type": CONNECTION,
            "isConnected": is_connected,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        }
        if not self._send(title, body, data):
            return False
        self._mark_sent(CONNECTION, now)
        return True

    def send_custom_alert(self, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> bool:
        payload = {"type": "custom", **(data or {})}
        payload["timestamp"] = datetime.now(tz=timezone.utc).isoformat()
        return self._send(title, body, payload)
