import json
import logging
import math
import threading
import time
import uuid
from dataclasses import fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from airsafe_monitor.application.persistence import load_json
from airsafe_monitor.domain.models import AlertRecord, AlertSettings, AlertType, SensorSnapshot
from airsafe_monitor.domain.ports import KeyValueStore, Notifier, StorageKey, StorageWriter
from airsafe_monitor.events import EventEmitter

logger = logging.getLogger(__name__)

MAX_ALERTS = 50
ALERT_COOLDOWN_SEC = 300
IMPROVEMENT_WINDOW_SEC = 600
MAX_ALERT_AGE_SEC = 7 * 24 * 60 * 60


class AlertFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    TODAY = "today"


def reading_or_zero(value: Any) -> float:
    """Parse a reading as float; missing or unparseable readings count as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def aqi_proxy(pm25: float, pm10: float) -> float:
    """Quick AQI estimate used for threshold alerts.

    Deliberately not the EPA index from ``air_quality``; alert thresholds are
    calibrated against this scale.
    """
    return max(pm25 * 2, pm10 * 1.5)


def start_of_local_day(now: float) -> float:
    midnight = datetime.fromtimestamp(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.timestamp()


class AlertEngine(EventEmitter):
    """Turns sensor snapshots into deduplicated, persisted alerts.

    Emits ``alertsChanged`` (no arguments) whenever the history changes and
    ``alertCreated`` with the new record. Every change to the history or the
    settings is persisted before the lock is released, so writes reach storage
    in the order the changes were made. Events are emitted outside the lock.
    """

    def __init__(
        self,
        store: KeyValueStore,
        writer: StorageWriter,
        notifier: Notifier,
        settings: Optional[AlertSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__()
        self._store = store
        self._writer = writer
        self._notifier = notifier
        self._clock = clock
        self._lock = threading.RLock()
        self.settings = settings or AlertSettings()
        self.alerts: List[AlertRecord] = []
        self._last_alert_time: Dict[str, float] = {}

    # ------------------------------------------------------------ persistence
    def load(self) -> None:
        stored_alerts = load_json(self._store, StorageKey.ALERTS.value)
        if isinstance(stored_alerts, list):
            alerts = []
            for item in stored_alerts:
                try:
                    alerts.append(AlertRecord.from_dict(item))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping malformed stored alert: %s", e)
            alerts = alerts[:MAX_ALERTS]
            with self._lock:
                self.alerts = alerts
            logger.info("Loaded %d alerts", len(alerts))
            self.emit("alertsChanged")

        stored_settings = load_json(self._store, StorageKey.ALERT_SETTINGS.value)
        if isinstance(stored_settings, dict):
            known = {f.name for f in fields(AlertSettings)}
            with self._lock:
                self.settings = replace(
                    self.settings, **{k: v for k, v in stored_settings.items() if k in known}
                )
            logger.info("Loaded alert settings: %s", self.settings)

    def _save_alerts(self) -> None:
        self._writer.submit(
            StorageKey.ALERTS.value, json.dumps([a.to_dict() for a in self.alerts])
        )

    def _save_settings(self) -> None:
        self._writer.submit(StorageKey.ALERT_SETTINGS.value, json.dumps(self.settings.to_dict()))

    # --------------------------------------------------------------- settings
    def get_settings(self) -> AlertSettings:
        return self.settings

    def update_settings(self, **changes: Any) -> AlertSettings:
        """Apply a partial update; unknown setting names raise TypeError."""
        with self._lock:
            self.settings = replace(self.settings, **changes)
            self._save_settings()
            updated = self.settings
        logger.info("Alert settings updated: %s", changes)
        return updated

    # --------------------------------------------------------------- alerting
    def process_data(self, snapshot: SensorSnapshot) -> List[AlertRecord]:
        """Evaluate a snapshot against the thresholds; returns the alerts created."""
        s = self.settings
        pm25 = reading_or_zero(snapshot.pm25)
        pm10 = reading_or_zero(snapshot.pm10)
        aqi = aqi_proxy(pm25, pm10)
        created: List[Optional[AlertRecord]] = []

        if s.pm25_alerts and pm25 > s.pm25_threshold:
            severe = pm25 > s.pm25_threshold * 1.5
            created.append(
                self._create_alert(
                    type=AlertType.WARNING,
                    title="PM2.5 Critical" if severe else "PM2.5 High",
                    message=(
                        f"PM2.5 levels exceeded the recommended threshold ({pm25:.1f} μg/m³)"
                    ),
                    parameter="PM2.5",
                    value=pm25,
                    threshold=s.pm25_threshold,
                )
            )

        if s.pm10_alerts and pm10 > s.pm10_threshold:
            severe = pm10 > s.pm10_threshold * 1.5
            created.append(
                self._create_alert(
                    type=AlertType.WARNING,
                    title="PM10 Critical" if severe else "PM10 High",
                    message=f"PM10 levels exceeded the recommended threshold ({pm10:.1f} μg/m³)",
                    parameter="PM10",
                    value=pm10,
                    threshold=s.pm10_threshold,
                )
            )

        if s.aqi_alerts and aqi > s.aqi_threshold:
            if aqi > 150:
                severity = AlertType.DANGER
            elif aqi > 100:
                severity = AlertType.WARNING
            else:
                severity = AlertType.INFO
            danger = severity is AlertType.DANGER
            created.append(
                self._create_alert(
                    type=severity,
                    title="AQI Critical" if danger else "AQI High",
                    message=(
                        f"Air quality index at a {'dangerous' if danger else 'high'} level "
                        f"(AQI: {aqi:.0f})"
                    ),
                    parameter="AQI",
                    value=aqi,
                    threshold=s.aqi_threshold,
                )
            )

        if pm25 <= s.pm25_threshold and self._was_above_threshold("PM2.5"):
            created.append(
                self._create_alert(
                    type=AlertType.SUCCESS,
                    title="Air Quality Improved",
                    message="PM2.5 levels are back to healthy values",
                    parameter="PM2.5",
                    value=pm25,
                    threshold=s.pm25_threshold,
                )
            )

        return [a for a in created if a is not None]

    def _was_above_threshold(self, parameter: str) -> bool:
        since = self._clock() - IMPROVEMENT_WINDOW_SEC
        with self._lock:
            return any(
                a.parameter == parameter and a.type is AlertType.WARNING and a.timestamp > since
                for a in self.alerts
            )

    def _create_alert(
        self,
        *,
        type: AlertType,
        title: str,
        message: str,
        parameter: str,
        value: float,
        threshold: float,
    ) -> Optional[AlertRecord]:
        now = self._clock()
        alert_key = f"{parameter}_{type.value}"
        with self._lock:
            last = self._last_alert_time.get(alert_key)
            if last is not None and now - last < ALERT_COOLDOWN_SEC:
                logger.debug("Suppressing %s alert, cooldown active", alert_key)
                return None

            alert = AlertRecord(
                id=uuid.uuid4().hex,
                type=type,
                title=title,
                message=message,
                parameter=parameter,
                value=value,
                threshold=threshold,
                timestamp=now,
            )
            self._last_alert_time[alert_key] = now
            self.alerts.insert(0, alert)
            del self.alerts[MAX_ALERTS:]
            self._save_alerts()
            push = self.settings.push_notifications
        logger.info("Alert created: %s (%s=%.1f, threshold %.1f)", title, parameter, value, threshold)

        self.emit("alertCreated", alert)
        self.emit("alertsChanged")

        if push:
            self._dispatch_notification(alert)
        return alert

    def _dispatch_notification(self, alert: AlertRecord) -> None:
        try:
            self._notifier.send_notification(alert.title, alert.message, {"alertId": alert.id})
        except Exception as e:
            logger.error("Failed to send notification for alert %s: %s", alert.id, e)

    # ---------------------------------------------------------------- queries
    def acknowledge_alert(self, alert_id: str) -> bool:
        with self._lock:
            alert = next((a for a in self.alerts if a.id == alert_id), None)
            if alert is not None:
                alert.acknowledged = True
                self._save_alerts()
        if alert is None:
            logger.debug("acknowledge_alert: no alert with id %s", alert_id)
            return False
        self.emit("alertsChanged")
        return True

    def get_alert_stats(self) -> Dict[str, int]:
        today = start_of_local_day(self._clock())
        with self._lock:
            alerts = list(self.alerts)
        return {
            "active": sum(1 for a in alerts if not a.acknowledged),
            "acknowledged": sum(1 for a in alerts if a.acknowledged),
            "total_today": sum(1 for a in alerts if a.timestamp >= today),
        }

    def get_alerts(self, filter: AlertFilter | str = AlertFilter.ALL) -> List[AlertRecord]:
        selected = AlertFilter(filter)
        with self._lock:
            alerts = list(self.alerts)
        if selected is AlertFilter.ACTIVE:
            return [a for a in alerts if not a.acknowledged]
        if selected is AlertFilter.ACKNOWLEDGED:
            return [a for a in alerts if a.acknowledged]
        if selected is AlertFilter.TODAY:
            today = start_of_local_day(self._clock())
            return [a for a in alerts if a.timestamp >= today]
        return alerts

    def clean_old_alerts(self, max_age: float = MAX_ALERT_AGE_SEC) -> int:
        """Drop alerts older than ``max_age`` seconds; returns how many were removed."""
        cutoff = self._clock() - max_age
        with self._lock:
            kept = [a for a in self.alerts if a.timestamp > cutoff]
            removed = len(self.alerts) - len(kept)
            if removed:
                self.alerts = kept
                self._save_alerts()
        if removed:
            self.emit("alertsChanged")
        return removed
