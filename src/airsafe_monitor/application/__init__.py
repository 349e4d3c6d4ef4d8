from .air_quality import (
    classify_overall,
    classify_pm10,
    classify_pm25,
    recommendations,
    should_alert,
)
from .alert_engine import AlertEngine, AlertFilter
from .event_log import EventLog
from .notifications import NotificationService
from .sensor_state import SensorStateStore

__all__ = [
    "classify_overall",
    "classify_pm10",
    "classify_pm25",
    "recommendations",
    "should_alert",
    "AlertEngine",
    "AlertFilter",
    "EventLog",
    "NotificationService",
    "SensorStateStore",
]
