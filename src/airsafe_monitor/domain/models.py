import json
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional


class SensorKey(str, Enum):
    PM1 = "pm1"
    PM25 = "pm25"
    PM10 = "pm10"
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    WIFI_SIGNAL = "wifi_signal"
    AIR_QUALITY = "air_quality"
    ALERT_LEVEL = "alert_level"
    STATUS = "status"
    EMERGENCY = "emergency"
    HEALTH_LEVEL = "health_level"
    ACTION = "action"
    AQI_PM25 = "aqi_pm25"
    AQI_PM10 = "aqi_pm10"
    AQI_COMBINED = "aqi_combined"
    ALL_DATA = "all_data"
    DEVICE_INFO = "device_info"


# Keys whose payload is a JSON document merged into the snapshot
STRUCTURED_KEYS = frozenset({SensorKey.ALL_DATA.value, SensorKey.DEVICE_INFO.value})

SENSOR_KEYS = frozenset(k.value for k in SensorKey)


@dataclass
class SensorSnapshot:
    """Latest value of every sensor key, plus unknown keys kept verbatim in ``extra``."""

    pm1: Any = None
    pm25: Any = None
    pm10: Any = None
    temperature: Any = None
    humidity: Any = None
    wifi_signal: Any = None
    air_quality: Any = None
    alert_level: Any = None
    status: Any = None
    emergency: Any = None
    health_level: Any = None
    action: Any = None
    aqi_pm25: Any = None
    aqi_pm10: Any = None
    aqi_combined: Any = None
    all_data: Any = None
    device_info: Any = None
    last_update: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        if key in SENSOR_KEYS or key == "last_update":
            return getattr(self, key)
        return self.extra.get(key)

    def set(self, key: str, value: Any) -> None:
        if key in SENSOR_KEYS or key == "last_update":
            setattr(self, key, value)
        elif isinstance(value, str):
            self.extra[key] = value
        else:
            self.extra[key] = json.dumps(value)

    def replace_with(self, other: "SensorSnapshot") -> None:
        """Overwrite every field in place so holders of this object see the new values."""
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorSnapshot":
        snapshot = cls()
        for key, value in data.items():
            if key == "extra" and isinstance(value, dict):
                snapshot.extra.update({k: str(v) for k, v in value.items()})
            elif key == "lastUpdate":
                snapshot.last_update = value
            else:
                snapshot.set(key, value)
        return snapshot


class ConnectionPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionState:
    is_connected: bool
    connection_attempts: int
    max_reconnect_attempts: int
    state: ConnectionPhase


class AlertType(str, Enum):
    WARNING = "warning"
    INFO = "info"
    DANGER = "danger"
    SUCCESS = "success"


@dataclass
class AlertRecord:
    id: str
    type: AlertType
    title: str
    message: str
    parameter: str
    value: float
    threshold: float
    timestamp: float
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["type"] = self.type.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertRecord":
        return cls(
            id=str(data["id"]),
            type=AlertType(data["type"]),
            title=data["title"],
            message=data["message"],
            parameter=data["parameter"],
            value=float(data["value"]),
            threshold=float(data["threshold"]),
            timestamp=float(data["timestamp"]),
            acknowledged=bool(data.get("acknowledged", False)),
        )


@dataclass(frozen=True)
class AlertSettings:
    pm25_alerts: bool = True
    pm25_threshold: float = 25.0
    pm10_alerts: bool = True
    pm10_threshold: float = 50.0
    aqi_alerts: bool = True
    aqi_threshold: float = 75.0
    push_notifications: bool = True
    sound_alerts: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EventRecord:
    id: str
    type: AlertType
    title: str
    description: str
    timestamp: float

    @property
    def category(self) -> str:
        """Leading title token, e.g. ``"PM2.5 High"`` for ``"PM2.5 High: 40.0 μg/m³"``."""
        return self.title.split(":")[0]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["type"] = self.type.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventRecord":
        return cls(
            id=str(data["id"]),
            type=AlertType(data["type"]),
            title=data["title"],
            description=data.get("description", ""),
            timestamp=float(data["timestamp"]),
        )
