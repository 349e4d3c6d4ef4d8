from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from airsafe_monitor.application.air_quality import QualityReading, classify_overall, recommendations
from airsafe_monitor.domain.models import AlertRecord, AlertSettings, ConnectionState, EventRecord, SensorSnapshot


class QualityOut(BaseModel):
    category: str
    aqi: int
    color: str
    bg_color: str
    icon: str
    label: str
    description: str
    source_value: float

    @classmethod
    def from_domain(cls, reading: QualityReading) -> "QualityOut":
        return cls(**reading.to_dict())


class SnapshotOut(BaseModel):
    sensor_data: Dict[str, Any]
    last_update: Optional[str] = None
    quality: Optional[QualityOut] = None
    recommendations: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, snapshot: SensorSnapshot) -> "SnapshotOut":
        data = snapshot.to_dict()
        last_update = data.pop("last_update")
        quality = classify_overall(snapshot.pm25, snapshot.pm10)
        return cls(
            sensor_data=data,
            last_update=last_update,
            quality=QualityOut.from_domain(quality) if quality else None,
            recommendations=recommendations(snapshot.pm25, snapshot.pm10),
        )


class ConnectionOut(BaseModel):
    is_connected: bool
    connection_attempts: int
    max_reconnect_attempts: int
    state: str

    @classmethod
    def from_domain(cls, status: ConnectionState) -> "ConnectionOut":
        return cls(
            is_connected=status.is_connected,
            connection_attempts=status.connection_attempts,
            max_reconnect_attempts=status.max_reconnect_attempts,
            state=status.state.value,
        )


class AlertOut(BaseModel):
    id: str
    type: str
    title: str
    message: str
    parameter: str
    value: float
    threshold: float
    timestamp: float
    acknowledged: bool

    @classmethod
    def from_domain(cls, alert: AlertRecord) -> "AlertOut":
        return cls(**alert.to_dict())


class AlertStatsOut(BaseModel):
    active: int
    acknowledged: int
    total_today: int


class AlertSettingsModel(BaseModel):
    pm25_alerts: bool
    pm25_threshold: float
    pm10_alerts: bool
    pm10_threshold: float
    aqi_alerts: bool
    aqi_threshold: float
    push_notifications: bool
    sound_alerts: bool

    @classmethod
    def from_domain(cls, settings: AlertSettings) -> "AlertSettingsModel":
        return cls(**settings.to_dict())


class AlertSettingsPatch(BaseModel):
    pm25_alerts: Optional[bool] = None
    pm25_threshold: Optional[float] = Field(None, gt=0)
    pm10_alerts: Optional[bool] = None
    pm10_threshold: Optional[float] = Field(None, gt=0)
    aqi_alerts: Optional[bool] = None
    aqi_threshold: Optional[float] = Field(None, gt=0)
    push_notifications: Optional[bool] = None
    sound_alerts: Optional[bool] = None


class EventOut(BaseModel):
    id: str
    type: str
    title: str
    description: str
    timestamp: float

    @classmethod
    def from_domain(cls, event: EventRecord) -> "EventOut":
        return cls(**event.to_dict())
