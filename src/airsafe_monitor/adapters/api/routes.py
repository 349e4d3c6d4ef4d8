from fastapi import APIRouter, Depends, HTTPException, Query, Request

from airsafe_monitor.adapters.api.schemas import (
    AlertOut,
    AlertSettingsModel,
    AlertSettingsPatch,
    AlertStatsOut,
    ConnectionOut,
    EventOut,
    SnapshotOut,
)
from airsafe_monitor.application.alert_engine import AlertFilter
from airsafe_monitor.service import AirQualityMonitor

router = APIRouter()


def get_monitor(request: Request) -> AirQualityMonitor:
    return request.app.state.monitor


@router.get("/ping")
def ping():
    return {"status": "ok"}


@router.get("/snapshot", response_model=SnapshotOut)
def snapshot(monitor: AirQualityMonitor = Depends(get_monitor)):
    return SnapshotOut.from_domain(monitor.sensor_state.get_current())


@router.get("/connection", response_model=ConnectionOut)
def connection(monitor: AirQualityMonitor = Depends(get_monitor)):
    return ConnectionOut.from_domain(monitor.connection.get_connection_status())


@router.post("/connection/reconnect")
def reconnect(monitor: AirQualityMonitor = Depends(get_monitor)):
    monitor.connection.reconnect()
    return {"status": "ok"}


@router.get("/alerts", response_model=list[AlertOut])
def alerts(
    filter: AlertFilter = Query(AlertFilter.ALL),
    monitor: AirQualityMonitor = Depends(get_monitor),
):
    return [AlertOut.from_domain(a) for a in monitor.alert_engine.get_alerts(filter)]


@router.get("/alerts/stats", response_model=AlertStatsOut)
def alert_stats(monitor: AirQualityMonitor = Depends(get_monitor)):
    return AlertStatsOut(**monitor.alert_engine.get_alert_stats())


@router.get("/alerts/settings", response_model=AlertSettingsModel)
def alert_settings(monitor: AirQualityMonitor = Depends(get_monitor)):
    return AlertSettingsModel.from_domain(monitor.alert_engine.get_settings())


@router.patch("/alerts/settings", response_model=AlertSettingsModel)
def update_alert_settings(
    patch: AlertSettingsPatch,
    monitor: AirQualityMonitor = Depends(get_monitor),
):
    updated = monitor.alert_engine.update_settings(**patch.model_dump(exclude_none=True))
    return AlertSettingsModel.from_domain(updated)


@router.post("/alerts/{alert_id}/acknowledge")
def acknowledge(alert_id: str, monitor: AirQualityMonitor = Depends(get_monitor)):
    if not monitor.alert_engine.acknowledge_alert(alert_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"status": "ok"}


@router.get("/events", response_model=list[EventOut])
def events(
    count: int = Query(20, ge=1, le=20),
    monitor: AirQualityMonitor = Depends(get_monitor),
):
    return [EventOut.from_domain(e) for e in monitor.event_log.get_recent_events(count)]
