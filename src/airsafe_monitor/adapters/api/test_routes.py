import pytest
from fastapi.testclient import TestClient

from airsafe_monitor.adapters.api.main import create_app
from airsafe_monitor.domain.models import SensorSnapshot


# ───────── FastAPI client ─────────
@pytest.fixture()
def client(monitor):
    return TestClient(create_app(monitor, manage_lifecycle=False))


def raise_alerts(monitor):
    return monitor.alert_engine.process_data(SensorSnapshot(pm25=45, pm10=30))


def test_ping(client):
    resp = client.get("/ping")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_snapshot_empty(client):
    body = client.get("/snapshot").json()
    assert body["last_update"] is None
    assert body["quality"] is None
    assert body["recommendations"] == []
    assert body["sensor_data"]["pm25"] is None


def test_snapshot_with_readings(client, monitor):
    monitor.sensor_state.update("pm25", 40)
    monitor.sensor_state.update("co2", "410")

    body = client.get("/snapshot").json()

    assert body["sensor_data"]["pm25"] == 40
    assert body["sensor_data"]["extra"] == {"co2": "410"}
    assert body["last_update"] is not None
    assert body["quality"]["category"] == "UNHEALTHY_SENSITIVE"
    assert body["quality"]["aqi"] == 112
    assert "Keep windows closed" in body["recommendations"]


def test_connection_status(client):
    body = client.get("/connection").json()
    assert body == {
        "is_connected": False,
        "connection_attempts": 0,
        "max_reconnect_attempts": 5,
        "state": "disconnected",
    }


def test_reconnect_schedules_connect(client, scheduler, settings):
    resp = client.post("/connection/reconnect")
    assert resp.status_code == 200
    assert [c.delay for c in scheduler.pending] == [settings.MANUAL_RECONNECT_DELAY_SEC]


def test_list_alerts(client, monitor):
    created = raise_alerts(monitor)

    body = client.get("/alerts").json()
    assert [a["id"] for a in body] == [a.id for a in monitor.alert_engine.alerts]
    assert {a["parameter"] for a in body} == {"PM2.5", "AQI"}
    assert len(body) == len(created)
    assert body[0]["acknowledged"] is False


def test_list_alerts_filtered(client, monitor):
    alert = raise_alerts(monitor)[0]
    monitor.alert_engine.acknowledge_alert(alert.id)

    acknowledged = client.get("/alerts", params={"filter": "acknowledged"}).json()
    active = client.get("/alerts", params={"filter": "active"}).json()
    assert [a["id"] for a in acknowledged] == [alert.id]
    assert alert.id not in [a["id"] for a in active]


def test_list_alerts_invalid_filter(client):
    assert client.get("/alerts", params={"filter": "yesterday"}).status_code == 422


def test_acknowledge(client, monitor):
    alert = raise_alerts(monitor)[0]

    resp = client.post(f"/alerts/{alert.id}/acknowledge")
    assert resp.status_code == 200
    assert alert.acknowledged is True

    assert client.post("/alerts/missing/acknowledge").status_code == 404


def test_alert_stats(client, monitor):
    alert = raise_alerts(monitor)[0]
    monitor.alert_engine.acknowledge_alert(alert.id)

    assert client.get("/alerts/stats").json() == {
        "active": 1,
        "acknowledged": 1,
        "total_today": 2,
    }


def test_get_alert_settings(client):
    body = client.get("/alerts/settings").json()
    assert body["pm25_threshold"] == 25.0
    assert body["pm10_threshold"] == 50.0
    assert body["aqi_threshold"] == 75.0
    assert body["push_notifications"] is True


def test_patch_alert_settings(client, monitor):
    resp = client.patch("/alerts/settings", json={"pm25_threshold": 30, "sound_alerts": False})
    assert resp.status_code == 200
    body = resp.json()
    assert body["pm25_threshold"] == 30.0
    assert body["sound_alerts"] is False
    assert body["pm10_threshold"] == 50.0
    assert monitor.alert_engine.get_settings().pm25_threshold == 30.0


def test_patch_alert_settings_rejects_bad_threshold(client, monitor):
    resp = client.patch("/alerts/settings", json={"pm10_threshold": -5})
    assert resp.status_code == 422
    assert monitor.alert_engine.get_settings().pm10_threshold == 50.0


def test_events(client, monitor):
    monitor.event_log.add_event(SensorSnapshot(pm25=40, pm10=20, temperature=22, humidity=40))

    body = client.get("/events", params={"count": 1}).json()
    assert len(body) == 1
    assert body[0]["title"] == "PM2.5 High: 40.0 μg/m³"
    assert body[0]["type"] == "warning"

    assert client.get("/events", params={"count": 0}).status_code == 422
