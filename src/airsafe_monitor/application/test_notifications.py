import json

import pytest

from airsafe_monitor.application.notifications import NotificationService
from airsafe_monitor.domain.models import SensorSnapshot
from airsafe_monitor.domain.ports import StorageKey
from airsafe_monitor.utils.mocks import RecordingNotifier


@pytest.fixture()
def service(notifier, store, writer, clock):
    return NotificationService(notifier, store, writer, clock=clock)


def test_first_bad_reading_notifies(service, notifier):
    assert service.check_air_quality(SensorSnapshot(pm25=40, pm10=20)) is True

    title, body, data = notifier.sent[0]
    assert title == "😷 Air quality unhealthy for sensitive groups"
    assert body.startswith("PM2.5: 40 μg/m³, PM10: 20 μg/m³.")
    assert data["type"] == "air-quality"
    assert data["category"] == "UNHEALTHY_SENSITIVE"
    assert data["aqi"] == 112


def test_first_good_reading_is_quiet(service, notifier):
    assert service.check_air_quality(SensorSnapshot(pm25=5, pm10=10)) is False
    assert notifier.sent == []


def test_unchanged_category_is_quiet(service, notifier, clock):
    service.check_air_quality(SensorSnapshot(pm25=40))
    clock.advance(3600)
    assert service.check_air_quality(SensorSnapshot(pm25=45)) is False
    assert len(notifier.sent) == 1


def test_worsening_respects_cooldown(service, notifier, clock):
    service.check_air_quality(SensorSnapshot(pm25=40))
    clock.advance(60)
    assert service.check_air_quality(SensorSnapshot(pm25=100)) is False

    clock.advance(300)
    assert service.check_air_quality(SensorSnapshot(pm25=200)) is True
    title, body, _ = notifier.sent[-1]
    assert title == "⛔ Alert: air quality very unhealthy"
    assert body.endswith("Avoid outdoor activities.")


def test_cooldown_is_persisted_and_restored(service, store, writer, clock):
    service.check_air_quality(SensorSnapshot(pm25=40))
    assert json.loads(store.data[StorageKey.NOTIFICATIONS.value]) == {"air-quality": clock()}

    restored = NotificationService(RecordingNotifier(), store, writer, clock=clock)
    restored.load()
    assert restored.last_notification_time == {"air-quality": clock()}
    assert restored.check_air_quality(SensorSnapshot(pm25=100)) is False


def test_failed_send_does_not_start_cooldown(store, writer, clock):
    service = NotificationService(RecordingNotifier(fail=True), store, writer, clock=clock)
    assert service.check_air_quality(SensorSnapshot(pm25=40)) is False
    assert service.last_notification_time == {}


def test_connection_alert_uses_double_cooldown(service, notifier, clock):
    assert service.send_connection_alert(False) is True
    clock.advance(301)
    assert service.send_connection_alert(True) is False
    clock.advance(300)
    assert service.send_connection_alert(True) is True

    assert [t for t, _, _ in notifier.sent] == ["Disconnected", "Connected"]
    assert notifier.sent[-1][2]["isConnected"] is True


def test_custom_alert(service, notifier):
    assert service.send_custom_alert("Filter", "Replace the filter", {"device": "a1"}) is True
    title, body, data = notifier.sent[0]
    assert (title, body) == ("Filter", "Replace the filter")
    assert data["type"] == "custom"
    assert data["device"] == "a1"
    assert "timestamp" in data
