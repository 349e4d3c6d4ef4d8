import pytest

from airsafe_monitor.utils.mocks import (
    FakeClock,
    InMemoryKeyValueStore,
    ManualScheduler,
    RecordingNotifier,
    RecordingWriter,
)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def writer(store):
    return RecordingWriter(store)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def settings(monkeypatch):
    from airsafe_monitor.config.environments import get_settings

    monkeypatch.setenv("AIRSAFE_ENV", "testing")
    return get_settings()


@pytest.fixture()
def monitor(settings, store, writer, notifier, scheduler):
    from airsafe_monitor.service import AirQualityMonitor

    return AirQualityMonitor(settings, store, writer, notifier, scheduler=scheduler)
