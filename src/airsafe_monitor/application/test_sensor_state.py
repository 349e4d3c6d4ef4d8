import json

import pytest

from airsafe_monitor.application.sensor_state import SensorStateStore
from airsafe_monitor.domain.models import SensorSnapshot
from airsafe_monitor.domain.ports import StorageKey

STAMP = "2024-05-01T12:00:00+00:00"


@pytest.fixture()
def state(store, writer):
    return SensorStateStore(store, writer, clock=lambda: STAMP)


def test_starts_empty(state):
    snapshot = state.get_current()
    assert snapshot == SensorSnapshot()
    assert snapshot.last_update is None


def test_update_sets_field_and_timestamp(state, store):
    state.update("pm25", 12.5)

    current = state.get_current()
    assert current.pm25 == 12.5
    assert current.last_update == STAMP
    stored = json.loads(store.data[StorageKey.SENSOR_DATA.value])
    assert stored["pm25"] == 12.5
    assert stored["last_update"] == STAMP


def test_get_current_returns_live_object(state):
    held = state.get_current()
    state.update("temperature", 21)
    assert held.temperature == 21


def test_unknown_key_goes_to_extra(state):
    state.update("co2", "412")
    state.update("battery", 87)
    current = state.get_current()
    assert current.extra == {"co2": "412", "battery": "87"}
    assert current.get("co2") == "412"


def test_merge_structured_document(state):
    document = {"pm25": 30, "pm10": 44, "firmware": "1.2.0"}
    state.merge("all_data", document)

    current = state.get_current()
    assert current.all_data == document
    assert current.pm25 == 30
    assert current.pm10 == 44
    assert current.extra["firmware"] == "1.2.0"
    assert current.last_update == STAMP


def test_merge_non_mapping_only_sets_field(state):
    state.merge("device_info", [1, 2])
    assert state.get_current().device_info == [1, 2]
    assert state.get_current().extra == {}


def test_load_from_storage(store, writer):
    saved = {"pm25": 18, "temperature": 24.5, "lastUpdate": STAMP, "extra": {"co2": "400"}}
    store.data[StorageKey.SENSOR_DATA.value] = json.dumps(saved)
    state = SensorStateStore(store, writer)
    held = state.get_current()
    loaded = []
    state.on("dataLoaded", loaded.append)

    assert state.load_from_storage() is held
    assert held.pm25 == 18
    assert held.temperature == 24.5
    assert held.last_update == STAMP
    assert held.extra == {"co2": "400"}
    assert loaded == [held]


def test_load_with_nothing_stored(state):
    loaded = []
    state.on("dataLoaded", loaded.append)
    assert state.load_from_storage() is None
    assert loaded == []


def test_load_with_corrupt_storage(store, writer):
    store.data[StorageKey.SENSOR_DATA.value] = "[broken"
    state = SensorStateStore(store, writer)
    assert state.load_from_storage() is None
    assert state.get_current() == SensorSnapshot()


def test_write_failure_keeps_memory_state(store):
    from airsafe_monitor.application.persistence import ImmediateWriter

    store.fail_writes = True
    state = SensorStateStore(store, ImmediateWriter(store), clock=lambda: STAMP)
    state.update("pm10", 33)
    assert state.get_current().pm10 == 33
    assert StorageKey.SENSOR_DATA.value not in store.data
