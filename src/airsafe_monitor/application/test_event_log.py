import json
import threading

import pytest

from airsafe_monitor.application.event_log import MAX_EVENTS, EventLog
from airsafe_monitor.domain.models import AlertType, EventRecord, SensorSnapshot
from airsafe_monitor.domain.ports import StorageKey
from airsafe_monitor.utils.mocks import GatedWriter


@pytest.fixture()
def log(store, writer, clock):
    return EventLog(store, writer, clock=clock)


def comfortable(**values):
    readings = {"pm25": 8, "pm10": 15, "temperature": 22, "humidity": 45}
    readings.update(values)
    return SensorSnapshot(**readings)


@pytest.mark.parametrize(
    "values, kind, title",
    [
        ({"pm25": 80}, AlertType.DANGER, "PM2.5 Very High: 80.0 μg/m³"),
        ({"pm25": 40}, AlertType.WARNING, "PM2.5 High: 40.0 μg/m³"),
        ({"pm10": 60}, AlertType.WARNING, "PM10 Elevated: 60.0 μg/m³"),
        ({"temperature": 33}, AlertType.WARNING, "High Temperature: 33.0°C"),
        ({"temperature": 4}, AlertType.INFO, "Low Temperature: 4.0°C"),
        ({"humidity": 85}, AlertType.INFO, "High Humidity: 85.0%"),
        ({}, AlertType.SUCCESS, "Good Quality: PM2.5 8.0 μg/m³"),
    ],
)
def test_generate_event(log, clock, values, kind, title):
    event = log.generate_event(comfortable(**values))
    assert event.type is kind
    assert event.title == title
    assert event.timestamp == clock()


def test_generate_event_rules_are_ordered(log):
    event = log.generate_event(comfortable(pm25=90, pm10=200, temperature=40, humidity=90))
    assert event.title.startswith("PM2.5 Very High")
    assert "AQI: 300" in event.description


def test_category_is_title_prefix():
    event = EventRecord(
        id="e1", type=AlertType.WARNING, title="PM2.5 High: 40.0 μg/m³", description="", timestamp=0
    )
    assert event.category == "PM2.5 High"


def test_add_event_persists_newest_first(log, store, clock):
    first = log.add_event(comfortable())
    clock.advance(10)
    second = log.add_event(comfortable(pm25=40))

    assert log.events == [second, first]
    stored = json.loads(store.data[StorageKey.EVENTS.value])
    assert [e["id"] for e in stored] == [second.id, first.id]


def test_similar_event_within_window_is_skipped(log, clock):
    assert log.add_event(comfortable(pm25=40)) is not None
    clock.advance(120)
    # different reading, same category
    assert log.add_event(comfortable(pm25=45)) is None
    assert len(log.events) == 1

    clock.advance(181)
    assert log.add_event(comfortable(pm25=45)) is not None
    assert len(log.events) == 2


def test_list_is_capped(log, clock):
    for _ in range(MAX_EVENTS + 5):
        log.add_event(comfortable())
        clock.advance(301)
    assert len(log.events) == MAX_EVENTS


def test_recent_and_today(log, clock):
    old = EventRecord("old", AlertType.INFO, "Low Temperature: 4.0°C", "", clock() - 2 * 24 * 3600)
    log.events = [old]
    new = log.add_event(comfortable())

    assert log.get_recent_events(1) == [new]
    assert log.get_recent_events() == [new, old]
    assert log.get_today_events() == [new]


def test_clean_old_events(log, clock, store):
    log.events = [
        EventRecord("a", AlertType.INFO, "High Humidity: 80.0%", "", clock() - 60),
        EventRecord("b", AlertType.INFO, "High Humidity: 80.0%", "", clock() - 25 * 3600),
    ]
    assert log.clean_old_events() == 1
    assert [e.id for e in log.events] == ["a"]
    assert len(json.loads(store.data[StorageKey.EVENTS.value])) == 1


def test_load(store, writer, clock):
    stored = [
        {"id": "e1", "type": "success", "title": "Good Quality: PM2.5 5.0 μg/m³", "timestamp": 1.0},
        {"id": "broken"},
    ]
    store.data[StorageKey.EVENTS.value] = json.dumps(stored)

    log = EventLog(store, writer, clock=clock)
    log.load()

    assert [e.id for e in log.events] == ["e1"]
    assert log.events[0].description == ""


def test_concurrent_adds_reach_storage_in_order(store, clock):
    writer = GatedWriter(store)
    log = EventLog(store, writer, clock=clock)
    log.add_event(comfortable())

    writer.armed = True
    first = threading.Thread(target=log.add_event, args=(comfortable(pm25=40),))
    first.start()
    assert writer.entered.wait(timeout=5)

    second = threading.Thread(target=log.add_event, args=(comfortable(pm10=60),))
    second.start()
    second.join(timeout=0.2)
    writer.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert len(log.events) == 3
    stored = json.loads(store.data[StorageKey.EVENTS.value])
    assert [e["id"] for e in stored] == [e.id for e in log.events]
