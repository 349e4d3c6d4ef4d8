import logging
from typing import Any, Callable, Dict, List, Optional

from airsafe_monitor.adapters.db.store import SqlAlchemyKeyValueStore
from airsafe_monitor.adapters.mqtt.connection import ConnectionManager, Scheduler, start_timer
from airsafe_monitor.adapters.notifier import LoggingNotifier
from airsafe_monitor.application.alert_engine import AlertEngine
from airsafe_monitor.application.event_log import EventLog
from airsafe_monitor.application.notifications import NotificationService
from airsafe_monitor.application.persistence import BackgroundWriter
from airsafe_monitor.application.sensor_state import SensorStateStore
from airsafe_monitor.config.environments import Settings, get_settings
from airsafe_monitor.domain.models import AlertSettings
from airsafe_monitor.domain.ports import KeyValueStore, Notifier, StorageWriter

log = logging.getLogger(__name__)


class AirQualityMonitor:
    """Owns every long-lived component and the wiring between them.

    Construct once, then ``start()``; consumers receive the components from
    this object instead of reaching for module globals.
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        writer: StorageWriter,
        notifier: Notifier,
        scheduler: Scheduler = start_timer,
    ):
        self.settings = settings
        self.store = store
        self.writer = writer
        self.notifier = notifier

        self.sensor_state = SensorStateStore(store, writer)
        self.alert_engine = AlertEngine(
            store,
            writer,
            notifier,
            settings=AlertSettings(
                pm25_threshold=settings.PM25_THRESHOLD,
                pm10_threshold=settings.PM10_THRESHOLD,
                aqi_threshold=settings.AQI_THRESHOLD,
            ),
        )
        self.event_log = EventLog(store, writer)
        self.notifications = NotificationService(notifier, store, writer)
        self.connection = ConnectionManager(
            self.sensor_state,
            host=settings.MQTT_BROKER,
            port=settings.MQTT_PORT,
            namespace=settings.MQTT_NAMESPACE,
            client_id_prefix=settings.MQTT_CLIENT_ID_PREFIX,
            transport=settings.MQTT_TRANSPORT,
            ws_path=settings.MQTT_WS_PATH,
            keepalive=settings.MQTT_KEEPALIVE,
            reconnect_delay=settings.RECONNECT_DELAY_SEC,
            manual_reconnect_delay=settings.MANUAL_RECONNECT_DELAY_SEC,
            abnormal_close_delay=settings.ABNORMAL_CLOSE_DELAY_SEC,
            max_reconnect_attempts=settings.MAX_RECONNECT_ATTEMPTS,
            scheduler=scheduler,
        )
        self._disposers: List[Callable[[], None]] = []
        self._started = False

    def _wire(self) -> None:
        c = self.connection
        self._disposers = [
            c.on("dataUpdate", self._on_data_update),
            c.on("connected", lambda: self.notifications.send_connection_alert(True)),
            c.on("connectionLost", lambda _reason: self.notifications.send_connection_alert(False)),
            c.on(
                "maxReconnectAttemptsReached",
                lambda: log.error("Giving up on MQTT broker until a manual reconnect"),
            ),
        ]

    def _on_data_update(self, update: Dict[str, Any]) -> None:
        snapshot = update["sensor_data"]
        self.alert_engine.process_data(snapshot)
        self.event_log.add_event(snapshot)
        self.notifications.check_air_quality(snapshot)

    def start(self, connect: bool = True) -> None:
        if self._started:
            return
        log.info("Starting AirSafe monitor in %s environment", self.settings.ENVIRONMENT.value)

        if isinstance(self.writer, BackgroundWriter) and self.writer.ident is None:
            self.writer.start()

        self.sensor_state.load_from_storage()
        self.alert_engine.load()
        self.event_log.load()
        self.notifications.load()
        self.alert_engine.clean_old_alerts()
        self.event_log.clean_old_events()

        self._wire()
        self._started = True
        if connect:
            self.connection.connect()

    def stop(self) -> None:
        if not self._started:
            return
        log.info("Stopping AirSafe monitor")
        self.connection.disconnect()
        for dispose in self._disposers:
            dispose()
        self._disposers = []

        if isinstance(self.writer, BackgroundWriter) and self.writer.is_alive():
            self.writer.stop()
            self.writer.join()
        self._started = False


def bootstrap(
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
) -> AirQualityMonitor:
    """Build a monitor backed by the configured database and a background writer."""
    settings = settings or get_settings()
    store = SqlAlchemyKeyValueStore.from_url(settings.DATABASE_URL)
    return AirQualityMonitor(
        settings,
        store=store,
        writer=BackgroundWriter(store),
        notifier=notifier or LoggingNotifier(),
    )
