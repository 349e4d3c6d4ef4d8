import logging
import threading
import uuid
from typing import Any, Callable, List, Optional, Protocol

import paho.mqtt.client as paho

from airsafe_monitor.adapters.mqtt.codec import decode_message, topics_for
from airsafe_monitor.application.sensor_state import SensorStateStore
from airsafe_monitor.domain.models import ConnectionPhase, ConnectionState
from airsafe_monitor.events import EventEmitter

logger = logging.getLogger(__name__)

# Disconnect reason code paho reports when the socket dropped without a
# DISCONNECT packet ("Unspecified error").
ABNORMAL_CLOSE_REASON = 128


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def start_timer(delay: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def _reason_value(reason_code: Any) -> int:
    return int(getattr(reason_code, "value", reason_code))


class ConnectionManager(EventEmitter):
    """MQTT client lifecycle with a constant-delay reconnect state machine.

    Events: ``connected``, ``connectionFailed``, ``connectionLost``,
    ``maxReconnectAttemptsReached``, ``disconnected``, ``dataUpdate``.
    """

    def __init__(
        self,
        state_store: SensorStateStore,
        *,
        host: str,
        port: int = 8083,
        namespace: str,
        client_id_prefix: str = "airsafe-monitor",
        transport: str = "websockets",
        ws_path: str = "/mqtt",
        keepalive: int = 60,
        reconnect_delay: float = 5.0,
        manual_reconnect_delay: float = 1.0,
        abnormal_close_delay: float = 15.0,
        max_reconnect_attempts: int = 5,
        scheduler: Scheduler = start_timer,
    ):
        super().__init__()
        self.state_store = state_store
        self.host = host
        self.port = port
        self.namespace = namespace
        self.client_id_prefix = client_id_prefix
        self.transport = transport
        self.ws_path = ws_path
        self.keepalive = keepalive
        self.reconnect_delay = reconnect_delay
        self.manual_reconnect_delay = manual_reconnect_delay
        self.abnormal_close_delay = abnormal_close_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.topics: List[str] = topics_for(namespace)

        self._schedule = scheduler
        self._lock = threading.RLock()
        self._client: Optional[paho.Client] = None
        self._client_id: Optional[str] = None
        self._timer: Optional[Cancellable] = None
        self._state = ConnectionPhase.DISCONNECTED
        self.connection_attempts = 0

        logger.info(
            "Initializing MQTT connection manager: host=%s, port=%s, transport=%s, namespace=%s",
            host,
            port,
            transport,
            namespace,
        )

    # ----------------------------------------------------------------- status
    @property
    def state(self) -> ConnectionPhase:
        return self._state

    def is_connected(self) -> bool:
        return self._state is ConnectionPhase.CONNECTED

    def get_connection_status(self) -> ConnectionState:
        with self._lock:
            return ConnectionState(
                is_connected=self.is_connected(),
                connection_attempts=self.connection_attempts,
                max_reconnect_attempts=self.max_reconnect_attempts,
                state=self._state,
            )

    # -------------------------------------------------------------- lifecycle
    def connect(self) -> None:
        """Open a new transport connection unless one is live or pending."""
        with self._lock:
            if self._state in (ConnectionPhase.CONNECTING, ConnectionPhase.CONNECTED):
                logger.debug("connect() ignored, already %s", self._state.value)
                return
            if self._state is ConnectionPhase.FAILED:
                logger.warning("Reconnect limit reached, call reconnect() to resume")
                return

            self._state = ConnectionPhase.CONNECTING
            self._client_id = f"{self.client_id_prefix}-{uuid.uuid4().hex[:8]}"
            client = self._make_client(self._client_id)
            self._client = client

        logger.info(
            "Connecting to MQTT broker %s:%s as %s", self.host, self.port, self._client_id
        )
        try:
            result = client.connect(self.host, self.port, self.keepalive)
        except (OSError, ValueError) as e:
            logger.error("Exception during MQTT connection: %s", e)
            self._handle_failure(client, "connectionFailed", e)
            return

        if result != paho.MQTT_ERR_SUCCESS:
            logger.error("Failed to connect to MQTT broker: %s", result)
            self._handle_failure(client, "connectionFailed", result)
            return

        with self._lock:
            if client is self._client:
                client.loop_start()
                return
        # disconnect() or reconnect() replaced the client while connecting
        logger.info("Connection attempt superseded, closing its client")
        self._close_stale(client)

    def reconnect(self) -> None:
        """Manual reconnect; the only way out of the FAILED state."""
        logger.info("Manual reconnect requested")
        with self._lock:
            self.connection_attempts = 0
        self.disconnect()
        with self._lock:
            self._timer = self._schedule(self.manual_reconnect_delay, self.connect)

    def disconnect(self) -> None:
        with self._lock:
            self._cancel_timer()
            client = self._client
            was_connected = self._state is ConnectionPhase.CONNECTED
            self._client = None
            self._state = ConnectionPhase.DISCONNECTED

        if client is not None:
            try:
                if was_connected:
                    client.disconnect()
                    logger.info("Disconnected from MQTT broker")
                client.loop_stop()
            except Exception as e:
                logger.error("Error while closing MQTT connection: %s", e)
        self.emit("disconnected")

    def publish(self, topic: str, message: str) -> bool:
        """Publish a diagnostic message; False when not connected or rejected."""
        with self._lock:
            client = self._client if self.is_connected() else None
        if client is None:
            logger.warning("Not connected to MQTT broker, cannot publish to %s", topic)
            return False

        info = client.publish(topic, message, qos=0, retain=False)
        if info.rc != paho.MQTT_ERR_SUCCESS:
            logger.error("Failed to publish to %s, error code: %s", topic, info.rc)
            return False
        logger.info("Published to %s: %s", topic, message)
        return True

    # -------------------------------------------------------------- callbacks
    def _make_client(self, client_id: str) -> paho.Client:
        client = paho.Client(
            paho.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=True,
            protocol=paho.MQTTv311,
            transport=self.transport,
        )
        if self.transport == "websockets":
            client.ws_set_options(path=self.ws_path)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if client is not self._client:
            logger.debug("Closing stale client that connected after being replaced")
            self._close_stale(client)
            return
        if reason_code != 0:
            logger.error("MQTT broker refused connection: %s", reason_code)
            self._handle_failure(client, "connectionFailed", reason_code)
            return

        with self._lock:
            self._state = ConnectionPhase.CONNECTED
            self.connection_attempts = 0
        logger.info("Connected to MQTT broker %s:%s", self.host, self.port)
        self.emit("connected")
        self._subscribe_all(client)

    def _subscribe_all(self, client) -> None:
        for topic in self.topics:
            try:
                result, mid = client.subscribe(topic)
            except ValueError as e:
                logger.error("Error subscribing to %s: %s", topic, e)
                continue
            if result != paho.MQTT_ERR_SUCCESS:
                logger.error("Failed to subscribe to %s, error code: %s", topic, result)
            else:
                logger.info("Subscribed to %s (mid=%s)", topic, mid)

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties=None) -> None:
        for reason_code in reason_code_list:
            if _reason_value(reason_code) >= 0x80:
                logger.error("Broker rejected subscription mid=%s: %s", mid, reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if client is not self._client or self._state is ConnectionPhase.DISCONNECTED:
            logger.debug("Ignoring disconnect callback (rc=%s)", reason_code)
            return
        logger.warning("Connection to MQTT broker lost, reason: %s", reason_code)
        abnormal = _reason_value(reason_code) == ABNORMAL_CLOSE_REASON
        self._handle_failure(client, "connectionLost", reason_code, abnormal=abnormal)

    def _on_message(self, client, userdata, msg) -> None:
        try:
            topic = msg.topic
            payload = msg.payload.decode("utf-8", errors="replace")
            logger.debug("Message received on %s: %s", topic, payload)

            key, value, structured = decode_message(topic, payload)
            if structured:
                self.state_store.merge(key, value)
            else:
                self.state_store.update(key, value)

            self.emit(
                "dataUpdate",
                {
                    "topic": topic,
                    "payload": payload,
                    "sensor_data": self.state_store.get_current(),
                },
            )
        except Exception as exc:
            logger.exception("Failed to process message on topic %s: %s", msg.topic, exc)

    # ------------------------------------------------------------- reconnects
    def _handle_failure(self, client, event: str, error: Any, abnormal: bool = False) -> None:
        with self._lock:
            if client is not self._client:
                return
            self._client = None
            self.connection_attempts += 1
            attempts = self.connection_attempts
            exhausted = attempts >= self.max_reconnect_attempts
            self._state = ConnectionPhase.FAILED if exhausted else ConnectionPhase.RECONNECTING

            if not exhausted:
                delay = self.reconnect_delay
                if abnormal:
                    delay += self.abnormal_close_delay
                logger.info(
                    "Scheduling reconnect (%s/%s) in %.1fs",
                    attempts,
                    self.max_reconnect_attempts,
                    delay,
                )
                self._cancel_timer()
                self._timer = self._schedule(delay, self._retry)

        try:
            client.loop_stop()
        except Exception as e:
            logger.debug("Error stopping network loop: %s", e)

        self.emit(event, error)
        if exhausted:
            logger.error("Maximum reconnect attempts reached (%s)", attempts)
            self.emit("maxReconnectAttemptsReached")

    def _retry(self) -> None:
        with self._lock:
            self._timer = None
            if self._state is not ConnectionPhase.RECONNECTING:
                return
        self.connect()

    def _close_stale(self, client) -> None:
        try:
            client.disconnect()
            client.loop_stop()
        except Exception as e:
            logger.debug("Error closing stale MQTT client: %s", e)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
