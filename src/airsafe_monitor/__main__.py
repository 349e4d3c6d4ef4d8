"""
Canonical entry point for the airsafe_monitor package.

Usage:
    airsafe-monitor --environment development monitor
    airsafe-monitor --environment development api --port 8000
    airsafe-monitor publish --topic d1ego/airsafe/pm25 --message 12.5
    airsafe-monitor status
"""

import argparse
import json
import logging
import os
import signal
import sys
import threading

from airsafe_monitor.adapters.db.store import SqlAlchemyKeyValueStore
from airsafe_monitor.adapters.notifier import LoggingNotifier
from airsafe_monitor.application.alert_engine import AlertEngine
from airsafe_monitor.application.event_log import EventLog
from airsafe_monitor.application.persistence import ImmediateWriter
from airsafe_monitor.application.sensor_state import SensorStateStore
from airsafe_monitor.config.environments import get_settings
from airsafe_monitor.service import bootstrap


def setup_logging(config) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return None


def run_monitor(args: argparse.Namespace) -> None:
    """Run the ingestion and alerting pipeline until interrupted."""
    config = get_settings()
    setup_logging(config)
    log = logging.getLogger(__name__)

    log.info("Starting monitor...")
    log.info(f"Environment: {args.environment}")
    log.info(f"MQTT Broker: {config.MQTT_BROKER}:{config.MQTT_PORT} ({config.MQTT_TRANSPORT})")
    log.info(f"Namespace: {config.MQTT_NAMESPACE}")
    log.info(f"Database: {config.DATABASE_URL}")

    monitor = bootstrap(config)
    monitor.connection.on(
        "dataUpdate",
        lambda update: log.info("%s -> %s", update["topic"], update["payload"]),
    )
    monitor.alert_engine.on(
        "alertCreated",
        lambda alert: log.warning("ALERT [%s] %s: %s", alert.type.value, alert.title, alert.message),
    )

    stop = threading.Event()

    def shutdown_handler(signum, frame):
        log.info("Received shutdown signal, stopping monitor...")
        stop.set()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    monitor.start()
    try:
        stop.wait()
    finally:
        monitor.stop()
    return None


def run_api_server(args: argparse.Namespace) -> None:
    """Run the monitor together with the HTTP API."""
    import uvicorn

    from airsafe_monitor.adapters.api.main import create_app

    config = get_settings()
    setup_logging(config)
    log = logging.getLogger(__name__)

    host = args.host or config.API_HOST
    port = args.port or config.API_PORT

    log.info("Starting API server...")
    log.info(f"Environment: {args.environment}")
    log.info(f"Host: {host}")
    log.info(f"Port: {port}")

    app = create_app(bootstrap(config))
    uvicorn.run(app, host=host, port=port, log_level=config.LOG_LEVEL.lower())
    return None


def run_publish(args: argparse.Namespace) -> None:
    """Publish one diagnostic message and exit."""
    config = get_settings()
    setup_logging(config)
    log = logging.getLogger(__name__)

    if not args.topic or args.message is None:
        log.error("publish requires --topic and --message")
        sys.exit(2)

    monitor = bootstrap(config, notifier=LoggingNotifier(logging.DEBUG))
    connected = threading.Event()
    monitor.connection.on("connected", connected.set)
    monitor.connection.on("maxReconnectAttemptsReached", connected.set)

    monitor.start()
    try:
        if not connected.wait(timeout=args.timeout) or not monitor.connection.is_connected():
            log.error("Could not connect to %s:%s", config.MQTT_BROKER, config.MQTT_PORT)
            sys.exit(1)
        if not monitor.connection.publish(args.topic, args.message):
            sys.exit(1)
    finally:
        monitor.stop()
    return None


def show_status(args: argparse.Namespace) -> None:
    """Print the persisted snapshot, alert statistics and recent events."""
    config = get_settings()
    setup_logging(config)

    store = SqlAlchemyKeyValueStore.from_url(config.DATABASE_URL)
    writer = ImmediateWriter(store)

    state = SensorStateStore(store, writer)
    state.load_from_storage()
    alerts = AlertEngine(store, writer, LoggingNotifier())
    alerts.load()
    events = EventLog(store, writer)
    events.load()

    report = {
        "stored_keys": store.keys(),
        "sensor_data": state.get_current().to_dict(),
        "alert_stats": alerts.get_alert_stats(),
        "alert_settings": alerts.get_settings().to_dict(),
        "recent_events": [e.to_dict() for e in events.get_recent_events()],
    }
    print(json.dumps(report, indent=2, default=str, ensure_ascii=False))
    return None


def main() -> None:
    """Main entry point for airsafe_monitor commands."""
    parser = argparse.ArgumentParser(
        description="AirSafe Monitor - MQTT ingestion, air quality alerts and HTTP API"
    )
    parser.add_argument(
        "--environment",
        choices=["production", "development", "testing"],
        default="development",
        help="Environment to run in",
    )
    parser.add_argument(
        "command",
        choices=["monitor", "api", "publish", "status"],
        help="Command to run",
    )
    parser.add_argument("--host", help="API host to bind to (overrides config)")
    parser.add_argument("--port", type=int, help="API port to bind to (overrides config)")
    parser.add_argument("--topic", help="Topic for the publish command")
    parser.add_argument("--message", help="Payload for the publish command")
    parser.add_argument(
        "--timeout", type=float, default=30.0, help="Seconds to wait for the broker (publish)"
    )

    args = parser.parse_args()

    # Set environment variable for config
    os.environ["AIRSAFE_ENV"] = args.environment

    if args.command == "monitor":
        run_monitor(args)
    elif args.command == "api":
        run_api_server(args)
    elif args.command == "publish":
        run_publish(args)
    elif args.command == "status":
        show_status(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
