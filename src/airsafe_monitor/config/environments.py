import os
from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TESTING = "testing"


class Settings(BaseSettings):
    """Configuration settings for the AirSafe monitor."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # MQTT (public EMQX broker, websocket listener)
    MQTT_BROKER: str = "broker.emqx.io"
    MQTT_PORT: int = 8083
    MQTT_TRANSPORT: str = "websockets"
    MQTT_WS_PATH: str = "/mqtt"
    MQTT_NAMESPACE: str = "d1ego/airsafe"
    MQTT_CLIENT_ID_PREFIX: str = "airsafe-monitor"
    MQTT_KEEPALIVE: int = 60

    # Reconnection
    RECONNECT_DELAY_SEC: float = 5.0
    MANUAL_RECONNECT_DELAY_SEC: float = 1.0
    ABNORMAL_CLOSE_DELAY_SEC: float = 15.0
    MAX_RECONNECT_ATTEMPTS: int = 5

    # Storage
    DATABASE_URL: str = "sqlite:///airsafe.db"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Alert defaults, overridden by persisted alert settings
    PM25_THRESHOLD: float = 25.0
    PM10_THRESHOLD: float = 50.0
    AQI_THRESHOLD: float = 75.0

    # Logging
    LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    """Get settings based on environment."""
    env = os.getenv("AIRSAFE_ENV", "development").lower()

    if env == "production":
        return Settings(ENVIRONMENT=Environment.PRODUCTION, LOG_LEVEL="WARNING")
    elif env == "testing":
        return Settings(
            ENVIRONMENT=Environment.TESTING,
            MQTT_NAMESPACE="test/airsafe",
            MQTT_CLIENT_ID_PREFIX="airsafe-monitor-test",
            RECONNECT_DELAY_SEC=0.1,
            MANUAL_RECONNECT_DELAY_SEC=0.05,
            ABNORMAL_CLOSE_DELAY_SEC=0.2,
            DATABASE_URL="sqlite:///:memory:",
            API_PORT=8001,
            LOG_LEVEL="DEBUG",
        )
    else:
        return Settings(ENVIRONMENT=Environment.DEVELOPMENT, LOG_LEVEL="DEBUG")
