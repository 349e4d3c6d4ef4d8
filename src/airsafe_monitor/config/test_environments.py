from airsafe_monitor.config.environments import Environment, get_settings


def test_testing_environment(monkeypatch):
    monkeypatch.setenv("AIRSAFE_ENV", "testing")
    settings = get_settings()
    assert settings.ENVIRONMENT is Environment.TESTING
    assert settings.DATABASE_URL == "sqlite:///:memory:"
    assert settings.MQTT_NAMESPACE == "test/airsafe"


def test_production_environment(monkeypatch):
    monkeypatch.setenv("AIRSAFE_ENV", "PRODUCTION")
    settings = get_settings()
    assert settings.ENVIRONMENT is Environment.PRODUCTION
    assert settings.LOG_LEVEL == "WARNING"
    assert settings.MQTT_BROKER == "broker.emqx.io"
    assert settings.MQTT_PORT == 8083


def test_defaults_to_development(monkeypatch):
    monkeypatch.delenv("AIRSAFE_ENV", raising=False)
    assert get_settings().ENVIRONMENT is Environment.DEVELOPMENT


def test_environment_variables_override(monkeypatch):
    monkeypatch.setenv("AIRSAFE_ENV", "development")
    monkeypatch.setenv("MAX_RECONNECT_ATTEMPTS", "3")
    assert get_settings().MAX_RECONNECT_ATTEMPTS == 3
