"""
Tests for settings loading and the application factory.
"""
from app import advertised_host, create_app, parse_cors_origins
from config import Settings, load_settings


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("PREDICTIVE_PORT", "8080")
    monkeypatch.setenv("PREDICTIVE_DEBUG", "yes")
    monkeypatch.setenv("PREDICTIVE_LOG_LEVEL", "debug")
    settings = load_settings()
    assert settings.port == 8080
    assert settings.debug is True
    assert settings.log_level == "DEBUG"


def test_settings_defaults(monkeypatch):
    for name in ("PREDICTIVE_PORT", "PREDICTIVE_DEBUG", "PREDICTIVE_HOST", "PREDICTIVE_ASYNC_MODE"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert (settings.host, settings.port, settings.debug) == ("0.0.0.0", 5000, False)
    assert settings.async_mode == "threading"


def test_parse_cors_origins():
    assert parse_cors_origins("*") == "*"
    assert parse_cors_origins("http://a.test, http://b.test,") == ["http://a.test", "http://b.test"]


def test_advertised_host_uses_configured_address():
    assert advertised_host("10.1.2.3") == "10.1.2.3"


def test_create_app_serves_predictive_routes():
    app, socketio = create_app(Settings(secret_key="test-secret", cors_allowed_origins="http://a.test"))
    assert app.config["SECRET_KEY"] == "test-secret"
    client = app.test_client()
    assert client.get("/").get_json()["status"] == "ok"
    methods = client.get("/api/reporting-studio/predictive/methods").get_json()["data"]
    assert methods["classification"] == ["knn", "decision_tree", "naive_bayes"]
    sio_client = socketio.test_client(app)
    assert sio_client.is_connected()
    sio_client.disconnect()
