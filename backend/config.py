import os
from dataclasses import dataclass, field


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Server settings, read from PREDICTIVE_* environment variables."""

    secret_key: str = field(default_factory=lambda: os.environ.get("PREDICTIVE_SECRET_KEY", "predictive-analytics-secret-key"))
    host: str = field(default_factory=lambda: os.environ.get("PREDICTIVE_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("PREDICTIVE_PORT", "5000")))
    debug: bool = field(default_factory=lambda: _env_bool("PREDICTIVE_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.environ.get("PREDICTIVE_LOG_LEVEL", "INFO").upper())
    cors_allowed_origins: str = field(default_factory=lambda: os.environ.get("PREDICTIVE_CORS_ORIGINS", "*"))
    async_mode: str = field(default_factory=lambda: os.environ.get("PREDICTIVE_ASYNC_MODE", "threading"))


def load_settings() -> Settings:
    return Settings()
