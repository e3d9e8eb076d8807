from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from .errors import ConfigError

DEFAULT_CHECK_INTERVAL = 10


class Settings(BaseSettings):
    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    LOG_JSON: bool = True
    LOG_LEVEL: str = "info"
    # Sink (Loki)
    LOKI_URL: str = "http://loki:3100"
    WAIT_FOR_SINK: bool = True
    READY_ATTEMPTS: int = 60
    READY_INTERVAL: float = 2.0
    # Source (NetBird management API)
    NETBIRD_API_URL: str = "https://api.netbird.io"
    NETBIRD_API_TOKEN: str
    # Polling interval in seconds
    CHECK_INTERVAL: int = DEFAULT_CHECK_INTERVAL

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("LOKI_URL", "NETBIRD_API_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("NETBIRD_API_TOKEN")
    @classmethod
    def _token_present(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("NETBIRD_API_TOKEN is required")
        return value

    @field_validator("CHECK_INTERVAL", mode="before")
    @classmethod
    def _interval_or_default(cls, value):
        # A bad interval must not prevent startup
        try:
            interval = int(value)
        except (TypeError, ValueError):
            return DEFAULT_CHECK_INTERVAL
        return interval if interval > 0 else DEFAULT_CHECK_INTERVAL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def load_settings() -> Settings:
    """
    Load settings for startup.

    Raises:
        ConfigError: If required settings are missing or invalid
    """
    try:
        return get_settings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"invalid configuration: {problems}") from e
