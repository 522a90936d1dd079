"""Server settings, read once from the environment at startup.

    SERVER_HOST / SERVER_PORT       bind address
    SERVER_CORS_ORIGINS             comma-separated, "*" for any
    SERVER_LOG_LEVEL                root log level
    SERVER_REQUEST_TIMEOUT          seconds allowed per service call
    REDIS_URL                       snapshot cache; empty disables it
    TRUSTED_PROXY_SECRET            required X-Proxy-Secret value, if set
"""

import os
from dataclasses import dataclass, field

# Page-size bounds for list endpoints; FastAPI Query() needs them at import.
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    redis_url: str | None = "redis://localhost:6379/0"
    # A call running longer is cancelled and its transaction rolled back
    request_timeout: float = 10.0
    trusted_proxy_secret: str | None = None


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> ServerSettings:
    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=_csv(os.getenv("SERVER_CORS_ORIGINS", "*")),
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0") or None,
        request_timeout=float(os.getenv("SERVER_REQUEST_TIMEOUT", "10")),
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )
