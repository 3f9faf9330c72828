from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARKETCACHE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "marketcache"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080

    # Redis (URL wins over host/port)
    redis_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CACHE_BACKEND_URL", "REDIS_URL"),
    )
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")
    redis_socket_timeout: float = Field(default=5.0, validation_alias="REDIS_SOCKET_TIMEOUT")

    # Cache policy
    default_expiry: int = Field(default=3600, validation_alias="DEFAULT_EXPIRY")
    cache_disabled: bool = Field(default=False, validation_alias="CACHE_DISABLED")
    cache_ready_timeout: float = Field(default=10.0, validation_alias="CACHE_READY_TIMEOUT")
    cache_reconnect_interval: float = Field(
        default=5.0, validation_alias="CACHE_RECONNECT_INTERVAL"
    )
    invalidation_scan_count: int = Field(default=100, validation_alias="INVALIDATION_SCAN_COUNT")

    # Per-request bypass signal
    cache_bypass_header: str = "X-Skip-Cache"
    cache_bypass_query: str = "bypassCache"

    # Observability
    log_level: str = "INFO"

    @property
    def backend_url(self) -> str:
        """Connection target for the cache backend."""
        if self.redis_url:
            return self.redis_url
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


settings = Settings()
