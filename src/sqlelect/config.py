from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLELECT_", env_file=".env", extra="ignore", populate_by_name=True
    )

    # Database. database_url wins over the discrete connection parameters.
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
    db_driver: str = Field(default="postgresql+asyncpg", validation_alias="DB_DRIVER")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=5432, validation_alias="DB_PORT")
    db_user: str = Field(default="sqlelect", validation_alias="DB_USER")
    db_password: str = Field(default="sqlelect", validation_alias="DB_PASSWORD")
    db_name: str = Field(default="sqlelect", validation_alias="DB_NAME")

    # Connection pool (2 idle, 10 open, recycled hourly)
    db_pool_size: int = Field(default=2, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=8, validation_alias="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, validation_alias="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=3600, validation_alias="DB_POOL_RECYCLE")
    echo_sql: bool = False

    # Election timing (seconds)
    lease_duration: float = 60.0
    renewal_interval: float = 15.0  # Renew at a quarter of the lease
    idle_retry_interval: float = 60.0

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    enable_metrics: bool = True

    @model_validator(mode="after")
    def _check_intervals(self) -> "Settings":
        if min(self.lease_duration, self.renewal_interval, self.idle_retry_interval) <= 0:
            raise ValueError("election intervals must be positive")
        if self.renewal_interval * 2 > self.lease_duration:
            raise ValueError(
                f"renewal_interval ({self.renewal_interval}s) must be at most half of "
                f"lease_duration ({self.lease_duration}s)"
            )
        return self

    @property
    def store_url(self) -> str:
        """Connection URL for the election store."""
        if self.database_url:
            return self.database_url
        url = URL.create(
            self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        return url.render_as_string(hide_password=False)


settings = Settings()
