"""Service configuration loaded from F8_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pipelinemap.build_service.models.enums import IsolationLevel


class BuildSettings(BaseSettings):
    """Build service settings.

    All fields are read from environment variables with the ``F8_`` prefix.
    For example, ``F8_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="F8_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per log line instead of coloured text."""

    # -- Database --------------------------------------------------------------
    database_url: str | None = None
    """PostgreSQL connection string (psycopg3).  Required for full operation."""

    tx_isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    """Isolation level set at the start of every write transaction."""

    tx_timeout: float | None = 300.0
    """Seconds a unit of work may run before its transaction is abandoned (None: no limit)."""

    db_pool_size: int = 5
    """Connections kept open in the pool."""

    db_max_overflow: int = 10
    """Extra connections opened under load on top of ``db_pool_size``."""

    db_connect_timeout: int = 5
    """Seconds to wait for a new PostgreSQL connection."""

    # -- Remote services -------------------------------------------------------
    wit_url: str = "http://localhost:8080"
    """Base URL of the WIT (space) service."""

    env_url: str = "http://localhost:8090"
    """Base URL of the environment service."""

    remote_timeout: float = 10.0
    """Seconds before a remote lookup is abandoned."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080

    metrics_port: int | None = None
    """Serve /metrics on its own port as well (on ``host``); unset: only the API port."""

    # -- Build info (stamped by the image build) -------------------------------
    commit: str = "0"
    build_time: str = "0"

    @field_validator("tx_isolation_level", mode="before")
    @classmethod
    def _parse_isolation_level(cls, value: object) -> object:
        if isinstance(value, str):
            return IsolationLevel.parse(value)
        return value


@lru_cache(maxsize=1)
def get_settings() -> BuildSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return BuildSettings()
