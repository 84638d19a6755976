"""
Connection configuration for MariaDB/MySQL.

Explicit keyword arguments (or a mapping) win; unset fields fall back to
MARIADB_* environment variables, then to the defaults below.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Connection settings shared by the pool and standalone connections."""

    model_config = SettingsConfigDict(
        env_prefix="MARIADB_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    host: str = "127.0.0.1"
    port: int = Field(default=3306, ge=1, le=65535)
    database: str | None = None
    user: str | None = None
    password: str = ""
    connection_limit: int = Field(default=10, ge=1)
    min_connections: int = Field(default=1, ge=0)
    # gzip protocol compression; not supported by the asyncio driver (warned and ignored)
    compress: bool = False
    connect_timeout: float = Field(default=10, gt=0)
    charset: str = "utf8mb4"
    autocommit: bool = True
    logger: Any = Field(default=None, exclude=True, repr=False)

    @field_validator("logger")
    @classmethod
    def _check_logger(cls, value: Any) -> Any:
        if value is None:
            return None
        missing = [m for m in ("debug", "info", "error") if not callable(getattr(value, m, None))]
        if missing:
            raise ValueError(f"logger must provide {', '.join(missing)}")
        return value

    @property
    def pool_min_size(self) -> int:
        """min_connections clamped to connection_limit."""
        return min(self.min_connections, self.connection_limit)

    def describe(self) -> str:
        """host:port/database, for log lines (no credentials)."""
        return f"{self.host}:{self.port}/{self.database or ''}"

    @classmethod
    def coerce(cls, value: "DatabaseConfig | Mapping[str, Any]") -> "DatabaseConfig":
        """Accept a DatabaseConfig as-is or build one from a mapping."""
        if isinstance(value, DatabaseConfig):
            return value
        if isinstance(value, Mapping):
            return cls(**dict(value))
        raise TypeError(
            f"config must be a DatabaseConfig or a mapping, got {type(value).__name__}"
        )
