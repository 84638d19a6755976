"""
Connection lifecycle for one MariaDB/MySQL target.

A ConnectionManager owns at most one pool or one standalone connection,
created lazily on first use from the configuration passed in (or the one
cached by an earlier call). Creation is single-flight: concurrent first
callers wait on the same lock and share the resource it produced.

Pooled connections are never cached: each get_connection() leases its own
handle, which the caller gives back with release_connection().
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from mariadb_kit.config import DatabaseConfig
from mariadb_kit.errors import (
    ConfigurationMissingError,
    ConnectionCreationError,
    PoolCreationError,
)

from . import connect

_log = logging.getLogger(__name__)

ConfigLike = DatabaseConfig | Mapping[str, Any]


class ConnectionManager:
    """Lazily created pool or standalone connection, plus the config that built it."""

    def __init__(self, config: ConfigLike | None = None, *, logger: Any = None) -> None:
        self._config: DatabaseConfig | None = (
            DatabaseConfig.coerce(config) if config is not None else None
        )
        self._explicit_logger = logger is not None
        self._log: Any = logger or (self._config and self._config.logger) or _log
        self._pool: Any = None
        self._connection: Any = None
        # leased handle -> the pool it came from, kept until it is released
        self._leased: dict[Any, Any] = {}
        self._init_lock = asyncio.Lock()
        self._session_lock = asyncio.Lock()

    @property
    def config(self) -> DatabaseConfig | None:
        return self._config

    @property
    def pool(self) -> Any:
        return self._pool

    @property
    def connection(self) -> Any:
        """The cached standalone connection, if any."""
        return self._connection

    @property
    def logger(self) -> Any:
        return self._log

    def _resolve_config(self, config: ConfigLike | None, operation: str, target: str) -> DatabaseConfig:
        if config is None:
            if self._config is None:
                raise ConfigurationMissingError(
                    f"[MariaDB {operation}] Configuration information required "
                    f"to create MariaDB {target} was not passed!"
                )
            return self._config
        resolved = DatabaseConfig.coerce(config)
        self._config = resolved
        if resolved.logger is not None and not self._explicit_logger:
            self._log = resolved.logger
        return resolved

    # ------------------------------------------------------------------
    # Pool
    # ------------------------------------------------------------------

    async def create_pool(self, config: ConfigLike | None = None) -> Any:
        """
        Return the pool, creating it on first call.

        Raises ConfigurationMissingError when no config is passed or cached,
        PoolCreationError when the driver gives nothing back.
        """
        if self._pool is not None:
            self.pool_info()
            return self._pool
        # session lock first: the standalone connection may be mid-statement
        async with self._session_lock, self._init_lock:
            if self._pool is not None:
                self.pool_info()
                return self._pool
            cfg = self._resolve_config(config, "createPool", "pool")
            pool = await connect.create_pool(cfg)
            if pool is None:
                raise PoolCreationError("[MariaDB createPool] MariaDB pool not created!")
            if self._connection is not None:
                standalone, self._connection = self._connection, None
                await connect.end(standalone)
            self._pool = pool
            self._log.info(
                "[MariaDB pool] created for %s (limit %d)",
                cfg.describe(),
                cfg.connection_limit,
            )
        return self._pool

    def pool_stats(self) -> dict[str, int] | None:
        if self._pool is None:
            return None
        return connect.pool_stats(self._pool)

    def pool_info(self) -> None:
        """Log pool connection counts at info level; no-op without a pool."""
        stats = self.pool_stats()
        if stats is None:
            return
        self._log.info(
            "[MariaDB pool] connections - active: %d / idle: %d / total: %d",
            stats["active"],
            stats["idle"],
            stats["total"],
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def get_connection(self, config: ConfigLike | None = None) -> Any:
        """
        Lease a connection from the pool, or return the standalone connection
        (opening a new one when none is cached or the cached one is closed).
        """
        pool = self._pool
        if pool is None:
            async with self._init_lock:
                pool = self._pool
                if pool is None:
                    return await self._standalone(config)
        conn = await connect.acquire(pool)
        self._leased[conn] = pool
        self.pool_info()
        return conn

    async def _standalone(self, config: ConfigLike | None) -> Any:
        if connect.is_valid(self._connection):
            return self._connection
        cfg = self._resolve_config(config, "getConnection", "connection")
        conn = await connect.open_connection(cfg)
        if conn is None:
            raise ConnectionCreationError("[MariaDB getConnection] MariaDB connection not created!")
        self._connection = conn
        return conn

    async def release_connection(self, conn: Any) -> None:
        """
        Give a leased connection back to the pool it came from; end any
        other connection.

        A pool that is already closing still gets its handles back, since
        its wait_closed() only returns once every lease is released.
        """
        if conn is None:
            return
        pool = self._leased.pop(conn, None)
        if pool is not None:
            connect.release(pool, conn)
            return
        await connect.end(conn)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        """
        Yield a connection and always clean it up on exit.

        Standalone sessions run one at a time; the single cached connection
        cannot run two statements at once.
        """
        if self._pool is not None:
            conn = await self.get_connection()
            try:
                yield conn
            finally:
                await self.release_connection(conn)
            return
        async with self._session_lock:
            conn = await self.get_connection()
            try:
                yield conn
            finally:
                await self.release_connection(conn)

    async def close(self) -> None:
        """
        Close the pool and the standalone connection. The config stays cached.

        Waits for handles still leased from the pool to be released.
        """
        pool, self._pool = self._pool, None
        standalone, self._connection = self._connection, None
        if pool is not None:
            pool.close()
            await pool.wait_closed()
        if standalone is not None:
            await connect.end(standalone)
