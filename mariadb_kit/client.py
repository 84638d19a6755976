"""
Query facade: query(sql) plus CRUD helpers over a ConnectionManager.

Usage::

    db = Database({"host": "127.0.0.1", "database": "app", "user": "root", "password": "x"})
    await db.create_pool()
    await db.insert("users", {"name": "Ann"})
    row = await db.select_single("users", where={"name": "Ann"})
    await db.close()

Helpers build SQL with mariadb_kit.sql and hand it to query(); builder
errors (missing table, values, where) are raised before any connection is
requested.
"""

from typing import Any

from mariadb_kit.errors import NoConnectionError
from mariadb_kit.pool import ConnectionManager, ExecResult, execute, health_check, is_valid
from mariadb_kit.pool.manager import ConfigLike
from mariadb_kit.sql import (
    query_count,
    query_delete,
    query_insert,
    query_select,
    query_select_group,
    query_select_join,
    query_select_join_group,
    query_update,
)

Rows = list[dict[str, Any]]


class Database:
    """One MariaDB/MySQL target: lazy pool/connection lifecycle plus query helpers."""

    def __init__(
        self,
        config: ConfigLike | None = None,
        *,
        logger: Any = None,
        manager: ConnectionManager | None = None,
    ) -> None:
        self._manager = manager or ConnectionManager(config, logger=logger)

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_pool(self, config: ConfigLike | None = None) -> Any:
        return await self._manager.create_pool(config)

    async def get_connection(self, config: ConfigLike | None = None) -> Any:
        """
        Pooled handles are leased to the caller alone and go back through
        release_connection().

        Without a pool this is the shared standalone connection: releasing it
        ends it for every holder, including a running query(). Use
        manager.session() for standalone work that must not overlap.
        """
        return await self._manager.get_connection(config)

    async def release_connection(self, conn: Any) -> None:
        await self._manager.release_connection(conn)

    def pool_stats(self) -> dict[str, int] | None:
        return self._manager.pool_stats()

    async def ping(self) -> bool:
        """SELECT 1 over a session; False when the statement fails."""
        async with self._manager.session() as conn:
            return await health_check(conn)

    async def close(self) -> None:
        await self._manager.close()

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def query(self, sql: str) -> Rows | ExecResult:
        """
        Run one statement and return its rows (list of dicts) or an ExecResult.

        The connection is released (pooled) or ended (standalone) on the way
        out, whether the statement succeeds or fails. Driver errors are logged
        and re-raised unchanged.
        """
        async with self._manager.session() as conn:
            if not is_valid(conn):
                raise NoConnectionError("[MariaDB query] No connection to MariaDB!")
            log = self._manager.logger
            log.debug("[MariaDB query] %s", sql)
            try:
                return await execute(conn, sql)
            except Exception as exc:
                log.error("[MariaDB query] error: %s", exc)
                raise

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        field: Any = None,
        where: Any = None,
        order: Any = None,
        limit: int | None = None,
        *,
        offset: int | None = None,
    ) -> Rows:
        return await self.query(query_select(table, field, where, order, limit, offset))

    async def select_single(
        self,
        table: str,
        field: Any = None,
        where: Any = None,
        order: Any = None,
    ) -> dict[str, Any] | None:
        """First matching row, or None."""
        rows = await self.query(query_select(table, field, where, order, 1))
        return rows[0] if rows else None

    async def select_group(
        self,
        table: str,
        field: Any = None,
        where: Any = None,
        group: Any = None,
        having: Any = None,
        order: Any = None,
        limit: int | None = None,
    ) -> Rows:
        return await self.query(query_select_group(table, field, where, group, having, order, limit))

    async def select_join(
        self,
        table: str,
        type: str | None = None,
        join: str | None = None,
        on: Any = None,
        field: Any = None,
        where: Any = None,
        order: Any = None,
        limit: int | None = None,
    ) -> Rows:
        return await self.query(query_select_join(table, type, join, on, field, where, order, limit))

    async def select_join_group(
        self,
        table: str,
        type: str | None = None,
        join: str | None = None,
        on: Any = None,
        field: Any = None,
        where: Any = None,
        group: Any = None,
        having: Any = None,
        order: Any = None,
        limit: int | None = None,
    ) -> Rows:
        sql = query_select_join_group(table, type, join, on, field, where, group, having, order, limit)
        return await self.query(sql)

    async def insert(self, table: str, values: Any) -> ExecResult:
        return await self.query(query_insert(table, values))

    async def update(self, table: str, values: Any, where: Any) -> ExecResult:
        return await self.query(query_update(table, values, where))

    async def delete(self, table: str, where: Any) -> ExecResult:
        return await self.query(query_delete(table, where))

    async def count(self, table: str, where: Any = None) -> int:
        """Number of matching rows; 0 when the server returns nothing."""
        rows = await self.query(query_count(table, where))
        if not rows:
            return 0
        value = rows[0].get("count")
        return int(value) if value is not None else 0
