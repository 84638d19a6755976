"""
Driver calls for MariaDB/MySQL, on top of aiomysql.

Everything that touches aiomysql directly lives here; the manager and the
query facade only go through these helpers.
"""

import logging
from typing import Any, NamedTuple

import aiomysql

from mariadb_kit.config import DatabaseConfig

_log = logging.getLogger(__name__)


class ExecResult(NamedTuple):
    """Outcome of a statement that returns no rows (INSERT/UPDATE/DELETE/DDL)."""

    affected_rows: int
    insert_id: int | None


def _connect_kwargs(config: DatabaseConfig) -> dict[str, Any]:
    if config.compress:
        _log.warning(
            "[MariaDB] compress=True is not supported by the aiomysql driver; ignoring"
        )
    return {
        "host": config.host,
        "port": config.port,
        "user": config.user,
        "password": config.password,
        "db": config.database,
        "charset": config.charset,
        "autocommit": config.autocommit,
        "connect_timeout": config.connect_timeout,
    }


async def create_pool(config: DatabaseConfig) -> Any:
    """Create an aiomysql pool sized by connection_limit/min_connections."""
    return await aiomysql.create_pool(
        minsize=config.pool_min_size,
        maxsize=config.connection_limit,
        **_connect_kwargs(config),
    )


async def open_connection(config: DatabaseConfig) -> Any:
    """Open a standalone connection."""
    return await aiomysql.connect(**_connect_kwargs(config))


async def execute(
    conn: Any,
    sql: str,
    args: dict | list | tuple | None = None,
) -> list[dict[str, Any]] | ExecResult:
    """
    Run one statement. Row-returning statements give a list of dicts,
    everything else an ExecResult.
    """
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(sql, args)
        if cur.description:
            return list(await cur.fetchall())
        return ExecResult(
            affected_rows=cur.rowcount if cur.rowcount is not None else 0,
            insert_id=cur.lastrowid or None,
        )


def is_valid(conn: Any) -> bool:
    """True for an open connection handle."""
    return conn is not None and not conn.closed


def pool_stats(pool: Any) -> dict[str, int]:
    """Active/idle/total/max connection counts for a pool."""
    total = pool.size
    idle = pool.freesize
    return {
        "active": total - idle,
        "idle": idle,
        "total": total,
        "max": pool.maxsize,
    }


async def acquire(pool: Any) -> Any:
    """Lease a connection from a pool; waits while all maxsize handles are in use."""
    return await pool.acquire()


def release(pool: Any, conn: Any) -> None:
    """Return a leased connection to its pool. A closing pool closes it instead."""
    # aiomysql's Pool.release is not a coroutine; it schedules the waiter wakeup itself
    pool.release(conn)


async def end(conn: Any) -> None:
    """Close a standalone connection: send QUIT, fall back to dropping the socket."""
    if conn is None or conn.closed:
        return
    try:
        await conn.ensure_closed()
    except Exception:
        _log.debug("[MariaDB] graceful close failed; closing socket", exc_info=True)
        conn.close()
