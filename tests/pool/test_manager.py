"""Unit tests for pool.manager.ConnectionManager (driver calls patched)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mariadb_kit.config import DatabaseConfig
from mariadb_kit.errors import (
    ConfigurationMissingError,
    ConnectionCreationError,
    PoolCreationError,
)
from mariadb_kit.pool import ConnectionManager
from tests.utils.fakes import FakeConnection, FakePool

CREATE_POOL = "mariadb_kit.pool.connect.create_pool"
OPEN_CONNECTION = "mariadb_kit.pool.connect.open_connection"

CONFIG = {"host": "127.0.0.1", "database": "app", "user": "root", "password": "x"}


def _run(coro) -> object:
    return asyncio.run(coro)


def _logger() -> MagicMock:
    return MagicMock(spec=["debug", "info", "error", "warning"])


# --- create_pool ---


def test_create_pool_is_idempotent() -> None:
    pool = FakePool()
    log = _logger()
    mgr = ConnectionManager(logger=log)

    async def run() -> tuple:
        first = await mgr.create_pool(CONFIG)
        second = await mgr.create_pool()
        third = await mgr.create_pool(CONFIG)
        return first, second, third

    with patch(CREATE_POOL, AsyncMock(return_value=pool)) as m:
        first, second, third = _run(run())

    assert first is pool and second is pool and third is pool
    assert m.await_count == 1
    assert isinstance(m.await_args.args[0], DatabaseConfig)
    assert m.await_args.args[0].database == "app"
    stats_lines = [c for c in log.info.call_args_list if "active" in c.args[0]]
    assert len(stats_lines) == 2


def test_create_pool_without_config_fails() -> None:
    mgr = ConnectionManager()
    with patch(CREATE_POOL, AsyncMock()) as m:
        with pytest.raises(ConfigurationMissingError, match="createPool"):
            _run(mgr.create_pool())
    m.assert_not_awaited()
    assert mgr.pool is None


def test_create_pool_uses_constructor_config() -> None:
    mgr = ConnectionManager(CONFIG)
    with patch(CREATE_POOL, AsyncMock(return_value=FakePool())) as m:
        _run(mgr.create_pool())
    assert m.await_args.args[0].user == "root"


def test_create_pool_driver_returns_none() -> None:
    mgr = ConnectionManager(CONFIG)
    with patch(CREATE_POOL, AsyncMock(return_value=None)):
        with pytest.raises(PoolCreationError, match="not created"):
            _run(mgr.create_pool())
    assert mgr.pool is None


def test_create_pool_is_single_flight() -> None:
    mgr = ConnectionManager(CONFIG)

    async def slow_create(config: DatabaseConfig) -> FakePool:
        await asyncio.sleep(0.01)
        return FakePool()

    async def run() -> list:
        return await asyncio.gather(*(mgr.create_pool() for _ in range(5)))

    with patch(CREATE_POOL, AsyncMock(side_effect=slow_create)) as m:
        pools = _run(run())

    assert m.await_count == 1
    assert all(p is pools[0] for p in pools)


def test_create_pool_closes_standalone_connection() -> None:
    standalone = FakeConnection()
    mgr = ConnectionManager(CONFIG)

    async def run() -> None:
        await mgr.get_connection()
        await mgr.create_pool()

    with patch(OPEN_CONNECTION, AsyncMock(return_value=standalone)), patch(
        CREATE_POOL, AsyncMock(return_value=FakePool())
    ):
        _run(run())

    assert standalone.ended == 1
    assert mgr.connection is None


def test_create_pool_logs_through_config_logger() -> None:
    log = _logger()
    mgr = ConnectionManager()
    with patch(CREATE_POOL, AsyncMock(return_value=FakePool())):
        _run(mgr.create_pool({**CONFIG, "logger": log}))
    assert mgr.logger is log
    assert "created" in log.info.call_args.args[0]


def test_explicit_logger_wins_over_config_logger() -> None:
    explicit, from_config = _logger(), _logger()
    mgr = ConnectionManager(logger=explicit)
    with patch(CREATE_POOL, AsyncMock(return_value=FakePool())):
        _run(mgr.create_pool({**CONFIG, "logger": from_config}))
    assert mgr.logger is explicit
    from_config.info.assert_not_called()


# --- get_connection: standalone ---


def test_get_connection_without_config_fails() -> None:
    mgr = ConnectionManager()
    with patch(OPEN_CONNECTION, AsyncMock()) as m:
        with pytest.raises(ConfigurationMissingError, match="getConnection"):
            _run(mgr.get_connection())
    m.assert_not_awaited()


def test_get_connection_reuses_valid_connection() -> None:
    conn = FakeConnection()
    mgr = ConnectionManager()

    async def run() -> tuple:
        return await mgr.get_connection(CONFIG), await mgr.get_connection()

    with patch(OPEN_CONNECTION, AsyncMock(return_value=conn)) as m:
        first, second = _run(run())

    assert first is conn and second is conn
    assert m.await_count == 1
    assert mgr.connection is conn


def test_get_connection_replaces_invalid_connection() -> None:
    old, new = FakeConnection(), FakeConnection()
    mgr = ConnectionManager()

    async def run() -> tuple:
        first = await mgr.get_connection(CONFIG)
        first.closed = True
        return first, await mgr.get_connection()

    with patch(OPEN_CONNECTION, AsyncMock(side_effect=[old, new])) as m:
        first, second = _run(run())

    assert first is old
    assert second is new
    assert m.await_count == 2
    # second open used the cached config
    assert m.await_args_list[1].args[0] is m.await_args_list[0].args[0]


def test_get_connection_caches_config_for_pool() -> None:
    mgr = ConnectionManager()

    async def run() -> None:
        await mgr.get_connection(CONFIG)
        await mgr.create_pool()

    with patch(OPEN_CONNECTION, AsyncMock(return_value=FakeConnection())), patch(
        CREATE_POOL, AsyncMock(return_value=FakePool())
    ) as m:
        _run(run())

    assert m.await_args.args[0].database == "app"


def test_get_connection_driver_returns_none() -> None:
    mgr = ConnectionManager(CONFIG)
    with patch(OPEN_CONNECTION, AsyncMock(return_value=None)):
        with pytest.raises(ConnectionCreationError, match="not created"):
            _run(mgr.get_connection())
    assert mgr.connection is None


def test_get_connection_standalone_is_single_flight() -> None:
    mgr = ConnectionManager(CONFIG)

    async def slow_open(config: DatabaseConfig) -> FakeConnection:
        await asyncio.sleep(0.01)
        return FakeConnection()

    async def run() -> list:
        return await asyncio.gather(*(mgr.get_connection() for _ in range(4)))

    with patch(OPEN_CONNECTION, AsyncMock(side_effect=slow_open)) as m:
        conns = _run(run())

    assert m.await_count == 1
    assert all(c is conns[0] for c in conns)


# --- get_connection: pooled ---


def test_get_connection_leases_independent_pooled_handles() -> None:
    pool = FakePool()
    mgr = ConnectionManager(CONFIG)

    async def run() -> tuple:
        await mgr.create_pool()
        return await mgr.get_connection(), await mgr.get_connection()

    with patch(CREATE_POOL, AsyncMock(return_value=pool)), patch(OPEN_CONNECTION, AsyncMock()) as m:
        first, second = _run(run())

    assert first is not second
    assert mgr.connection is None
    assert pool.size == 2 and pool.freesize == 0
    m.assert_not_awaited()


def test_get_connection_logs_pool_stats() -> None:
    log = _logger()
    mgr = ConnectionManager(CONFIG, logger=log)

    async def run() -> None:
        await mgr.create_pool()
        await mgr.get_connection()

    with patch(CREATE_POOL, AsyncMock(return_value=FakePool())):
        _run(run())

    call = log.info.call_args
    assert "active" in call.args[0]
    assert call.args[1:] == (1, 0, 1)


def test_release_connection_pooled_and_standalone() -> None:
    pool = FakePool()
    standalone = FakeConnection()
    mgr = ConnectionManager(CONFIG)

    async def run() -> FakeConnection:
        await mgr.create_pool()
        leased = await mgr.get_connection()
        await mgr.release_connection(leased)
        await mgr.release_connection(standalone)
        await mgr.release_connection(None)
        return leased

    with patch(CREATE_POOL, AsyncMock(return_value=pool)):
        leased = _run(run())

    assert pool.released == [leased]
    assert leased.ended == 0
    assert standalone.ended == 1


def test_pool_info_without_pool_is_noop() -> None:
    log = _logger()
    mgr = ConnectionManager(CONFIG, logger=log)
    mgr.pool_info()
    assert mgr.pool_stats() is None
    log.info.assert_not_called()


# --- session ---


def test_session_releases_on_error() -> None:
    pool = FakePool()
    mgr = ConnectionManager(CONFIG)

    async def run() -> None:
        await mgr.create_pool()
        async with mgr.session():
            raise RuntimeError("boom")

    with patch(CREATE_POOL, AsyncMock(return_value=pool)):
        with pytest.raises(RuntimeError, match="boom"):
            _run(run())

    assert len(pool.released) == 1
    assert pool.freesize == 1


def test_standalone_sessions_do_not_overlap() -> None:
    mgr = ConnectionManager(CONFIG)
    in_flight = 0
    peak = 0

    async def use() -> None:
        nonlocal in_flight, peak
        async with mgr.session():
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

    async def run() -> None:
        await asyncio.gather(*(use() for _ in range(3)))

    with patch(OPEN_CONNECTION, AsyncMock(side_effect=lambda cfg: FakeConnection())) as m:
        _run(run())

    assert peak == 1
    # each session ends its connection, so the next one reopens
    assert m.await_count == 3


# --- close ---


def test_close_keeps_config_and_recreates_lazily() -> None:
    pools = [FakePool(), FakePool()]
    mgr = ConnectionManager()

    async def run() -> object:
        await mgr.create_pool(CONFIG)
        await mgr.close()
        return await mgr.create_pool()

    with patch(CREATE_POOL, AsyncMock(side_effect=pools)) as m:
        again = _run(run())

    assert pools[0].closed is True
    assert pools[0].wait_closed_calls == 1
    assert again is pools[1]
    assert m.await_count == 2
    assert mgr.config is not None and mgr.config.database == "app"


def test_close_ends_standalone_connection() -> None:
    conn = FakeConnection()
    mgr = ConnectionManager(CONFIG)

    async def run() -> None:
        await mgr.get_connection()
        await mgr.close()

    with patch(OPEN_CONNECTION, AsyncMock(return_value=conn)):
        _run(run())

    assert conn.ended == 1
    assert mgr.connection is None


def test_close_waits_for_outstanding_lease() -> None:
    pool = FakePool()
    mgr = ConnectionManager(CONFIG)
    order: list[str] = []

    async def finish_later(conn: FakeConnection) -> None:
        await asyncio.sleep(0.01)
        order.append("released")
        await mgr.release_connection(conn)

    async def run() -> FakeConnection:
        await mgr.create_pool()
        conn = await mgr.get_connection()
        pending = asyncio.create_task(finish_later(conn))
        await asyncio.wait_for(mgr.close(), timeout=1.0)
        order.append("closed")
        await pending
        return conn

    with patch(CREATE_POOL, AsyncMock(return_value=pool)):
        conn = _run(run())

    assert order == ["released", "closed"]
    assert pool.released == [conn]
    # handed back to the pool, not ended behind its back
    assert conn.ended == 0
    assert conn.hard_closed == 1
    assert pool.size == 0
    assert mgr.pool is None


def test_release_after_close_goes_to_old_pool() -> None:
    pools = [FakePool(), FakePool()]
    mgr = ConnectionManager(CONFIG)

    async def run() -> FakeConnection:
        await mgr.create_pool()
        conn = await mgr.get_connection()
        closing = asyncio.create_task(mgr.close())
        await asyncio.sleep(0)
        await mgr.create_pool()
        await mgr.release_connection(conn)
        await asyncio.wait_for(closing, timeout=1.0)
        return conn

    with patch(CREATE_POOL, AsyncMock(side_effect=pools)):
        conn = _run(run())

    assert pools[0].released == [conn]
    assert pools[1].released == []


def test_create_pool_waits_for_running_standalone_session() -> None:
    conn = FakeConnection()
    mgr = ConnectionManager(CONFIG)
    ended_while_in_use: list[bool] = []

    async def use() -> None:
        async with mgr.session() as c:
            await asyncio.sleep(0.02)
            ended_while_in_use.append(c.ended > 0 or c.closed)

    async def run() -> None:
        task = asyncio.create_task(use())
        await asyncio.sleep(0.005)
        await mgr.create_pool()
        await task

    with patch(OPEN_CONNECTION, AsyncMock(return_value=conn)), patch(
        CREATE_POOL, AsyncMock(return_value=FakePool())
    ):
        _run(run())

    assert ended_while_in_use == [False]
    assert conn.ended == 1
    assert mgr.connection is None
    assert mgr.pool is not None
