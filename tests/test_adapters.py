"""Tests for the async SQL Server adapter (engine mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bak_converter.adapters.base import SqlServerClient
from bak_converter.adapters.mssql import AsyncSqlServerAdapter, create_async_engine_pooled
from bak_converter.config.models import ServerProfile


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.dispose = AsyncMock()
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.close = AsyncMock()
    engine.connect = AsyncMock(return_value=conn)
    engine.conn = conn
    with patch("bak_converter.adapters.mssql.create_async_engine", return_value=engine) as factory:
        engine.factory = factory
        yield engine


class TestCreateAsyncEnginePooled:
    def test_defaults(self, engine) -> None:
        create_async_engine_pooled("mssql+aioodbc://sa@h/master")

        kwargs = engine.factory.call_args.kwargs
        assert kwargs["pool_size"] == 10
        assert kwargs["max_overflow"] == 0
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_recycle"] == 300
        assert kwargs["isolation_level"] == "AUTOCOMMIT"

    def test_caller_overrides(self, engine) -> None:
        create_async_engine_pooled("mssql+aioodbc://sa@h/master", pool_size=2, echo=True)

        kwargs = engine.factory.call_args.kwargs
        assert kwargs["pool_size"] == 2
        assert kwargs["echo"] is True


class TestAsyncSqlServerAdapter:
    def test_satisfies_protocol(self) -> None:
        assert hasattr(AsyncSqlServerAdapter, "stream_rows")
        for name in ("fetch_all", "execute", "execute_batch", "use_database", "test_connection", "close"):
            assert callable(getattr(AsyncSqlServerAdapter, name))
            assert hasattr(SqlServerClient, name)

    def test_from_profile_uses_pool_settings(self, engine) -> None:
        AsyncSqlServerAdapter.from_profile(ServerProfile(host="db", pool_size=3, pool_recycle=60))

        url = engine.factory.call_args.args[0]
        kwargs = engine.factory.call_args.kwargs
        assert url.host == "db"
        assert url.database == "master"
        assert kwargs["pool_size"] == 3
        assert kwargs["pool_recycle"] == 60

    @pytest.mark.asyncio
    async def test_connection_is_pinned(self, engine) -> None:
        adapter = AsyncSqlServerAdapter("mssql+aioodbc://sa@h/master")

        await adapter.execute("USE [master]")
        await adapter.use_database("DB_1")

        engine.connect.assert_awaited_once()
        statement = engine.conn.execute.await_args.args[0]
        assert str(statement) == "USE [DB_1]"

    @pytest.mark.asyncio
    async def test_fetch_all_returns_dicts(self, engine) -> None:
        result = MagicMock()
        result.mappings.return_value.all.return_value = [{"TABLE_NAME": "t"}]
        engine.conn.execute.return_value = result
        adapter = AsyncSqlServerAdapter("mssql+aioodbc://sa@h/master")

        rows = await adapter.fetch_all("SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES")

        assert rows == [{"TABLE_NAME": "t"}]

    @pytest.mark.asyncio
    async def test_execute_batch_drains_result_sets(self, engine) -> None:
        cursor = MagicMock()
        cursor.execute = AsyncMock()
        cursor.nextset = AsyncMock(side_effect=[True, True, False])
        cursor.close = AsyncMock()
        raw = MagicMock()
        raw.driver_connection.cursor = AsyncMock(return_value=cursor)
        engine.conn.get_raw_connection = AsyncMock(return_value=raw)
        adapter = AsyncSqlServerAdapter("mssql+aioodbc://sa@h/master")

        await adapter.execute_batch("RESTORE DATABASE [DB_1] FROM DISK = ?", ["/b.bak"])

        cursor.execute.assert_awaited_once_with("RESTORE DATABASE [DB_1] FROM DISK = ?", "/b.bak")
        assert cursor.nextset.await_count == 3
        cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_disposes_even_if_connection_close_fails(self, engine) -> None:
        engine.conn.close.side_effect = OSError("broken pipe")
        adapter = AsyncSqlServerAdapter("mssql+aioodbc://sa@h/master")
        await adapter.test_connection()

        with pytest.raises(OSError):
            await adapter.close()

        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_connection(self, engine) -> None:
        adapter = AsyncSqlServerAdapter("mssql+aioodbc://sa@h/master")

        await adapter.close()

        engine.conn.close.assert_not_awaited()
        engine.dispose.assert_awaited_once()
