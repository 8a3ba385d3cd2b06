"""Transactions and the connection-pool gauge."""

import asyncio

import pytest
from sqlalchemy import event, func, select
from sqlalchemy import exc as sa_exc

from tuitter.db.pool import ConnectionStats, PoolGauge
from tuitter.db.session import transaction
from tuitter.errors import ServiceError
from tuitter.models import User


def stats(max_connections=100, reserved=3, opened=10):
    return ConnectionStats(
        version="16.0", max_connections=max_connections, reserved_connections=reserved, opened_connections=opened,
    )


def new_user(tag: str) -> User:
    return User(tag=tag, username=tag, email=f"{tag}@example.com", password="x", features=[])


async def count_users(factory) -> int:
    async with factory() as db:
        return (await db.execute(select(func.count()).select_from(User))).scalar_one()


def record_invalidations(engine) -> list:
    invalidated = []
    event.listen(engine.sync_engine, "invalidate", lambda *args: invalidated.append(args))
    return invalidated


class TestTransaction:

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory):
        engine = session_factory.kw["bind"]

        with pytest.raises(RuntimeError):
            async with transaction(session_factory) as db:
                db.add(new_user("ghost"))
                await db.flush()
                raise RuntimeError("boom")

        assert engine.pool.checkedout() == 0
        assert await count_users(session_factory) == 0

    @pytest.mark.asyncio
    async def test_cancelled_transaction_rolls_back_and_releases(self, session_factory):
        engine = session_factory.kw["bind"]
        flushed = asyncio.Event()

        async def stuck():
            async with transaction(session_factory) as db:
                db.add(new_user("stuck"))
                await db.flush()
                flushed.set()
                await asyncio.Event().wait()

        task = asyncio.create_task(stuck())
        await flushed.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert engine.pool.checkedout() == 0
        assert await count_users(session_factory) == 0

    @pytest.mark.asyncio
    async def test_pool_timeout_becomes_service_error(self, session_factory):
        with pytest.raises(ServiceError) as exc_info:
            async with transaction(session_factory):
                raise sa_exc.TimeoutError("QueuePool limit reached")

        assert exc_info.value.status_code == 503
        assert exc_info.value.error_location_code == "INFRA:DATABASE:POOL_TIMEOUT"

    @pytest.mark.asyncio
    async def test_connection_is_invalidated_under_pressure(self, session_factory):
        engine = session_factory.kw["bind"]
        invalidated = record_invalidations(engine)
        gauge = PoolGauge(engine, pool_size=5, max_age=60, tolerance=0.8, serverless=True)
        gauge._stats = stats(max_connections=10, reserved=0, opened=9)

        async with transaction(session_factory, gauge) as db:
            db.add(new_user("kept"))

        assert len(invalidated) == 1
        assert engine.pool.checkedout() == 0
        assert await count_users(session_factory) == 1

    @pytest.mark.asyncio
    async def test_connection_is_pooled_without_pressure(self, session_factory):
        engine = session_factory.kw["bind"]
        invalidated = record_invalidations(engine)
        gauge = PoolGauge(engine, pool_size=5, max_age=60, tolerance=0.8, serverless=True)
        gauge._stats = stats(max_connections=10, reserved=0, opened=2)

        async with transaction(session_factory, gauge) as db:
            db.add(new_user("pooled"))

        assert invalidated == []
        assert engine.pool.checkedin() == 1


class TestPoolGauge:

    def test_shed_threshold(self):
        gauge = PoolGauge(None, pool_size=5, max_age=60, tolerance=0.8, serverless=True)
        assert gauge.should_shed() is False

        gauge._stats = stats(opened=77)
        assert gauge.should_shed() is False

        gauge._stats = stats(opened=78)
        assert gauge.should_shed() is True

    def test_long_lived_server_never_sheds(self):
        gauge = PoolGauge(None, pool_size=5, max_age=60, tolerance=0.8)
        gauge._stats = stats(opened=99)
        assert gauge.should_shed() is False

        gauge._unreachable = True
        assert gauge.should_shed() is False

    @pytest.mark.asyncio
    async def test_refresh_reads_sqlite(self, session_factory):
        gauge = PoolGauge(session_factory.kw["bind"], pool_size=5, max_age=60, tolerance=0.8)

        assert gauge.is_stale()
        refreshed = await gauge.refresh()

        assert refreshed.max_connections == 5
        assert refreshed.version
        assert not gauge.is_stale()
        assert gauge.should_shed() is False
