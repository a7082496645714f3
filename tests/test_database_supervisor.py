"""
Tests for DatabaseSupervisor connect/retry/watch behaviour.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from society.database import DatabaseSupervisor, DatabaseUnavailableError


def make_supervisor(engine=None, **kwargs):
    options = {"attempts": 5, "backoff": 5.0, "backoff_max": 60.0, "interval": 30.0}
    options.update(kwargs)
    return DatabaseSupervisor(engine, **options)


def test_backoff_grows_and_is_capped():
    supervisor = make_supervisor(object(), backoff=5.0, backoff_max=30.0)
    assert [supervisor.delay_for(n) for n in range(1, 6)] == [5.0, 10.0, 20.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_connect_retries_until_ping_succeeds():
    supervisor = make_supervisor(object())
    supervisor.ping = AsyncMock(side_effect=[False, False, True])

    with patch("society.database.asyncio.sleep", new=AsyncMock()) as sleep:
        await supervisor.connect()

    assert supervisor.ping.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [5.0, 10.0]


@pytest.mark.asyncio
async def test_connect_gives_up_after_attempts():
    supervisor = make_supervisor(object(), attempts=3)
    supervisor.ping = AsyncMock(return_value=False)

    with patch("society.database.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(DatabaseUnavailableError):
            await supervisor.connect()

    assert supervisor.ping.await_count == 3
    # No sleep after the last attempt
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_connect_without_engine_fails_immediately():
    supervisor = make_supervisor(None)
    with pytest.raises(DatabaseUnavailableError):
        await supervisor.connect()
    assert not supervisor.healthy


@pytest.mark.asyncio
async def test_ping_against_real_engine(engine):
    supervisor = make_supervisor(engine)
    assert await supervisor.ping()
    assert supervisor.healthy


@pytest.mark.asyncio
async def test_ping_failure_marks_unhealthy():
    class BrokenEngine:
        def connect(self):
            raise OSError("connection refused")

    supervisor = make_supervisor(BrokenEngine())
    supervisor.healthy = True

    assert not await supervisor.ping()
    assert not supervisor.healthy


@pytest.mark.asyncio
async def test_watch_reconnects_after_lost_connection():
    supervisor = make_supervisor(object(), interval=0.01)
    pings = [False, True, True]

    async def ping():
        healthy = pings.pop(0) if pings else True
        supervisor.healthy = healthy
        return healthy

    supervisor.ping = ping
    supervisor.connect = AsyncMock()

    supervisor.start()
    await asyncio.sleep(0.1)
    await supervisor.stop()

    supervisor.connect.assert_awaited()
    assert supervisor.healthy


@pytest.mark.asyncio
async def test_watch_survives_failed_reconnect():
    supervisor = make_supervisor(object(), interval=0.01)
    supervisor.ping = AsyncMock(return_value=False)
    supervisor.connect = AsyncMock(side_effect=DatabaseUnavailableError("down"))

    supervisor.start()
    await asyncio.sleep(0.1)

    assert not supervisor._task.done()
    assert supervisor.connect.await_count >= 2
    await supervisor.stop()
