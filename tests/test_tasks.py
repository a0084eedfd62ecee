"""Tests for handing jobs to the arq worker."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ledger.tasks import enqueue_mark_overdue_invoices, enqueue_task, get_redis_pool, redis_settings


@pytest.fixture
def pool():
    fake = MagicMock()
    fake.enqueue_job = AsyncMock(return_value="job")
    fake.close = AsyncMock()
    with patch("ledger.tasks.get_redis_pool", new=AsyncMock(return_value=fake)):
        yield fake


@pytest.mark.asyncio
async def test_pool_uses_configured_redis():
    with patch("ledger.tasks.create_pool", new=AsyncMock(return_value="pool")) as create:
        assert await get_redis_pool() == "pool"
    create.assert_awaited_once_with(redis_settings)


@pytest.mark.asyncio
async def test_enqueue_passes_arguments_through(pool):
    assert await enqueue_task("some_task", 7, _defer_by=30) == "job"

    pool.enqueue_job.assert_awaited_once_with("some_task", 7, _defer_by=30)
    pool.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_pool_closed_when_enqueue_fails(pool):
    pool.enqueue_job.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError, match="redis down"):
        await enqueue_task("some_task")

    pool.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_overdue_sweep_enqueued_by_worker_name(pool):
    await enqueue_mark_overdue_invoices()

    pool.enqueue_job.assert_awaited_once_with("mark_overdue_invoices_task")
