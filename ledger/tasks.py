"""Helpers for handing ledger jobs to the arq worker."""

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from ledger.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """Queue ``task_name`` on the worker, opening a short-lived pool for it.

    Extra arguments are passed through to ``ArqRedis.enqueue_job``.
    """
    pool = await get_redis_pool()
    try:
        return await pool.enqueue_job(task_name, *args, **kwargs)  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_mark_overdue_invoices() -> Job:
    """Run the overdue sweep now instead of waiting for the daily cron."""
    return await enqueue_task("mark_overdue_invoices_task")
