"""
Cooperative stop signal for running batch jobs.

A stop request is a Redis key ``batch:stop:<job>``.  The API and the
CLI set it; the runner clears it when a run starts and polls it between
items.  Items already committed stay committed.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

STOP_KEY_PREFIX = "batch:stop:"
STOP_KEY_TTL_SECONDS = 86400


def stop_key(job_name: str) -> str:
    return f"{STOP_KEY_PREFIX}{job_name}"


def make_redis(url: str | None = None) -> redis.Redis:
    return redis.from_url(url or settings.REDIS_URL, decode_responses=True)


class StopFlag:
    """Redis-backed stop flag for one job."""

    def __init__(self, client: redis.Redis, job_name: str) -> None:
        self.client = client
        self.job_name = job_name
        self.key = stop_key(job_name)

    async def request(self) -> None:
        await self.client.set(self.key, "1", ex=STOP_KEY_TTL_SECONDS)
        logger.info("Stop requested", job=self.job_name)

    async def clear(self) -> None:
        await self.client.delete(self.key)

    async def is_set(self) -> bool:
        return bool(await self.client.exists(self.key))


async def request_stop(job_name: str, client: redis.Redis | None = None) -> None:
    """Ask a running ``job_name`` to stop after its current item."""
    owned = client is None
    client = client or make_redis()
    try:
        await StopFlag(client, job_name).request()
    finally:
        if owned:
            await client.aclose()
