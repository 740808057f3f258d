"""Periodic sweep trigger.

Runs as an asyncio task inside the API process. Every tick takes a Redis
lease first so only one worker sweeps per tick when several replicas run,
and renews it every third of its TTL until the sweep returns.
Property row locks still serialize the settlement itself.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.cc_common.database import async_session_factory
from src.cc_common.redis_client import (
    acquire_lease,
    extend_lease,
    get_redis,
    release_lease,
)
from src.cc_settlement.application.schemas import SweepReport
from src.cc_settlement.application.sweep import SweepService

logger = logging.getLogger(__name__)

SWEEP_LEASE_KEY = "cc:sweep:lease"


class SweepScheduler:
    def __init__(
        self,
        sweep: SweepService | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        redis_getter: Callable[[], Awaitable[aioredis.Redis]] | None = None,
        interval_seconds: int | None = None,
        lease_seconds: int | None = None,
        renew_seconds: float | None = None,
    ) -> None:
        self._sweep = sweep or SweepService()
        self._session_factory = session_factory or async_session_factory
        self._redis_getter = redis_getter or get_redis
        self._interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._lease_seconds = lease_seconds or settings.SWEEP_LEASE_SECONDS
        self._renew_seconds = renew_seconds or self._lease_seconds / 3
        self._task: asyncio.Task[None] | None = None

    async def tick(self) -> SweepReport | None:
        """One sweep pass, or None when another worker holds the lease."""
        redis = await self._redis_getter()
        token = await acquire_lease(redis, SWEEP_LEASE_KEY, self._lease_seconds)
        if token is None:
            logger.debug("Sweep lease held by another worker; skipping tick")
            return None
        renewer = asyncio.create_task(self._keep_lease(redis, token), name="sweep-lease")
        try:
            async with self._session_factory() as db:
                return await self._sweep.run(db)
        finally:
            renewer.cancel()
            try:
                await renewer
            except asyncio.CancelledError:
                pass
            await release_lease(redis, SWEEP_LEASE_KEY, token)

    async def _keep_lease(self, redis: aioredis.Redis, token: str) -> None:
        """Extend the lease until cancelled, so a long sweep keeps it."""
        while True:
            await asyncio.sleep(self._renew_seconds)
            try:
                extended = await extend_lease(
                    redis, SWEEP_LEASE_KEY, token, self._lease_seconds
                )
            except Exception:
                logger.exception("Sweep lease renewal failed")
                return
            if not extended:
                logger.warning("Sweep lease lost while sweeping; row locks still apply")
                return

    async def run_forever(self) -> None:
        logger.info("Sweep scheduler started (interval=%ds)", self._interval)
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Sweep tick failed")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="sweep-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sweep scheduler stopped")
