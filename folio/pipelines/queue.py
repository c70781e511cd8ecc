"""
Durable job queue
folio/pipelines/queue.py

Redis-backed queue shared by every worker process.

Keys (under QUEUE_PREFIX):
    job:{id}   hash   payload, attempts, max_attempts, reserved_by, reserved_at
    waiting    list   ready job ids (LPUSH in, LMOVE out: FIFO)
    active     list   ids currently held by a worker
    delayed    zset   id -> time the job becomes ready (retry backoff)
    leases     zset   id -> lease expiry; renewed by worker heartbeats

A job id is registered with HSETNX, so submitting the same id twice is
detected and rejected. A job whose lease expires is handed back by
reclaim_stalled() for the reaper to re-queue or fail.
"""
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as aioredis
import structlog

from folio.config import settings
from folio.core.exceptions import DuplicateEntityException

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QueuedJob:
    """A job as handed to a worker. attempts counts the current attempt."""
    job_id: str
    payload: Dict[str, Any]
    attempts: int
    max_attempts: int

    @property
    def attempts_left(self) -> int:
        return max(self.max_attempts - self.attempts, 0)


class RedisJobQueue:
    def __init__(
        self,
        client: Optional[aioredis.Redis] = None,
        prefix: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client or aioredis.from_url(settings.queue_redis_url, decode_responses=True)
        self.prefix = prefix or settings.QUEUE_PREFIX
        self.clock = clock

    # ------------------------------------------------------------------
    # keys
    # ------------------------------------------------------------------

    def _job_key(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"

    @property
    def waiting_key(self) -> str:
        return f"{self.prefix}:waiting"

    @property
    def active_key(self) -> str:
        return f"{self.prefix}:active"

    @property
    def delayed_key(self) -> str:
        return f"{self.prefix}:delayed"

    @property
    def leases_key(self) -> str:
        return f"{self.prefix}:leases"

    # ------------------------------------------------------------------
    # producer side
    # ------------------------------------------------------------------

    async def enqueue(self, job_id: str, payload: Dict[str, Any], max_attempts: int) -> str:
        """Register and push a job. Raises DuplicateEntityException if the id exists."""
        job_key = self._job_key(job_id)
        created = await self.client.hsetnx(job_key, "payload", json.dumps(payload))
        if not created:
            raise DuplicateEntityException(f"Job {job_id} already enqueued")

        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hset(job_key, mapping={"attempts": 0, "max_attempts": max_attempts})
            pipe.lpush(self.waiting_key, job_id)
            await pipe.execute()
        logger.info("job_enqueued", job_id=job_id, step=payload.get("step"))
        return job_id

    async def remove(self, job_id: str) -> bool:
        """Drop a job that has not been reserved. False if a worker holds it."""
        removed = await self.client.lrem(self.waiting_key, 0, job_id)
        removed += await self.client.zrem(self.delayed_key, job_id)
        if removed:
            await self.client.delete(self._job_key(job_id))
            logger.info("job_removed", job_id=job_id)
        return bool(removed)

    # ------------------------------------------------------------------
    # consumer side
    # ------------------------------------------------------------------

    async def promote_delayed(self) -> int:
        """Move delayed jobs whose backoff elapsed onto the waiting list."""
        due = await self.client.zrangebyscore(self.delayed_key, "-inf", self.clock())
        promoted = 0
        for job_id in due:
            # only the caller that wins the ZREM pushes the job
            if await self.client.zrem(self.delayed_key, job_id):
                await self.client.lpush(self.waiting_key, job_id)
                promoted += 1
        return promoted

    async def reserve(self, worker_id: str, lease_seconds: float) -> Optional[QueuedJob]:
        """Take the oldest ready job and lease it to worker_id."""
        await self.promote_delayed()
        job_id = await self.client.lmove(self.waiting_key, self.active_key, "RIGHT", "LEFT")
        if job_id is None:
            return None

        now = self.clock()
        job_key = self._job_key(job_id)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.zadd(self.leases_key, {job_id: now + lease_seconds})
            pipe.hincrby(job_key, "attempts", 1)
            pipe.hset(job_key, mapping={"reserved_by": worker_id, "reserved_at": now})
            pipe.hgetall(job_key)
            results = await pipe.execute()

        data = results[-1] or {}
        if "payload" not in data:
            # removed between LMOVE and the lease; drop the stub hash HINCRBY left behind
            await self._release(job_id)
            await self.client.delete(job_key)
            return None
        return self._to_job(job_id, data)

    async def heartbeat(self, job_id: str, lease_seconds: float) -> bool:
        """Extend a held lease. False if the job is no longer leased."""
        changed = await self.client.zadd(
            self.leases_key, {job_id: self.clock() + lease_seconds}, xx=True, ch=True
        )
        return bool(changed)

    async def complete(self, job_id: str) -> None:
        await self._release(job_id)
        await self.client.delete(self._job_key(job_id))

    async def fail(self, job_id: str) -> None:
        await self.complete(job_id)

    async def retry(self, job_id: str, delay_seconds: float) -> None:
        """Release the lease and schedule the next attempt after the backoff."""
        await self._release(job_id)
        await self.client.zadd(self.delayed_key, {job_id: self.clock() + delay_seconds})
        logger.info("job_retry_scheduled", job_id=job_id, delay_seconds=delay_seconds)

    async def _release(self, job_id: str) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.lrem(self.active_key, 0, job_id)
            pipe.zrem(self.leases_key, job_id)
            await pipe.execute()

    # ------------------------------------------------------------------
    # liveness
    # ------------------------------------------------------------------

    async def reclaim_stalled(self, lease_seconds: float) -> List[QueuedJob]:
        """
        Take back jobs whose worker stopped heart-beating.

        Covers expired leases and active entries that never got a lease
        (worker died between LMOVE and ZADD). The returned jobs are neither
        waiting nor active; the caller re-queues or fails them.
        """
        now = self.clock()
        candidates = set(await self.client.zrangebyscore(self.leases_key, "-inf", now))

        for job_id in await self.client.lrange(self.active_key, 0, -1):
            if job_id in candidates:
                continue
            if await self.client.zscore(self.leases_key, job_id) is None:
                reserved_at = await self.client.hget(self._job_key(job_id), "reserved_at")
                if reserved_at is None or float(reserved_at) + lease_seconds <= now:
                    candidates.add(job_id)

        reclaimed: List[QueuedJob] = []
        for job_id in sorted(candidates):
            removed = await self.client.lrem(self.active_key, 0, job_id)
            unleased = await self.client.zrem(self.leases_key, job_id)
            if not (removed or unleased):
                continue  # another reaper got it
            data = await self.client.hgetall(self._job_key(job_id))
            if not data or "payload" not in data:
                continue
            job = self._to_job(job_id, data)
            logger.warning("job_stalled", job_id=job_id, attempts=job.attempts)
            reclaimed.append(job)
        return reclaimed

    async def requeue(self, job_id: str, delay_seconds: float = 0.0) -> None:
        if delay_seconds > 0:
            await self.client.zadd(self.delayed_key, {job_id: self.clock() + delay_seconds})
        else:
            await self.client.lpush(self.waiting_key, job_id)

    async def depth(self) -> Dict[str, int]:
        return {
            "waiting": await self.client.llen(self.waiting_key),
            "active": await self.client.llen(self.active_key),
            "delayed": await self.client.zcard(self.delayed_key),
        }

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()

    def _to_job(self, job_id: str, data: Dict[str, Any]) -> QueuedJob:
        return QueuedJob(
            job_id=job_id,
            payload=json.loads(data["payload"]),
            attempts=int(data.get("attempts", 0)),
            max_attempts=int(data.get("max_attempts", settings.PIPELINE_MAX_ATTEMPTS)),
        )
