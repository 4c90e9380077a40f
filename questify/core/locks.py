"""
Per-user mutual exclusion for engine operations.

Purpose
-------
Every public engine operation is a read-modify-write over one player's
stats and quests. Holding a per-user lock around the sequence keeps two
concurrent calls from double-granting an achievement or double-claiming a
quest. The optimistic version check in the store is the second line.

Implementations
---------------
- `LocalUserLocks`: one `asyncio.Lock` per user id, for single-process use.
- `RedisUserLocks`: SET NX EX with a unique token and a compare-and-delete
  Lua release, for multiple worker processes sharing one store.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from questify.core.config.config import Config
from questify.core.exceptions import LockAcquisitionError
from questify.core.logging.logger import get_logger

logger = get_logger(__name__)


class UserLockProvider(Protocol):
    def hold(self, user_id: str) -> "AsyncIterator[None]": ...


class LocalUserLocks:
    """
    Process-local per-user locks.

    A user's lock lives only while some task holds or waits for it.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self._timeout = float(timeout or Config.USER_LOCK_TIMEOUT_SECONDS)

    @property
    def tracked_users(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._users[user_id] = self._users.get(user_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
            except asyncio.TimeoutError:
                raise LockAcquisitionError(f"user:{user_id}", self._timeout) from None

            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[user_id] -= 1
            if not self._users[user_id]:
                del self._users[user_id]
                del self._locks[user_id]

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return bool(lock and lock.locked())


class RedisUserLocks:
    """
    Distributed per-user locks backed by Redis.

    The lock key expires on its own if the holder crashes, so `expire_seconds`
    must exceed the longest engine operation.
    """

    _LUA_UNLOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        client: Redis,
        *,
        prefix: str = "questify:lock:user",
        expire_seconds: int = 30,
        wait_timeout: Optional[float] = None,
        retry_interval: float = 0.05,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._expire_seconds = expire_seconds
        self._wait_timeout = float(wait_timeout or Config.USER_LOCK_TIMEOUT_SECONDS)
        self._retry_interval = retry_interval

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisUserLocks":
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
        )
        return cls(client, **kwargs)

    def key_for(self, user_id: str) -> str:
        return f"{self._prefix}:{user_id}"

    async def _try_set(self, key: str, token: str) -> bool:
        try:
            return bool(await self._client.set(name=key, value=token, nx=True, ex=self._expire_seconds))
        except RedisError as exc:
            logger.error(
                "Redis lock SET failed; retrying",
                extra={"lock_key": key, "error_type": type(exc).__name__},
            )
            return False

    async def _release(self, key: str, token: str) -> None:
        try:
            deleted = await self._client.eval(self._LUA_UNLOCK_SCRIPT, 1, key, token)
        except RedisError as exc:
            logger.warning(
                "Redis lock release failed; key will expire",
                extra={"lock_key": key, "error_type": type(exc).__name__},
            )
            return
        if not deleted:
            logger.warning("Redis lock expired before release", extra={"lock_key": key})

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        key = self.key_for(user_id)
        token = uuid.uuid4().hex
        deadline = time.monotonic() + max(0.0, self._wait_timeout)

        while not await self._try_set(key, token):
            if time.monotonic() >= deadline:
                raise LockAcquisitionError(key, self._wait_timeout)
            await asyncio.sleep(self._retry_interval)

        try:
            yield
        finally:
            await self._release(key, token)

    async def close(self) -> None:
        await self._client.aclose()


def build_user_locks() -> UserLockProvider:
    """Pick the lock implementation from static config."""
    if Config.REDIS_URL:
        logger.info("Using Redis per-user locks")
        return RedisUserLocks.from_url(Config.REDIS_URL)
    return LocalUserLocks()
