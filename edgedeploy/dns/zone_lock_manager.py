"""
Cross-process zone locks backed by Redis.

The in-process guard only serializes callers sharing one event loop; this
lock extends the same exclusion to every process pointed at one Redis.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncContextManager, List, Optional

import redis


RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
else
    return 0
end
"""


class ZoneLockManager:
    """
    Distributed per-zone mutex using SET NX EX with compare-and-delete release.

    The expiry bounds how long a crashed holder can block a zone.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        lock_timeout: int = 300,
        key_prefix: str = "edgedeploy:dns:zone",
        redis_client: Optional[redis.Redis] = None
    ):
        self.redis_client = redis_client or redis.from_url(redis_url)
        self.lock_timeout = lock_timeout
        self.key_prefix = key_prefix
        self.logger = logging.getLogger(__name__)

    def _key(self, zone: str) -> str:
        return f"{self.key_prefix}:{zone}"

    @asynccontextmanager
    async def acquire_zone_lock(
        self,
        zone: str,
        owner: str = "edgedeploy",
        timeout: Optional[float] = None,
        wait_for_lock: bool = True,
        wait_interval: float = 0.5,
        max_wait: float = 30.0
    ) -> AsyncContextManager[bool]:
        """
        Acquire the lock for a zone.

        Args:
            zone: DNS zone name
            owner: Holder label stored with the lock
            timeout: Lock expiry in seconds (defaults to lock_timeout)
            wait_for_lock: Keep retrying until ``max_wait`` elapses
            wait_interval: Seconds between attempts
            max_wait: Overall budget for acquiring

        Yields:
            bool: True if the lock is held, False otherwise
        """
        lock_key = self._key(zone)
        lock_value = f"{owner}:{time.time()}"
        timeout_val = timeout or self.lock_timeout

        acquired = False
        start_time = time.monotonic()
        budget = max_wait if wait_for_lock else 0

        try:
            while True:
                if self.redis_client.set(lock_key, lock_value, nx=True, ex=int(timeout_val)):
                    acquired = True
                    self.logger.info(f"Acquired zone lock for {zone}")
                    break

                if (time.monotonic() - start_time) >= budget:
                    self.logger.warning(f"Could not acquire zone lock for {zone}")
                    break

                await asyncio.sleep(wait_interval)

            yield acquired

        finally:
            if acquired:
                try:
                    self.redis_client.eval(RELEASE_SCRIPT, 1, lock_key, lock_value)
                    self.logger.info(f"Released zone lock for {zone}")
                except redis.RedisError as e:
                    self.logger.error(f"Error releasing zone lock for {zone}: {e}")

    def is_zone_locked(self, zone: str) -> bool:
        try:
            return self.redis_client.exists(self._key(zone)) > 0
        except redis.RedisError as e:
            self.logger.error(f"Error checking zone lock for {zone}: {e}")
            return False

    def get_all_zone_locks(self) -> List[str]:
        """Zones currently locked by any process"""
        try:
            keys = self.redis_client.keys(f"{self.key_prefix}:*")
            prefix = f"{self.key_prefix}:"
            return [
                (key.decode() if isinstance(key, bytes) else key).replace(prefix, "", 1)
                for key in keys
            ]
        except redis.RedisError as e:
            self.logger.error(f"Error listing zone locks: {e}")
            return []
