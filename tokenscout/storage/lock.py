import logging
import time

from tokenscout.storage.kv import KVStore
from tokenscout.utils.errors import KVUnavailable

log = logging.getLogger(__name__)


class DistributedLock:
    """
    TTL mutex on a single KV key (SET NX EX).

    acquire() never blocks or retries: False means another run holds the lock.
    A store that cannot answer raises KVUnavailable instead, so an outage is
    never mistaken for contention.
    release() is idempotent. The TTL must outlive the worst-case batch so a
    crashed holder cannot wedge the system and a slow one is not overlapped.
    """

    def __init__(self, kv: KVStore, key: str, ttl_seconds: int = 90):
        self.kv = kv
        self.key = key
        self.ttl_seconds = ttl_seconds
        self.held = False

    async def acquire(self, ttl_seconds: int | None = None) -> bool:
        ttl = ttl_seconds or self.ttl_seconds
        res = await self.kv.set_if_not_exists_with_expiry_result(
            self.key, int(time.time() * 1000), ttl
        )
        if not res.ok:
            raise KVUnavailable(f"cannot acquire {self.key}: {res.error}")
        self.held = res.value
        log.info(f"🔒 [lock] {self.key} acquired: {self.held}")
        return self.held

    async def release(self) -> None:
        await self.kv.delete(self.key)
        self.held = False

    async def __aenter__(self) -> bool:
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.held:
            await self.release()
