"""
Typed async key-value adapter over Redis.

Every value is stored as JSON. All operations are fail-soft: a failure is
logged and the call returns a safe default (None / [] / False). The `*_result`
variants return an OpResult instead, so callers that care can tell an
unreachable store apart from a legitimately empty answer. Writes that must not
be lost go through `set_strict` / `add_to_set_strict`, which raise.
"""
import json
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenscout.utils.errors import KVUnavailable, KVWriteError
from tokenscout.utils.types import OpResult

log = logging.getLogger(__name__)


def _dump(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _load(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


class KVStore:
    def __init__(self, client: Optional[Redis]):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: Optional[str]) -> "KVStore":
        if not redis_url:
            log.warning("[kv] REDIS_URL not configured, running without persistence")
            return cls(None)
        return cls(Redis.from_url(redis_url, decode_responses=True))

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def _attempt(self, label: str, op: Callable[[Redis], Awaitable[Any]]) -> OpResult:
        if self.client is None:
            return OpResult.failure("kv not configured")
        try:
            return OpResult.success(await op(self.client))
        except (RedisError, OSError, ValueError) as e:
            log.error(f"[kv] {label} failed: {e}")
            return OpResult.failure(str(e))

    # ── reads ──────────────────────────────────────────────────────────────
    async def get_result(self, key: str) -> OpResult:
        async def _get(r: Redis):
            return _load(await r.get(key))

        return await self._attempt(f"get {key}", _get)

    async def get(self, key: str) -> Any:
        return (await self.get_result(key)).value

    async def exists(self, key: str) -> bool:
        res = await self._attempt(f"exists {key}", lambda r: r.exists(key))
        return bool(res.ok and res.value)

    async def set_members_result(self, set_key: str) -> OpResult:
        res = await self._attempt(f"smembers {set_key}", lambda r: r.smembers(set_key))
        return res._replace(value=sorted(res.value or [])) if res.ok else res._replace(value=[])

    async def set_members(self, set_key: str) -> List[str]:
        return (await self.set_members_result(set_key)).value

    async def set_size(self, set_key: str) -> int:
        res = await self._attempt(f"scard {set_key}", lambda r: r.scard(set_key))
        return int(res.value or 0) if res.ok else 0

    # ── writes ─────────────────────────────────────────────────────────────
    async def set(self, key: str, value: Any) -> bool:
        return (await self._attempt(f"set {key}", lambda r: r.set(key, _dump(value)))).ok

    async def set_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> bool:
        res = await self._attempt(
            f"setex {key}", lambda r: r.set(key, _dump(value), ex=int(ttl_seconds))
        )
        return res.ok

    async def delete(self, *keys: str) -> bool:
        if not keys:
            return True
        return (await self._attempt(f"del {keys[0]}", lambda r: r.delete(*keys))).ok

    async def add_to_set(self, set_key: str, member: str) -> bool:
        return (await self._attempt(f"sadd {set_key}", lambda r: r.sadd(set_key, member))).ok

    async def set_if_not_exists_with_expiry_result(self, key: str, value: Any, ttl_seconds: int) -> OpResult:
        res = await self._attempt(
            f"setnx {key}", lambda r: r.set(key, _dump(value), nx=True, ex=int(ttl_seconds))
        )
        return res._replace(value=bool(res.value)) if res.ok else res._replace(value=False)

    async def set_if_not_exists_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Atomic SET NX EX. True only when this call created the key."""
        return (await self.set_if_not_exists_with_expiry_result(key, value, ttl_seconds)).value

    # ── strict writes (primary token path) ─────────────────────────────────
    async def set_strict(self, key: str, value: Any) -> None:
        if self.client is None:
            raise KVUnavailable("kv not configured")
        try:
            await self.client.set(key, _dump(value))
        except (RedisError, OSError) as e:
            raise KVWriteError(f"set {key} failed: {e}") from e

    async def add_to_set_strict(self, set_key: str, member: str) -> None:
        if self.client is None:
            raise KVUnavailable("kv not configured")
        try:
            await self.client.sadd(set_key, member)
        except (RedisError, OSError) as e:
            raise KVWriteError(f"sadd {set_key} failed: {e}") from e

    # ── health ─────────────────────────────────────────────────────────────
    async def ping_ms(self) -> int:
        """Round-trip latency in ms, -1 when the store is unreachable."""
        start = time.perf_counter()
        res = await self._attempt("ping", lambda r: r.ping())
        if not res.ok:
            return -1
        return int((time.perf_counter() - start) * 1000)

    async def close(self) -> None:
        if self.client is not None:
            close = getattr(self.client, "aclose", None) or self.client.close
            await close()
