# tokenscout/storage/token_store.py
import logging
import time
from typing import Any, Callable, List, Optional

from tokenscout.storage.kv import KVStore
from tokenscout.storage.models import (
    DiscoveredToken,
    DiscoveryProgress,
    DiscoveryState,
    EnrichedToken,
    TokenMetrics,
)
from tokenscout.utils.errors import KVUnavailable

log = logging.getLogger(__name__)


class Keys:
    TOKENS_ALL = "tokens:all"
    ENRICHED_INDEX = "cache:tokens:index"
    TRENDING = "tokens:trending"
    PROGRESS = "discovery:progress"
    DISCOVERY_LAST = "discovery:lastBlockScanned"
    DISCOVERY_LOCK = "discovery:lock"
    REFRESH_LAST = "refresh:lastRun"

    @staticmethod
    def token(address: str) -> str:
        return f"token:{address.lower()}"

    @staticmethod
    def enriched(address: str) -> str:
        return f"token:{address.lower()}:enriched"

    @staticmethod
    def holder_count(address: str) -> str:
        return f"holderCount:{address.lower()}"

    @staticmethod
    def holder_count_fail(address: str) -> str:
        return f"holderCount:fail:{address.lower()}"


def now_ms() -> int:
    return int(time.time() * 1000)


def _decode(key: str, decode: Callable[[Any], Any], raw: Any) -> Any:
    """Malformed payloads read as a miss."""
    if raw is None:
        return None
    try:
        return decode(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        log.warning(f"[store] Ignoring malformed {key}: {e}")
        return None


class TokenStore:
    """Typed accessors for every record tokenscout keeps in the KV store."""

    def __init__(self, kv: KVStore):
        self.kv = kv

    # ── discovered tokens ──────────────────────────────────────────────────
    async def save_token(self, token: DiscoveredToken) -> None:
        """
        Record first, index membership second. Failures propagate: a token that
        was not written means the discovery batch is incomplete.
        """
        token.address = token.address.lower()
        token.last_updated = now_ms()
        await self.kv.set_strict(Keys.token(token.address), token.to_dict())
        await self.kv.add_to_set_strict(Keys.TOKENS_ALL, token.address)
        log.info(f"[store] Saved token {token.symbol} ({token.address})")

    async def get_token(self, address: str) -> Optional[DiscoveredToken]:
        key = Keys.token(address)
        return _decode(key, DiscoveredToken.from_dict, await self.kv.get(key))

    async def token_exists(self, address: str) -> bool:
        return await self.kv.exists(Keys.token(address))

    async def all_token_addresses(self) -> List[str]:
        return await self.kv.set_members(Keys.TOKENS_ALL)

    async def known_token_addresses(self) -> List[str]:
        """Like all_token_addresses, but an unreachable store raises instead of reading as empty."""
        res = await self.kv.set_members_result(Keys.TOKENS_ALL)
        if not res.ok:
            raise KVUnavailable(f"cannot read {Keys.TOKENS_ALL}: {res.error}")
        return res.value

    async def all_tokens(self) -> List[DiscoveredToken]:
        # index entries without a backing record are skipped (crash window between the two writes)
        tokens = []
        for address in await self.all_token_addresses():
            token = await self.get_token(address)
            if token is not None:
                tokens.append(token)
        return tokens

    # ── enriched cache ─────────────────────────────────────────────────────
    async def save_enriched(self, address: str, metrics: TokenMetrics, ttl_seconds: int) -> int:
        cached_at = now_ms()
        payload = {"data": metrics.to_dict(), "cached_at": cached_at, "ttl_secs": ttl_seconds}
        if await self.kv.set_with_expiry(Keys.enriched(address), payload, ttl_seconds):
            await self.kv.add_to_set(Keys.ENRICHED_INDEX, address.lower())
        return cached_at

    async def get_enriched_payload(self, address: str) -> Optional[dict]:
        return await self.kv.get(Keys.enriched(address))

    async def get_enriched(self, address: str) -> Optional[tuple]:
        """(TokenMetrics, cached_at) or None on a miss."""
        return _decode(
            Keys.enriched(address),
            lambda p: (TokenMetrics.from_dict(p["data"]), p.get("cached_at")),
            await self.get_enriched_payload(address),
        )

    async def delete_enriched(self, address: str) -> bool:
        return await self.kv.delete(Keys.enriched(address))

    async def cached_token_count(self) -> int:
        return await self.kv.set_size(Keys.ENRICHED_INDEX)

    async def clear_enriched_cache(self) -> int:
        addresses = await self.all_token_addresses()
        await self.kv.delete(*[Keys.enriched(a) for a in addresses], Keys.ENRICHED_INDEX, Keys.TRENDING)
        return len(addresses)

    # ── trending ───────────────────────────────────────────────────────────
    async def save_trending(self, tokens: List[EnrichedToken], ttl_seconds: int) -> bool:
        return await self.kv.set_with_expiry(
            Keys.TRENDING, [t.to_dict() for t in tokens], ttl_seconds
        )

    async def get_trending(self) -> Optional[List[EnrichedToken]]:
        rows = await self.kv.get(Keys.TRENDING)
        return _decode(Keys.TRENDING, lambda raw: [EnrichedToken.from_dict(r) for r in raw], rows)

    # ── discovery cursor ───────────────────────────────────────────────────
    async def get_progress(self) -> Optional[DiscoveryProgress]:
        return _decode(Keys.PROGRESS, DiscoveryProgress.from_dict, await self.kv.get(Keys.PROGRESS))

    async def read_progress(self) -> Optional[DiscoveryProgress]:
        """
        Cursor read for the scanner. None only when no cursor was ever written;
        an unreachable store raises so a resumed scan never restarts from the head.
        """
        res = await self.kv.get_result(Keys.PROGRESS)
        if not res.ok:
            raise KVUnavailable(f"cannot read {Keys.PROGRESS}: {res.error}")
        return DiscoveryProgress.from_dict(res.value) if res.value else None

    async def get_state(self) -> Optional[DiscoveryState]:
        return _decode(Keys.DISCOVERY_LAST, DiscoveryState.from_dict, await self.kv.get(Keys.DISCOVERY_LAST))

    async def update_progress(
        self,
        last_scanned_block: int,
        total_tokens: int,
        batch_duration_ms: Optional[int] = None,
    ) -> DiscoveryProgress:
        """Writes both cursor records. The cursor never moves backward."""
        previous = await self.read_progress()
        if previous is not None:
            last_scanned_block = max(last_scanned_block, previous.last_scanned_block)

        progress = DiscoveryProgress(
            last_scanned_block=last_scanned_block,
            total_tokens_discovered=total_tokens,
            last_scan_timestamp=now_ms(),
        )
        await self.kv.set(Keys.PROGRESS, progress.to_dict())
        await self.kv.set(
            Keys.DISCOVERY_LAST,
            DiscoveryState(
                block_number=last_scanned_block,
                timestamp=progress.last_scan_timestamp,
                total_tokens=total_tokens,
                last_batch_duration_ms=batch_duration_ms,
            ).to_dict(),
        )
        return progress

    # ── holder counts ──────────────────────────────────────────────────────
    async def get_holder_count(self, address: str) -> Optional[int]:
        cached = await self.kv.get(Keys.holder_count(address))
        if cached is not None:
            log.debug(f"[holders][hit] {address} -> {cached}")
            return int(cached)
        return None

    async def save_holder_count(self, address: str, count: int, ttl_seconds: int) -> None:
        await self.kv.set_with_expiry(Keys.holder_count(address), int(count), ttl_seconds)

    async def mark_holder_count_failed(self, address: str, ttl_seconds: int) -> None:
        await self.kv.set_with_expiry(Keys.holder_count_fail(address), now_ms(), ttl_seconds)

    async def holder_count_recently_failed(self, address: str) -> bool:
        return await self.kv.exists(Keys.holder_count_fail(address))

    async def delete_holder_count(self, address: str) -> bool:
        return await self.kv.delete(Keys.holder_count(address))

    # ── refresh bookkeeping ────────────────────────────────────────────────
    async def save_refresh_summary(self, summary: dict) -> None:
        await self.kv.set(Keys.REFRESH_LAST, summary)

    async def get_refresh_summary(self) -> Optional[dict]:
        return await self.kv.get(Keys.REFRESH_LAST)
