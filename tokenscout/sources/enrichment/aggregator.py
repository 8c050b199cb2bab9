import logging
import time
from typing import List, Optional

from tokenscout.config.settings import Settings
from tokenscout.sources.enrichment.engine import EnrichmentEngine
from tokenscout.storage.models import EnrichedToken, TokenPage
from tokenscout.storage.token_store import TokenStore
from tokenscout.utils.constants import LIST_FILTERS, MAX_PAGE_SIZE, NEW_TOKEN_WINDOW_SECS, SORT_FIELDS

log = logging.getLogger(__name__)


def _has_metrics(token: EnrichedToken) -> bool:
    return bool(token.price_usd or token.volume24h or token.tvl_usd)


def sort_tokens(tokens: List[EnrichedToken], sort: str, order: str) -> List[EnrichedToken]:
    """Stable sort on a SORT_FIELDS key; tokens without a value go last either way."""
    attr = SORT_FIELDS[sort]
    present = [t for t in tokens if getattr(t, attr) is not None]
    missing = [t for t in tokens if getattr(t, attr) is None]
    present.sort(key=lambda t: getattr(t, attr), reverse=(order == "desc"))
    return present + missing


class TokenAggregator:
    """Ranked views over the enriched token set: trending, new, paginated list."""

    def __init__(self, store: TokenStore, engine: EnrichmentEngine, settings: Settings):
        self.store = store
        self.engine = engine
        self.settings = settings

    async def trending(self, limit: Optional[int] = None) -> List[EnrichedToken]:
        # the shared cache always holds the full ranked list; `limit` only trims the answer
        limit = limit or self.settings.trending_limit

        cached = await self.store.get_trending()
        if cached is not None:
            log.debug(f"[trending][hit] {len(cached)} tokens")
            return cached[:limit]

        enriched = await self.engine.enrich_many(await self.store.all_tokens())
        listed = [t for t in enriched if t.is_listed and t.volume24h > 0]
        listed.sort(key=lambda t: t.volume24h, reverse=True)
        top = listed[:self.settings.trending_limit]

        await self.store.save_trending(top, self.settings.trending_ttl)
        log.info(f"[trending] {len(top)} of {len(enriched)} tokens ranked")
        return top[:limit]

    async def new_tokens(self, now: Optional[int] = None) -> List[EnrichedToken]:
        """Created in the last 24h, newest first. Not cached."""
        now = now if now is not None else int(time.time())
        cutoff = now - NEW_TOKEN_WINDOW_SECS
        recent = [t for t in await self.store.all_tokens() if t.created_at_timestamp >= cutoff]
        enriched = await self.engine.enrich_many(recent)
        enriched.sort(key=lambda t: t.created_at_timestamp, reverse=True)
        return enriched

    async def list_tokens(
        self,
        sort: str = "volume",
        order: str = "desc",
        limit: int = 100,
        offset: int = 0,
        filter: str = "all",
    ) -> TokenPage:
        if sort not in SORT_FIELDS:
            raise ValueError(f"sort must be one of {sorted(SORT_FIELDS)}")
        if order not in ("asc", "desc"):
            raise ValueError("order must be 'asc' or 'desc'")
        if filter not in LIST_FILTERS:
            raise ValueError(f"filter must be one of {sorted(LIST_FILTERS)}")
        if limit < 1 or offset < 0:
            raise ValueError("limit must be >= 1 and offset >= 0")
        limit = min(limit, MAX_PAGE_SIZE)

        tokens = await self.engine.enrich_many(await self.store.all_tokens())
        if filter == "listed":
            tokens = [t for t in tokens if t.is_listed and _has_metrics(t)]
        elif filter == "unlisted":
            tokens = [t for t in tokens if not t.is_listed]

        ranked = sort_tokens(tokens, sort, order)
        return TokenPage(
            data=ranked[offset:offset + limit],
            total=len(ranked),
            page=offset // limit,
            page_size=limit,
        )
