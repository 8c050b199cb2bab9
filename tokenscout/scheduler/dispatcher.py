"""
Celery-side wrappers around the service operations. Each task is one
short-lived invocation: build the components, run a single coroutine with
asyncio.run, close, return a JSON-safe dict. Continuation between runs lives
entirely in the KV store (cursor, caches), and the discovery lock keeps two
beats from scanning at once.
"""
import asyncio
import logging
from typing import Optional

from celery import shared_task

from tokenscout.config.settings import Settings
from tokenscout.services.token_service import TokenService
from tokenscout.sources.evm.client import new_web3_client

log = logging.getLogger(__name__)


async def _run(op):
    settings = Settings.from_env()
    # a fresh client per event loop; asyncio.run closes the loop after each task
    service = TokenService.build(settings, w3=new_web3_client(settings.rpc_url, settings.rpc_timeout))
    try:
        return await op(service)
    finally:
        await service.close()


@shared_task(name="discover_tokens", queue="discovery", bind=True)
def discover_tokens(self, incremental: bool = True, blocks_to_scan: Optional[int] = None) -> dict:
    log.info("🔄  Starting discovery run…")
    outcome = asyncio.run(_run(lambda s: s.trigger_discovery(incremental, blocks_to_scan)))
    if outcome.skipped:
        log.info("🔒 Another discovery run holds the lock; skipped.")
    elif outcome.success:
        log.info(f"✅ Discovery found {outcome.new_tokens_found} new tokens")
    else:
        log.error(f"❌ Discovery failed: {outcome.error}")
    return outcome.to_dict()


@shared_task(name="refresh_tokens", queue="refresh", bind=True)
def refresh_tokens(self, limit: Optional[int] = None) -> dict:
    log.info("🔄  Starting scheduled refresh…")
    summary = asyncio.run(_run(lambda s: s.scheduled_refresh(limit)))
    log.info(f"✅ Refreshed {summary.successes}/{summary.count} tokens in {summary.duration_ms}ms")
    return summary.record()
