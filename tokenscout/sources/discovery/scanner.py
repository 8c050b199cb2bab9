# scanner.py
# --------------------------------------------------------------
# Resumable factory-log scanner: lock → window → logs → ERC-20
# validation → persist → cursor. One invocation = one batch.
# --------------------------------------------------------------
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from web3 import AsyncWeb3

from tokenscout.config.settings import Settings
from tokenscout.sources.discovery.factories import FactoryDescriptor, FactoryEvent
from tokenscout.sources.evm.blocks import BlockClient
from tokenscout.sources.evm.events import fetch_logs
from tokenscout.sources.evm.token_meta import read_erc20_meta
from tokenscout.storage.lock import DistributedLock
from tokenscout.storage.models import DiscoveredToken, DiscoveryProgress
from tokenscout.storage.token_store import TokenStore
from tokenscout.utils.constants import ZERO_ADDRESS
from tokenscout.utils.errors import OperationTimeout
from tokenscout.utils.retry import guarded, with_timeout

log = logging.getLogger(__name__)


@dataclass
class ScanResult:
    new_tokens_found: int = 0
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    skipped: bool = False          # lock held by another run
    timed_out: bool = False
    tokens: List[DiscoveredToken] = field(default_factory=list)
    progress: Optional[DiscoveryProgress] = None


class TokenScanner:
    def __init__(
        self,
        w3: AsyncWeb3,
        store: TokenStore,
        lock: DistributedLock,
        factories: List[FactoryDescriptor],
        settings: Settings,
        blocks: Optional[BlockClient] = None,
    ):
        self.w3 = w3
        self.store = store
        self.lock = lock
        self.factories = factories
        self.settings = settings
        self.blocks = blocks or BlockClient(w3, timeout=settings.rpc_timeout)

    async def discover(self, incremental: bool = True, blocks_to_scan: Optional[int] = None) -> ScanResult:
        if not await self.lock.acquire(self.settings.lock_ttl):
            log.info("[scanner] Discovery already running, skipping this invocation")
            return ScanResult(skipped=True)

        started = time.monotonic()
        try:
            latest = await self.blocks.get_latest_block()
            from_block, to_block = await self._scan_window(latest, incremental, blocks_to_scan)
            if from_block > to_block:
                log.info(f"[scanner] Up-to-date ✔ (cursor {from_block - 1}, head {latest})")
                return ScanResult(from_block=from_block, to_block=to_block)

            log.info(
                f"[scanner] Scanning blocks {from_block}-{to_block} "
                f"across {len(self.factories)} factories"
            )
            known: Set[str] = set(await self.store.known_token_addresses())
            found: List[DiscoveredToken] = []
            timed_out = False
            try:
                await with_timeout(
                    self._scan_factories(from_block, to_block, known, found),
                    self.settings.scan_budget,
                    "discovery batch",
                )
            except OperationTimeout as e:
                # keep what was validated; the cursor still advances to to_block
                timed_out = True
                log.warning(f"[scanner] {e}; committing {len(found)} validated tokens")

            for token in found:
                await self.store.save_token(token)

            total = len(await self.store.known_token_addresses())
            duration_ms = int((time.monotonic() - started) * 1000)
            progress = await self.store.update_progress(to_block, total, duration_ms)
            log.info(
                f"[scanner] Batch {from_block}-{to_block} done in {duration_ms}ms: "
                f"{len(found)} new, {total} total"
            )
            return ScanResult(
                new_tokens_found=len(found),
                from_block=from_block,
                to_block=to_block,
                timed_out=timed_out,
                tokens=found,
                progress=progress,
            )
        finally:
            await self.lock.release()

    async def _scan_window(
        self, latest: int, incremental: bool, blocks_to_scan: Optional[int]
    ) -> Tuple[int, int]:
        batch = min(blocks_to_scan or self.settings.scan_batch_size, self.settings.scan_batch_size)
        progress = await self.store.read_progress() if incremental else None
        if progress is not None:
            from_block = progress.last_scanned_block + 1
        else:
            from_block = max(0, latest - batch)
        return from_block, min(from_block + batch - 1, latest)

    async def _scan_factories(
        self, from_block: int, to_block: int, known: Set[str], found: List[DiscoveredToken]
    ) -> None:
        for factory in self.factories:
            events = await self._fetch_factory_events(factory, from_block, to_block)

            # first triggering event per address; later duplicates and known tokens are skipped
            candidates: Dict[str, FactoryEvent] = {}
            for event in events:
                for address in (event.token0, event.token1):
                    if address in known or address in candidates:
                        continue
                    candidates[address] = event
            known.update(candidates)

            if candidates:
                log.info(f"[scanner] {factory.source}: {len(candidates)} candidate tokens")
                await self._validate_all(candidates, factory.source, to_block, found)

    async def _fetch_factory_events(
        self, factory: FactoryDescriptor, from_block: int, to_block: int
    ) -> List[FactoryEvent]:
        events: List[FactoryEvent] = []
        for lo, hi in BlockClient.walk_block_ranges(from_block, to_block, self.settings.log_block_range):
            try:
                logs = await guarded(
                    lambda: fetch_logs(self.w3, factory.address, lo, hi, [factory.topic]),
                    self.settings.rpc_timeout,
                    f"{factory.event_name} logs {lo}-{hi}",
                )
            except Exception as e:
                log.error(f"[scanner] {factory.source} log fetch {lo}-{hi} failed, treating as empty: {e}")
                continue

            for raw in logs:
                try:
                    events.append(factory.decode(raw))
                except (KeyError, IndexError, ValueError, TypeError) as e:
                    log.debug(f"[scanner] Undecodable {factory.event_name} log skipped: {e}")
        return events

    async def _validate_all(
        self,
        candidates: Dict[str, FactoryEvent],
        source: str,
        fallback_block: int,
        found: List[DiscoveredToken],
    ) -> None:
        sem = asyncio.Semaphore(self.settings.rpc_concurrency)

        async def _validate(address: str, event: FactoryEvent) -> None:
            async with sem:
                try:
                    meta = await read_erc20_meta(self.w3, address, self.settings.rpc_timeout)
                except Exception as e:
                    log.info(f"[scanner] {address} is not a readable ERC-20, dropped: {e}")
                    return
                block, ts = await self.blocks.resolve_block_info(event.block_number, fallback_block)
                # appended as soon as it is valid so a budget timeout keeps it
                found.append(
                    DiscoveredToken(
                        address=address,
                        name=meta["name"],
                        symbol=meta["symbol"],
                        decimals=meta["decimals"],
                        total_supply=meta["total_supply"],
                        created_at_block=block,
                        created_at_timestamp=ts,
                        discovered_from=source,
                        deployer=ZERO_ADDRESS,
                    )
                )

        await asyncio.gather(*(_validate(a, e) for a, e in candidates.items()))
