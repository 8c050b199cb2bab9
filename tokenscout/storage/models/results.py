# models/results.py
# Explicit outcome values returned by the service layer. Every boundary
# operation answers with one of these instead of raising.
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from tokenscout.storage.models.discovery import DiscoveryProgress, DiscoveryState
from tokenscout.storage.models.token import EnrichedToken


@dataclass
class DiscoveryOutcome:
    success: bool
    new_tokens_found: int = 0
    skipped: bool = False
    timed_out: bool = False
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    progress: Optional[DiscoveryProgress] = None
    state: Optional[DiscoveryState] = None
    duration_ms: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TokenPage:
    data: List[EnrichedToken]
    total: int
    page: int
    page_size: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TokenLookup:
    found: bool
    token: Optional[EnrichedToken] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RefreshOutcome:
    address: str
    success: bool
    duration_ms: int
    reason: Optional[str] = None
    token: Optional[EnrichedToken] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RefreshSummary:
    timestamp: int                # epoch-ms
    count: int
    duration_ms: int
    successes: int
    failures: int
    results: List[RefreshOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    def record(self) -> dict:
        """What gets persisted under refresh:lastRun (no per-token detail)."""
        return {
            "timestamp": self.timestamp,
            "count": self.count,
            "duration_ms": self.duration_ms,
            "successes": self.successes,
            "failures": self.failures,
        }


@dataclass
class SystemStatus:
    kv_configured: bool
    last_block: Optional[int]
    last_scan_at: Optional[int]
    total_tokens: int
    cached_tokens: int
    last_refresh: Optional[dict]
    kv_latency_ms: int
    rpc_latency_ms: int
    rpc_host: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)
