from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class DiscoveryProgress:
    last_scanned_block: int
    total_tokens_discovered: int
    last_scan_timestamp: int      # epoch-ms

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> "DiscoveryProgress":
        return cls(
            last_scanned_block=int(raw["last_scanned_block"]),
            total_tokens_discovered=int(raw.get("total_tokens_discovered", 0)),
            last_scan_timestamp=int(raw.get("last_scan_timestamp", 0)),
        )


@dataclass
class DiscoveryState:
    block_number: int
    timestamp: int                # epoch-ms
    total_tokens: int
    last_batch_duration_ms: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> "DiscoveryState":
        return cls(
            block_number=int(raw["block_number"]),
            timestamp=int(raw.get("timestamp", 0)),
            total_tokens=int(raw.get("total_tokens", 0)),
            last_batch_duration_ms=raw.get("last_batch_duration_ms"),
        )
