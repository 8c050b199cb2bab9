from tokenscout.storage.models.token import DiscoveredToken, TokenMetrics, EnrichedToken
from tokenscout.storage.models.discovery import DiscoveryProgress, DiscoveryState
from tokenscout.storage.models.trading import TradeToken, LiquidityPool, SwapQuote, SwapTransaction, TokenRisk
from tokenscout.storage.models.results import (
    DiscoveryOutcome,
    TokenPage,
    TokenLookup,
    RefreshOutcome,
    RefreshSummary,
    SystemStatus,
)
