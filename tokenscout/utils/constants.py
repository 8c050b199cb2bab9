ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

BASE_CHAIN_ID = 8453

# Uniswap V3 fee tiers (hundredths of a bip)
UNISWAP_V3_FEE_TIERS = {
    "lowest": 100,     # 0.01 %
    "low":    500,     # 0.05 %
    "medium": 3000,    # 0.3 %
    "high":   10000,   # 1 %
}

TOKEN_ADDRESSES = {
    "weth":  "0x4200000000000000000000000000000000000006",
    "usdc":  "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
    "usdbc": "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca",
    "dai":   "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",
}

SORT_FIELDS = {
    "volume":    "volume24h",
    "liquidity": "tvl_usd",
    "marketcap": "market_cap",
    "created":   "created_at_timestamp",
    "holders":   "holder_count",
}

LIST_FILTERS = {"all", "listed", "unlisted"}

MAX_PAGE_SIZE = 500

NEW_TOKEN_WINDOW_SECS = 86_400

SWAP_DEADLINE_SECS = 1_200

GAS_ESTIMATES = {
    "uniswap-v3": "150000",
    "aerodrome":  "180000",
}

# counterparts checked when looking up a token's Uniswap V3 pools
POOL_BASE_TOKENS = (TOKEN_ADDRESSES["weth"], TOKEN_ADDRESSES["usdc"])

RECENT_POOLS_BLOCKS = 100
RECENT_POOLS_MAX = 20

HONEYPOT_MIN_HOLDERS = 10
