from eth_utils import event_abi_to_log_topic
from web3 import Web3

ERC20_ABI = [
    {"name": "name", "outputs": [{"type": "string"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
    {"name": "symbol", "outputs": [{"type": "string"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
    {"name": "decimals", "outputs": [{"type": "uint8"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
    {"name": "totalSupply", "outputs": [{"type": "uint256"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
]

POOL_CREATED_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "name": "token0", "type": "address"},
        {"indexed": True, "name": "token1", "type": "address"},
        {"indexed": True, "name": "fee", "type": "uint24"},
        {"indexed": False, "name": "tickSpacing", "type": "int24"},
        {"indexed": False, "name": "pool", "type": "address"},
    ],
    "name": "PoolCreated",
    "type": "event",
}

PAIR_CREATED_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "name": "token0", "type": "address"},
        {"indexed": True, "name": "token1", "type": "address"},
        {"indexed": False, "name": "stable", "type": "bool"},
        {"indexed": False, "name": "pair", "type": "address"},
        {"indexed": False, "name": "", "type": "uint256"},
    ],
    "name": "PairCreated",
    "type": "event",
}

TRANSFER_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "name": "from", "type": "address"},
        {"indexed": True, "name": "to", "type": "address"},
        {"indexed": False, "name": "value", "type": "uint256"},
    ],
    "name": "Transfer",
    "type": "event",
}

POOL_CREATED_TOPIC = Web3.to_hex(event_abi_to_log_topic(POOL_CREATED_ABI))
PAIR_CREATED_TOPIC = Web3.to_hex(event_abi_to_log_topic(PAIR_CREATED_ABI))
TRANSFER_TOPIC = Web3.to_hex(event_abi_to_log_topic(TRANSFER_ABI))

UNISWAP_V3_FACTORY_ABI = [
    {"name": "getPool", "outputs": [{"name": "pool", "type": "address"}],
     "inputs": [{"name": "tokenA", "type": "address"},
                {"name": "tokenB", "type": "address"},
                {"name": "fee", "type": "uint24"}],
     "stateMutability": "view", "type": "function"},
]

UNISWAP_V3_POOL_ABI = [
    {"name": "liquidity", "outputs": [{"name": "", "type": "uint128"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
]

UNISWAP_V3_QUOTER_ABI = [
    {"name": "quoteExactInputSingle", "outputs": [{"name": "amountOut", "type": "uint256"}],
     "inputs": [{"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "fee", "type": "uint24"},
                {"name": "amountIn", "type": "uint256"},
                {"name": "sqrtPriceLimitX96", "type": "uint160"}],
     "stateMutability": "nonpayable", "type": "function"},
]

AERODROME_ROUTER_ABI = [
    {"name": "getAmountsOut", "outputs": [{"name": "amounts", "type": "uint256[]"}],
     "inputs": [{"name": "amountIn", "type": "uint256"},
                {"name": "routes", "type": "tuple[]",
                 "components": [{"name": "from", "type": "address"},
                                {"name": "to", "type": "address"},
                                {"name": "stable", "type": "bool"}]}],
     "stateMutability": "view", "type": "function"},
]

# Swap call signatures, encoded by hand with eth_abi
EXACT_INPUT_SINGLE_SIG = "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"
SWAP_EXACT_TOKENS_SIG = "swapExactTokensForTokens(uint256,uint256,(address,address,bool)[],address,uint256)"
