# Base mainnet contract addresses

UNISWAP_V3 = {
    "factory": "0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
    "router":  "0x2626664c2603336E57B271c5C0b26F421741e481",
    "quoter":  "0x3d4e44Eb1374240CE5F1B871ab261CD16335B76a",
}

AERODROME = {
    "factory": "0x420DD381b31aEf6683db6B902084cB0FFECe40Da",
    "router":  "0xcF77a3Ba9A5CA399B7c97c74d54e5b1Beb874E43",
}
