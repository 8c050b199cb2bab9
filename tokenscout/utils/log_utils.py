# tokenscout/utils/log_utils.py
from hexbytes import HexBytes
from web3.datastructures import AttributeDict


def sanitize_log(log):
    """Convert a Web3 log receipt into a JSON-safe dict with 0x-prefixed hex strings."""
    out = {}
    for k, v in dict(log).items():
        if isinstance(v, (bytes, bytearray, HexBytes)):
            out[k] = to_hex(v)
        elif isinstance(v, (list, tuple)):
            out[k] = [to_hex(x) if isinstance(x, (bytes, bytearray, HexBytes)) else x for x in v]
        elif isinstance(v, AttributeDict):
            out[k] = dict(v)
        else:
            out[k] = v
    return out


def to_hex(value) -> str:
    h = HexBytes(value).hex()
    # hexbytes>=1.0 dropped the 0x prefix
    return h if h.startswith("0x") else "0x" + h


def topic_to_address(topic) -> str:
    """Indexed address topics are 32-byte words; the address is the low 20 bytes."""
    return "0x" + to_hex(topic)[-40:].lower()

