from web3 import Web3

from tokenscout.utils.errors import InvalidAddress


def normalize_address(address: str) -> str:
    """Lower-case 0x address, or InvalidAddress for anything that isn't one."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddress(f"Invalid address: {address!r}")
    return address.lower()
