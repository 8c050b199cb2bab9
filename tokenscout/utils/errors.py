class TokenScoutError(Exception):
    """Base class for every error raised on purpose inside tokenscout."""


class OperationTimeout(TokenScoutError):
    def __init__(self, label: str, timeout: float):
        self.label = label
        self.timeout = timeout
        super().__init__(f"{label} timed out after {timeout:.2f}s")


class KVUnavailable(TokenScoutError):
    """Raised when the key-value store is not configured or cannot be reached."""


class KVWriteError(TokenScoutError):
    """A write on the primary token path failed and must not be ignored."""


class SubgraphError(TokenScoutError):
    pass


class InvalidAddress(TokenScoutError, ValueError):
    pass
