"""Error taxonomy shared by the streaming engines."""
from typing import Optional, Sequence


class PoolFetchError(Exception):
    """Base class for failures raised by the pool fetching core."""


class MalformedDocument(PoolFetchError):
    """A document violated the structure the engines expect."""

    def __init__(self, context: str, position: Optional[int] = None):
        self.context = context
        self.position = position
        if position is None:
            super().__init__(f"malformed document: {context}")
        else:
            super().__init__(f"malformed document at event {position}: {context}")


class TokenNotFound(PoolFetchError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"token {symbol} not found")


class AmbiguousToken(PoolFetchError):
    """Several token records share a symbol; the caller must pick a mint."""

    def __init__(self, symbol: str, candidates: Sequence):
        self.symbol = symbol
        self.candidates = list(candidates)
        super().__init__(
            f"found {len(self.candidates)} tokens with symbol {symbol}"
        )
