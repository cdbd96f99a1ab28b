"""Price feed protocol — a passive oracle answering (value, timestamp)."""
from decimal import Decimal
from typing import Protocol


class FeedError(Exception):
    """Raised by a feed that cannot answer right now."""


class PriceFeed(Protocol):
    """Latest answer of an external price oracle.

    Implementations may raise anything on failure; the price source adapter
    treats every failure as an invalid reading.
    """

    @property
    def name(self) -> str: ...

    def latest_answer(self) -> tuple[Decimal, float]: ...
