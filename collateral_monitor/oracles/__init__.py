"""Price feed backends and the price source adapter."""
from .manual import ManualFeed, ManualRateSource
from .pyth import FeedRateSource, PythFeed, PythOracle
from .source import PriceSourceAdapter

__all__ = [
    "FeedRateSource",
    "ManualFeed",
    "ManualRateSource",
    "PriceSourceAdapter",
    "PythFeed",
    "PythOracle",
]
