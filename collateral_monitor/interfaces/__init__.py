"""Protocol interfaces for the collateral monitor."""
from .notifier import Notifier
from .price_feed import FeedError, PriceFeed
from .rate_source import RateSource, RateSourceError

__all__ = ["FeedError", "Notifier", "PriceFeed", "RateSource", "RateSourceError"]
