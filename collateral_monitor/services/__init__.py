"""Engine services. ``Monitor`` lives in ``services.monitor``."""
from .default_detector import DefaultDetector
from .rate_tracker import ExchangeRateTracker
from .resolver import PriceResolver

__all__ = ["DefaultDetector", "ExchangeRateTracker", "PriceResolver"]
