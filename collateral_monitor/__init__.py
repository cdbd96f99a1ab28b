"""Collateral health monitoring and default detection."""
from .models import CollateralStatus, PriceRange, PriceState, StatusChange
from .plugins import CollateralPlugin

__all__ = [
    "CollateralPlugin",
    "CollateralStatus",
    "PriceRange",
    "PriceState",
    "StatusChange",
]
