"""Collateral plugins: per-kind behaviour behind one facade."""
from .collateral import CollateralPlugin
from .kinds import (
    AppreciatingKind,
    CollateralKind,
    PeggedKind,
    SelfReferentialKind,
    build_kind,
)

__all__ = [
    "AppreciatingKind",
    "CollateralKind",
    "CollateralPlugin",
    "PeggedKind",
    "SelfReferentialKind",
    "build_kind",
]
