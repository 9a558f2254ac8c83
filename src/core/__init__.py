"""
Core risk algorithms
"""

from .cross_margin import (
    HealthType,
    I80F48,
    MarketKind,
    Side,
    Snapshot,
    get_health,
    get_health_components,
    get_health_ratio,
    get_liquidation_price,
    is_liquidatable,
    load_registry,
)

__all__ = [
    "HealthType",
    "I80F48",
    "MarketKind",
    "Side",
    "Snapshot",
    "get_health",
    "get_health_components",
    "get_health_ratio",
    "get_liquidation_price",
    "is_liquidatable",
    "load_registry",
]
