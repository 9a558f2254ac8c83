"""Weighted aggregation of health components.

Asset weights (<= 1) discount risky collateral; liab weights (>= 1) penalize
debt. Which weight applies is decided by the sign of each signed quantity, and
the weight table by the `HealthType` regime.
"""

from __future__ import annotations

from typing import Optional

from .fixednum import HUNDRED_I80F48, ONE_I80F48, ZERO_I80F48, I80F48
from .types import HealthComponents, HealthType, MarketRegistry, MarketWeights, Snapshot

UNIT_WEIGHTS = MarketWeights(ONE_I80F48, ONE_I80F48, ONE_I80F48, ONE_I80F48)


def _pick(info, health_type: HealthType) -> tuple[I80F48, I80F48]:
    if info is None:
        return ZERO_I80F48, ONE_I80F48
    if health_type is HealthType.MAINT:
        return info.maint_asset_weight, info.maint_liab_weight
    return info.init_asset_weight, info.init_liab_weight


def get_weights(
    registry: MarketRegistry, index: int, health_type: Optional[HealthType],
) -> MarketWeights:
    """Weights for market `index`; unit weights when `health_type` is None.

    An unregistered market carries no collateral value (asset weight 0) and
    prices its debt at par (liab weight 1).
    """
    if health_type is None:
        return UNIT_WEIGHTS
    spot_asset, spot_liab = _pick(registry.spot_markets[index], health_type)
    perp_asset, perp_liab = _pick(registry.perp_markets[index], health_type)
    return MarketWeights(
        spot_asset_weight=spot_asset,
        spot_liab_weight=spot_liab,
        perp_asset_weight=perp_asset,
        perp_liab_weight=perp_liab,
    )


def _weighted(amount: I80F48, price: I80F48, asset_weight: I80F48, liab_weight: I80F48) -> I80F48:
    return amount * price * (asset_weight if amount.is_pos() else liab_weight)


def healths_from_components(
    snapshot: Snapshot, components: HealthComponents, health_type: HealthType,
) -> tuple[I80F48, I80F48]:
    """Return ``(spot_health, perp_health)``, each seeded at `quote` and accumulated independently."""
    spot_health = components.quote
    perp_health = components.quote
    for i in range(snapshot.registry.num_oracles):
        w = get_weights(snapshot.registry, i, health_type)
        price = snapshot.cache.prices[i]
        spot_health = spot_health + _weighted(
            components.spot[i], price, w.spot_asset_weight, w.spot_liab_weight,
        )
        perp_health = perp_health + _weighted(
            components.perps[i], price, w.perp_asset_weight, w.perp_liab_weight,
        )
    return spot_health, perp_health


def health_from_components(
    snapshot: Snapshot, components: HealthComponents, health_type: HealthType,
) -> I80F48:
    """Risk-weighted health in native quote units."""
    health = components.quote
    for i in range(snapshot.registry.num_oracles):
        w = get_weights(snapshot.registry, i, health_type)
        price = snapshot.cache.prices[i]
        health = (
            health
            + _weighted(components.spot[i], price, w.spot_asset_weight, w.spot_liab_weight)
            + _weighted(components.perps[i], price, w.perp_asset_weight, w.perp_liab_weight)
        )
    return health


def health_from_components_unweighted(snapshot: Snapshot, components: HealthComponents) -> I80F48:
    health = components.quote
    for i in range(snapshot.registry.num_oracles):
        price = snapshot.cache.prices[i]
        health = health + components.spot[i] * price + components.perps[i] * price
    return health


def weighted_assets_liabs(
    snapshot: Snapshot, components: HealthComponents, health_type: Optional[HealthType],
) -> tuple[I80F48, I80F48]:
    """Bucket every weighted contribution into non-negative ``(assets, liabs)`` totals."""
    assets = ZERO_I80F48
    liabs = ZERO_I80F48

    if components.quote.is_pos():
        assets = assets + components.quote
    else:
        liabs = liabs - components.quote

    for i in range(snapshot.registry.num_oracles):
        w = get_weights(snapshot.registry, i, health_type)
        price = snapshot.cache.prices[i]
        for amount, asset_weight, liab_weight in (
            (components.spot[i], w.spot_asset_weight, w.spot_liab_weight),
            (components.perps[i], w.perp_asset_weight, w.perp_liab_weight),
        ):
            if amount.is_pos():
                assets = assets + amount * price * asset_weight
            else:
                liabs = liabs + (-amount) * price * liab_weight
    return assets, liabs


def health_ratio_from(assets: I80F48, liabs: I80F48) -> I80F48:
    """``(assets / liabs - 1) * 100``; exactly 100 when there are no liabilities."""
    if liabs.is_pos():
        return (assets / liabs - ONE_I80F48) * HUNDRED_I80F48
    return HUNDRED_I80F48
