"""Solvency evaluator: the public queries of the cross-margin health engine.

Every function takes one `Snapshot` and is pure. All metrics derive from
``get_health_components()`` so they agree on the same worst-case assumptions.

Degenerate numerics never raise. They resolve to sentinels:
- ``None`` from ``get_liquidation_price()`` when no finite price exists,
- zero when there is nothing available,
- the unconstrained current health when a weight >= 1 (or a non-positive
  divisor) would make the linearized solve meaningless.

Units are noted per function: *native* means raw token / quote units, *UI*
means divided by the token's (or quote's) decimals.
"""

from __future__ import annotations

import logging
from typing import Optional

from .components import get_health_components, get_native_deposit, get_net
from .fixednum import ONE_I80F48, ZERO_I80F48, I80F48, pow10
from .types import QUOTE_INDEX, HealthType, MarketKind, MaxLeverage, Side, Snapshot
from .valuation import get_assets_val, get_liabs_val, get_ui_borrow, get_ui_deposit, get_ui_price
from .weights import (
    get_weights,
    health_from_components,
    health_from_components_unweighted,
    health_ratio_from,
    healths_from_components,
    weighted_assets_liabs,
)

logger = logging.getLogger(__name__)


def _check_market_index(snapshot: Snapshot, index: int) -> None:
    if not (0 <= index < snapshot.registry.num_oracles):
        raise ValueError(f"market index {index} out of range [0, {snapshot.registry.num_oracles})")


# -- Health --------------------------------------------------------------------

def get_health(snapshot: Snapshot, health_type: HealthType) -> I80F48:
    """Risk-weighted health, native quote units. Negative means undercollateralized."""
    return health_from_components(snapshot, get_health_components(snapshot), health_type)


def get_health_unweighted(snapshot: Snapshot) -> I80F48:
    return health_from_components_unweighted(snapshot, get_health_components(snapshot))


def get_healths(snapshot: Snapshot, health_type: HealthType) -> tuple[I80F48, I80F48]:
    """``(spot_health, perp_health)``: quote plus only spot, or only perp, contributions."""
    return healths_from_components(snapshot, get_health_components(snapshot), health_type)


def get_health_ratio(snapshot: Snapshot, health_type: HealthType) -> I80F48:
    """Percentage ``(assets / liabs - 1) * 100``; 100 means no liabilities at all."""
    assets, liabs = weighted_assets_liabs(snapshot, get_health_components(snapshot), health_type)
    return health_ratio_from(assets, liabs)


def is_liquidatable(snapshot: Snapshot) -> bool:
    """Maint health below zero, or Init health below zero while already being liquidated.

    The second clause keeps a liquidation running until the account clears the
    stricter Init threshold.
    """
    components = get_health_components(snapshot)
    if snapshot.account.being_liquidated:
        if health_from_components(snapshot, components, HealthType.INIT).is_neg():
            return True
    return health_from_components(snapshot, components, HealthType.MAINT).is_neg()


# -- Liquidation price ---------------------------------------------------------

def get_liquidation_price(snapshot: Snapshot, oracle_index: int) -> Optional[I80F48]:
    """Price of market `oracle_index` at which Maint health reaches zero, UI units.

    All other prices are held fixed. Returns None when the market's weighted
    exposure is zero or the solved price is negative.
    """
    _check_market_index(snapshot, oracle_index)
    registry, cache = snapshot.registry, snapshot.cache
    components = get_health_components(snapshot)

    partial_health = components.quote
    weighted_asset = ZERO_I80F48
    for i in range(registry.num_oracles):
        w = get_weights(registry, i, HealthType.MAINT)
        spot, perp = components.spot[i], components.perps[i]
        spot_weight = w.spot_asset_weight if spot.is_pos() else w.spot_liab_weight
        perp_weight = w.perp_asset_weight if perp.is_pos() else w.perp_liab_weight
        if i == oracle_index:
            weighted_asset = -(spot * spot_weight + perp * perp_weight)
        else:
            price = cache.prices[i]
            partial_health = partial_health + spot * price * spot_weight + perp * price * perp_weight

    if weighted_asset.is_zero():
        logger.debug("no liquidation price for market %d: zero weighted exposure", oracle_index)
        return None
    liq_price = partial_health / weighted_asset
    if liq_price.is_neg():
        logger.debug("no liquidation price for market %d: solved price %s", oracle_index, liq_price)
        return None
    decimals_adj = registry.token_decimals(oracle_index) - registry.quote_token.decimals
    return liq_price * pow10(decimals_adj)


# -- Margin / withdraw / borrow limits -----------------------------------------

def get_market_margin_available(snapshot: Snapshot, market_index: int, kind: MarketKind) -> I80F48:
    """Native quote available to expand a position in this market."""
    _check_market_index(snapshot, market_index)
    health = get_health(snapshot, HealthType.INIT)
    if not health.is_pos():
        return ZERO_I80F48

    w = get_weights(snapshot.registry, market_index, HealthType.INIT)
    weight = w.spot_asset_weight if kind is MarketKind.SPOT else w.perp_asset_weight
    if weight >= ONE_I80F48:
        logger.warning("init asset weight %s >= 1 on %s market %d", weight, kind.value, market_index)
        return health
    return health / (ONE_I80F48 - weight)


def get_available_balance(snapshot: Snapshot, token_index: int) -> I80F48:
    """Native token amount withdrawable without borrowing or breaching Init health."""
    if token_index != QUOTE_INDEX:
        _check_market_index(snapshot, token_index)
    health = get_health(snapshot, HealthType.INIT)
    net = get_net(snapshot.account, snapshot.cache.bank_caches[token_index], token_index)

    if token_index == QUOTE_INDEX:
        return max(min(health, net), ZERO_I80F48)

    asset_weight = get_weights(snapshot.registry, token_index, HealthType.INIT).spot_asset_weight
    price = snapshot.cache.prices[token_index]
    if not (asset_weight * price).is_pos():
        # The token carries no collateral value, so withdrawing it costs no health.
        return max(net, ZERO_I80F48) if not health.is_neg() else ZERO_I80F48
    return max(min(net, health / asset_weight / price), ZERO_I80F48)


def get_max_leverage_for_market(
    snapshot: Snapshot,
    market_index: int,
    kind: MarketKind,
    side: Side,
    price: I80F48,
) -> MaxLeverage:
    """Largest position (UI quote value) that keeps Init health non-negative.

    `price` is the expected UI execution price. Opening against an existing
    opposite position first closes it at par, which the ``*_val`` terms add back.
    """
    _check_market_index(snapshot, market_index)
    registry = snapshot.registry
    ui_init_health = get_health(snapshot, HealthType.INIT) / pow10(registry.quote_token.decimals)

    deposits = borrows = ZERO_I80F48
    if kind is MarketKind.PERP:
        info = registry.perp_markets[market_index]
        if info is None:
            raise ValueError(f"no perp market registered at index {market_index}")
        perp_account = snapshot.account.perp_accounts[market_index]
        base_pos = perp_account.base_position if perp_account is not None else 0
        ui_base = I80F48.from_int(base_pos * info.base_lot_size) / pow10(registry.token_decimals(market_index))
        if base_pos > 0:
            deposits = ui_base
        else:
            borrows = abs(ui_base)
    else:
        info = registry.spot_markets[market_index]
        if info is None:
            raise ValueError(f"no spot market registered at index {market_index}")
        deposits = get_ui_deposit(snapshot, market_index)
        borrows = get_ui_borrow(snapshot, market_index)
    ui_deposit_val = deposits * price
    ui_borrow_val = borrows * price

    init_asset, init_liab = info.init_asset_weight, info.init_liab_weight
    if side is Side.BUY:
        denominator = ONE_I80F48 - init_asset
        health_at_zero = ui_init_health + ui_borrow_val * (init_liab - ONE_I80F48)
        offset = ui_borrow_val
    else:
        denominator = init_liab - ONE_I80F48
        health_at_zero = ui_init_health + ui_deposit_val * (ONE_I80F48 - init_asset)
        offset = ui_deposit_val

    if denominator.is_pos():
        max_val = health_at_zero / denominator + offset
    else:
        logger.warning(
            "degenerate init weights on %s market %d (asset=%s, liab=%s)",
            kind.value, market_index, init_asset, init_liab,
        )
        max_val = ui_init_health

    return MaxLeverage(
        max=max_val,
        ui_deposit_val=ui_deposit_val,
        ui_borrow_val=ui_borrow_val,
        deposits=deposits,
        borrows=borrows,
    )


def get_max_with_borrow_for_token(snapshot: Snapshot, token_index: int) -> I80F48:
    """UI token amount that can be borrowed after pulling all deposits of the token."""
    if token_index != QUOTE_INDEX:
        _check_market_index(snapshot, token_index)
    registry, cache = snapshot.registry, snapshot.cache
    old_init_health = get_health(snapshot, HealthType.INIT).floor()
    token_deposits = get_native_deposit(
        snapshot.account, cache.bank_caches[token_index], token_index,
    ).floor()

    if token_index == QUOTE_INDEX:
        liab_weight = asset_weight = native_price = ONE_I80F48
    else:
        w = get_weights(registry, token_index, HealthType.INIT)
        liab_weight, asset_weight = w.spot_liab_weight, w.spot_asset_weight
        native_price = cache.prices[token_index]

    new_init_health = (old_init_health - token_deposits * native_price * asset_weight).floor()
    ui_health = new_init_health / pow10(registry.quote_token.decimals)
    denominator = get_ui_price(snapshot, token_index) * liab_weight
    if not denominator.is_pos():
        logger.warning("non-positive borrow denominator for token %d", token_index)
        return ui_health
    return ui_health / denominator


# -- Display -------------------------------------------------------------------

def compute_value(snapshot: Snapshot) -> I80F48:
    """Unweighted equity (assets - liabs), UI quote units."""
    return get_assets_val(snapshot) - get_liabs_val(snapshot)


def get_leverage(snapshot: Snapshot) -> Optional[I80F48]:
    """``liabs / equity``; zero without assets, None when equity is exactly zero."""
    liabs = get_liabs_val(snapshot)
    assets = get_assets_val(snapshot)
    if not assets.is_pos():
        return ZERO_I80F48
    equity = assets - liabs
    if equity.is_zero():
        return None
    return liabs / equity


def get_equity_ui(snapshot: Snapshot) -> I80F48:
    return compute_value(snapshot)


def get_collateral_value_ui(snapshot: Snapshot) -> I80F48:
    """Init health in UI quote units."""
    return get_health(snapshot, HealthType.INIT) / pow10(snapshot.registry.quote_token.decimals)


def get_perp_position_ui(snapshot: Snapshot, market_index: int) -> I80F48:
    """Settled perp base position in UI base units (zero when absent)."""
    _check_market_index(snapshot, market_index)
    market = snapshot.registry.perp_markets[market_index]
    perp_account = snapshot.account.perp_accounts[market_index]
    if market is None or perp_account is None:
        return ZERO_I80F48
    native = I80F48.from_int(perp_account.base_position * market.base_lot_size)
    return native / pow10(snapshot.registry.token_decimals(market_index))


def has_any_spot_orders(snapshot: Snapshot) -> bool:
    return any(snapshot.account.in_margin_basket)
