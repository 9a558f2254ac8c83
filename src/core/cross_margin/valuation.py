"""Display-oriented account values and UI unit helpers.

These values use the *actual* deposits, borrows and open-order totals, not the
worst-case resolution of ``components.py``. They feed equity and leverage
displays and must never stand in for a solvency decision.
"""

from __future__ import annotations

from typing import Optional

from .components import get_native_borrow, get_native_deposit, get_quote_position
from .fixednum import ONE_I80F48, ZERO_I80F48, I80F48, pow10
from .types import (
    QUOTE_INDEX,
    HealthType,
    PerpAccount,
    PerpMarketCache,
    PerpMarketInfo,
    Snapshot,
)
from .weights import get_weights


# -- Units ---------------------------------------------------------------------

def native_to_ui(amount: I80F48, decimals: int) -> I80F48:
    return amount / pow10(decimals)


def get_ui_price(snapshot: Snapshot, token_index: int) -> I80F48:
    """Oracle price in UI quote per UI base; the quote token is always 1."""
    if token_index == QUOTE_INDEX:
        return ONE_I80F48
    registry = snapshot.registry
    decimal_adj = pow10(registry.token_decimals(token_index) - registry.quote_token.decimals)
    return snapshot.cache.prices[token_index] * decimal_adj


def get_ui_deposit(snapshot: Snapshot, token_index: int) -> I80F48:
    native = get_native_deposit(
        snapshot.account, snapshot.cache.bank_caches[token_index], token_index,
    )
    return native_to_ui(native.floor(), snapshot.registry.token_decimals(token_index))


def get_ui_borrow(snapshot: Snapshot, token_index: int) -> I80F48:
    native = get_native_borrow(
        snapshot.account, snapshot.cache.bank_caches[token_index], token_index,
    )
    return native_to_ui(native.ceil(), snapshot.registry.token_decimals(token_index))


# -- Perp values ---------------------------------------------------------------

def get_perp_asset_val(
    perp_account: PerpAccount, market: PerpMarketInfo, price: I80F48, perp_cache: PerpMarketCache,
) -> I80F48:
    """Long notional plus positive funding-adjusted quote, native quote units."""
    assets = ZERO_I80F48
    if perp_account.base_position > 0:
        assets = assets + I80F48.from_int(perp_account.base_position * market.base_lot_size) * price
    real_quote = get_quote_position(perp_account, perp_cache)
    if real_quote.is_pos():
        assets = assets + real_quote
    return assets


def get_perp_liabs_val(
    perp_account: PerpAccount, market: PerpMarketInfo, price: I80F48, perp_cache: PerpMarketCache,
) -> I80F48:
    """Short notional plus negative funding-adjusted quote, native quote units."""
    liabs = ZERO_I80F48
    if perp_account.base_position < 0:
        liabs = liabs + (-I80F48.from_int(perp_account.base_position * market.base_lot_size)) * price
    real_quote = get_quote_position(perp_account, perp_cache)
    if real_quote.is_neg():
        liabs = liabs - real_quote
    return liabs


def _perp_parts(snapshot: Snapshot, index: int):
    market = snapshot.registry.perp_markets[index]
    perp_account = snapshot.account.perp_accounts[index]
    if market is None or perp_account is None:
        return None
    return perp_account, market, snapshot.cache.prices[index], snapshot.cache.perp_caches[index]


# -- Spot / account values -----------------------------------------------------

def get_spot_val(snapshot: Snapshot, index: int, asset_weight: I80F48) -> I80F48:
    """UI value of deposits and open-order totals for one spot market."""
    price = get_ui_price(snapshot, index)
    value = get_ui_deposit(snapshot, index) * price * asset_weight

    open_orders = snapshot.account.spot_open_orders[index]
    if open_orders is not None:
        registry = snapshot.registry
        base_ui = native_to_ui(I80F48.from_int(open_orders.base_total), registry.token_decimals(index))
        quote_ui = native_to_ui(
            I80F48.from_int(open_orders.quote_total + open_orders.referrer_rebates_accrued),
            registry.quote_token.decimals,
        )
        value = value + base_ui * price * asset_weight + quote_ui
    return value


def get_assets_val(snapshot: Snapshot, health_type: Optional[HealthType] = None) -> I80F48:
    """Sum of asset values in UI quote units, optionally asset-weighted."""
    registry = snapshot.registry
    quote_decimals = registry.quote_token.decimals
    assets = get_ui_deposit(snapshot, QUOTE_INDEX)

    for i in range(registry.num_oracles):
        if registry.tokens[i] is None:
            continue
        asset_weight = get_weights(registry, i, health_type).spot_asset_weight
        assets = assets + get_spot_val(snapshot, i, asset_weight)

        parts = _perp_parts(snapshot, i)
        if parts is not None:
            assets = assets + native_to_ui(get_perp_asset_val(*parts), quote_decimals)
    return assets


def get_liabs_val(snapshot: Snapshot, health_type: Optional[HealthType] = None) -> I80F48:
    """Sum of liability values in UI quote units, optionally liab-weighted."""
    registry = snapshot.registry
    quote_decimals = registry.quote_token.decimals
    liabs = get_ui_borrow(snapshot, QUOTE_INDEX)

    for i in range(registry.num_oracles):
        if registry.tokens[i] is None:
            continue
        liab_weight = get_weights(registry, i, health_type).spot_liab_weight
        price = get_ui_price(snapshot, i)
        liabs = liabs + get_ui_borrow(snapshot, i) * (price * liab_weight)

        parts = _perp_parts(snapshot, i)
        if parts is not None:
            liabs = liabs + native_to_ui(get_perp_liabs_val(*parts), quote_decimals)
    return liabs


def get_native_liabs_val(snapshot: Snapshot, health_type: Optional[HealthType] = None) -> I80F48:
    """Like ``get_liabs_val()`` but in native quote units."""
    registry, cache, account = snapshot.registry, snapshot.cache, snapshot.account
    liabs = get_native_borrow(account, cache.bank_caches[QUOTE_INDEX], QUOTE_INDEX)

    for i in range(registry.num_oracles):
        price = cache.prices[i]
        liab_weight = get_weights(registry, i, health_type).spot_liab_weight
        liabs = liabs + get_native_borrow(account, cache.bank_caches[i], i) * (price * liab_weight)

        parts = _perp_parts(snapshot, i)
        if parts is not None:
            liabs = liabs + get_perp_liabs_val(*parts)
    return liabs
