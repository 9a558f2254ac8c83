"""Health-component resolver.

``get_health_components(snapshot)`` is the single canonical entry point for
exposure evaluation. It resolves balances, resting spot orders and perp
positions into per-market signed base quantities (`spot`, `perps`) and one net
quote amount, assuming the worst case for every resting order whose fill
outcome is unknown. Every downstream metric derives from its output.

The worst case is the outcome with the larger absolute base position: risk
weights penalize magnitude, so that outcome always yields the lower health.
On a tie the asks case is taken.
"""

from __future__ import annotations

import logging

from .fixednum import ZERO_I80F48, I80F48
from .types import (
    QUOTE_INDEX,
    BankCache,
    HealthComponents,
    MarginAccount,
    OpenOrdersSnapshot,
    PerpAccount,
    PerpMarketCache,
    PerpMarketInfo,
    Snapshot,
)

logger = logging.getLogger(__name__)


# -- Balances ------------------------------------------------------------------

def get_native_deposit(account: MarginAccount, bank_cache: BankCache, token_index: int) -> I80F48:
    return bank_cache.deposit_index * account.deposits[token_index]


def get_native_borrow(account: MarginAccount, bank_cache: BankCache, token_index: int) -> I80F48:
    return bank_cache.borrow_index * account.borrows[token_index]


def get_net(account: MarginAccount, bank_cache: BankCache, token_index: int) -> I80F48:
    """Deposits minus borrows in native token units."""
    return (
        account.deposits[token_index] * bank_cache.deposit_index
        - account.borrows[token_index] * bank_cache.borrow_index
    )


# -- Spot open orders ----------------------------------------------------------

def split_open_orders(open_orders: OpenOrdersSnapshot) -> tuple[I80F48, I80F48, I80F48, I80F48]:
    """Return ``(quote_free, quote_locked, base_free, base_locked)`` as fixed-point.

    Accrued referrer rebates are withdrawable, so they count as free quote.
    """
    quote_free = I80F48.from_int(open_orders.quote_free + open_orders.referrer_rebates_accrued)
    quote_locked = I80F48.from_int(open_orders.quote_locked)
    base_free = I80F48.from_int(open_orders.base_free)
    base_locked = I80F48.from_int(open_orders.base_locked)
    return quote_free, quote_locked, base_free, base_locked


def resolve_spot(
    base_net: I80F48, open_orders: OpenOrdersSnapshot, price: I80F48,
) -> tuple[I80F48, I80F48]:
    """Worst-case spot resolution. Returns ``(spot_base, quote_delta)``."""
    quote_free, quote_locked, base_free, base_locked = split_open_orders(open_orders)

    # Every resting bid fills: locked quote becomes base at the oracle price.
    if price.is_pos():
        bought = quote_locked / price
    else:
        if not quote_locked.is_zero():
            logger.debug("non-positive oracle price %s; locked quote not converted to base", price)
        bought = ZERO_I80F48
    bids_base_net = base_net + bought + base_free + base_locked
    # Every resting ask fills: locked base is sold away.
    asks_base_net = base_net + base_free

    if abs(bids_base_net) > abs(asks_base_net):
        return bids_base_net, quote_free
    return asks_base_net, base_locked * price + quote_free + quote_locked


# -- Perps ---------------------------------------------------------------------

def get_unsettled_funding(perp_account: PerpAccount, perp_cache: PerpMarketCache) -> I80F48:
    """Funding owed (positive) or earned (negative) since the last settlement."""
    base = I80F48.from_int(perp_account.base_position)
    if perp_account.base_position > 0:
        return (perp_cache.long_funding - perp_account.long_settled_funding) * base
    if perp_account.base_position < 0:
        return (perp_cache.short_funding - perp_account.short_settled_funding) * base
    return ZERO_I80F48


def get_quote_position(perp_account: PerpAccount, perp_cache: PerpMarketCache) -> I80F48:
    """Funding-adjusted quote position in native quote."""
    return perp_account.quote_position - get_unsettled_funding(perp_account, perp_cache)


def resolve_perp(
    perp_account: PerpAccount,
    market: PerpMarketInfo,
    perp_cache: PerpMarketCache,
    price: I80F48,
) -> tuple[I80F48, I80F48]:
    """Worst-case perp resolution. Returns ``(perp_base, quote_delta)`` in native units."""
    taker_quote = I80F48.from_int(perp_account.taker_quote * market.quote_lot_size)
    base_pos = I80F48.from_int(
        (perp_account.base_position + perp_account.taker_base) * market.base_lot_size
    )
    bids_quantity = I80F48.from_int(perp_account.bids_quantity * market.base_lot_size)
    asks_quantity = I80F48.from_int(perp_account.asks_quantity * market.base_lot_size)

    bids_base_net = base_pos + bids_quantity
    asks_base_net = base_pos - asks_quantity
    quote_pos = get_quote_position(perp_account, perp_cache) + taker_quote

    if abs(bids_base_net) > abs(asks_base_net):
        return bids_base_net, quote_pos - bids_quantity * price
    return asks_base_net, quote_pos + asks_quantity * price


# -- Entry point ---------------------------------------------------------------

def get_health_components(snapshot: Snapshot) -> HealthComponents:
    """Resolve the snapshot into worst-case `spot`, `perps` and `quote` (not weighted)."""
    registry, cache, account = snapshot.registry, snapshot.cache, snapshot.account
    n = registry.num_oracles

    spot: list[I80F48] = [ZERO_I80F48] * n
    perps: list[I80F48] = [ZERO_I80F48] * n
    quote = get_net(account, cache.bank_caches[QUOTE_INDEX], QUOTE_INDEX)

    for i in range(n):
        price = cache.prices[i]
        base_net = get_net(account, cache.bank_caches[i], i)

        open_orders = account.spot_open_orders[i]
        if account.in_margin_basket[i] and open_orders is not None:
            spot[i], quote_delta = resolve_spot(base_net, open_orders, price)
            quote = quote + quote_delta
        else:
            spot[i] = base_net

        market = registry.perp_markets[i]
        perp_account = account.perp_accounts[i]
        if market is not None and perp_account is not None:
            perps[i], quote_delta = resolve_perp(perp_account, market, cache.perp_caches[i], price)
            quote = quote + quote_delta

    return HealthComponents(spot=tuple(spot), perps=tuple(perps), quote=quote)
