"""Snapshot construction and serialization.

Builders take sparse ``{index: value}`` mappings and zero-fill the fixed-size
per-market arrays, so callers never hand-pad tuples.

`snapshot_to_dict()` writes fixed-point values as their raw scaled integers
(decimal strings), so ``snapshot_from_dict(snapshot_to_dict(s)) == s`` holds
bit for bit.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass, replace
from typing import Any, Mapping, Optional, TypeVar

from .fixednum import ZERO_I80F48, I80F48
from .types import (
    MAX_PAIRS,
    MAX_TOKENS,
    QUOTE_INDEX,
    BankCache,
    MarginAccount,
    MarketCache,
    MarketRegistry,
    OpenOrdersSnapshot,
    PerpAccount,
    PerpMarketCache,
    PerpMarketInfo,
    Snapshot,
    SpotMarketInfo,
    TokenInfo,
)

T = TypeVar("T")


def _fill(values: Optional[Mapping[int, T]], size: int, default: Any) -> tuple:
    out = [default] * size
    for index, value in (values or {}).items():
        if not (0 <= index < size):
            raise IndexError(f"index {index} out of range [0, {size})")
        out[index] = value
    return tuple(out)


# -- Builders ------------------------------------------------------------------

def make_registry(
    num_oracles: int,
    *,
    quote: TokenInfo = TokenInfo(decimals=6, symbol="USDC"),
    tokens: Optional[Mapping[int, TokenInfo]] = None,
    spot_markets: Optional[Mapping[int, SpotMarketInfo]] = None,
    perp_markets: Optional[Mapping[int, PerpMarketInfo]] = None,
) -> MarketRegistry:
    token_slots = list(_fill(tokens, MAX_TOKENS, None))
    token_slots[QUOTE_INDEX] = quote
    return MarketRegistry(
        num_oracles=num_oracles,
        tokens=tuple(token_slots),
        spot_markets=_fill(spot_markets, MAX_PAIRS, None),
        perp_markets=_fill(perp_markets, MAX_PAIRS, None),
    )


def make_cache(
    *,
    prices: Optional[Mapping[int, I80F48]] = None,
    bank_caches: Optional[Mapping[int, BankCache]] = None,
    perp_caches: Optional[Mapping[int, PerpMarketCache]] = None,
) -> MarketCache:
    return MarketCache(
        prices=_fill(prices, MAX_PAIRS, ZERO_I80F48),
        bank_caches=_fill(bank_caches, MAX_TOKENS, BankCache()),
        perp_caches=_fill(perp_caches, MAX_PAIRS, PerpMarketCache()),
    )


def make_account(
    *,
    deposits: Optional[Mapping[int, I80F48]] = None,
    borrows: Optional[Mapping[int, I80F48]] = None,
    spot_open_orders: Optional[Mapping[int, OpenOrdersSnapshot]] = None,
    in_margin_basket: Optional[Mapping[int, bool]] = None,
    perp_accounts: Optional[Mapping[int, PerpAccount]] = None,
    being_liquidated: bool = False,
    is_bankrupt: bool = False,
    name: str = "",
) -> MarginAccount:
    """Build an account; markets with open orders join the margin basket unless overridden."""
    basket = {index: True for index in (spot_open_orders or {})}
    basket.update(in_margin_basket or {})
    return MarginAccount(
        deposits=_fill(deposits, MAX_TOKENS, ZERO_I80F48),
        borrows=_fill(borrows, MAX_TOKENS, ZERO_I80F48),
        in_margin_basket=_fill(basket, MAX_PAIRS, False),
        spot_open_orders=_fill(spot_open_orders, MAX_PAIRS, None),
        perp_accounts=_fill(perp_accounts, MAX_PAIRS, None),
        being_liquidated=being_liquidated,
        is_bankrupt=is_bankrupt,
        name=name,
    )


def with_price(snapshot: Snapshot, index: int, price: I80F48) -> Snapshot:
    """Copy of `snapshot` with one oracle price replaced."""
    prices = list(snapshot.cache.prices)
    prices[index] = price
    return replace(snapshot, cache=replace(snapshot.cache, prices=tuple(prices)))


def with_account(snapshot: Snapshot, **changes: Any) -> Snapshot:
    return replace(snapshot, account=replace(snapshot.account, **changes))


# -- Serialization -------------------------------------------------------------

def _encode(value: Any) -> Any:
    if isinstance(value, I80F48):
        return str(value.data)
    if is_dataclass(value):
        return {f.name: _encode(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, tuple):
        return [_encode(v) for v in value]
    return value


def _decode_record(cls: type[T], d: Mapping[str, Any]) -> T:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        val = d[f.name]
        kwargs[f.name] = I80F48(int(val)) if f.type == "I80F48" else val
    return cls(**kwargs)


def _decode_slots(cls: type[T], items: list) -> tuple:
    return tuple(None if item is None else _decode_record(cls, item) for item in items)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return _encode(snapshot)


def snapshot_from_dict(d: Mapping[str, Any]) -> Snapshot:
    """Inverse of ``snapshot_to_dict()``. Raises KeyError on missing fields."""
    reg = d["registry"]
    registry = MarketRegistry(
        num_oracles=int(reg["num_oracles"]),
        tokens=_decode_slots(TokenInfo, reg["tokens"]),
        spot_markets=_decode_slots(SpotMarketInfo, reg["spot_markets"]),
        perp_markets=_decode_slots(PerpMarketInfo, reg["perp_markets"]),
    )

    c = d["cache"]
    cache = MarketCache(
        prices=tuple(I80F48(int(p)) for p in c["prices"]),
        bank_caches=_decode_slots(BankCache, c["bank_caches"]),
        perp_caches=_decode_slots(PerpMarketCache, c["perp_caches"]),
    )

    a = d["account"]
    account = MarginAccount(
        deposits=tuple(I80F48(int(x)) for x in a["deposits"]),
        borrows=tuple(I80F48(int(x)) for x in a["borrows"]),
        in_margin_basket=tuple(bool(x) for x in a["in_margin_basket"]),
        spot_open_orders=_decode_slots(OpenOrdersSnapshot, a["spot_open_orders"]),
        perp_accounts=_decode_slots(PerpAccount, a["perp_accounts"]),
        being_liquidated=bool(a["being_liquidated"]),
        is_bankrupt=bool(a["is_bankrupt"]),
        name=str(a["name"]),
    )
    return Snapshot(registry=registry, cache=cache, account=account)
