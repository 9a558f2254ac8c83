"""Data types for the cross-margin health engine.

All types are frozen dataclasses (immutable). Per-market arrays are tuples with
a fixed length; absent spot open-orders, perp accounts and market registrations
are explicit ``None`` slots, never sentinel objects.

Units/conventions:
- token balances (`deposits`, `borrows`) are interest-bearing shares,
- `*_index` fields convert shares to native token amounts,
- oracle prices are native quote per native base,
- perp `base_position`, `bids_quantity`, `asks_quantity`, `taker_base` are in
  base lots; `taker_quote` is in quote lots; `quote_position` is native quote.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, cast

from .fixednum import ONE_I80F48, ZERO_I80F48, I80F48

MAX_PAIRS: int = 15
MAX_TOKENS: int = MAX_PAIRS + 1
QUOTE_INDEX: int = MAX_TOKENS - 1


@unique
class HealthType(Enum):
    """Risk-weight regime. Init is strictly more conservative than Maint."""
    INIT = "Init"
    MAINT = "Maint"


@unique
class MarketKind(Enum):
    SPOT = "spot"
    PERP = "perp"


@unique
class Side(Enum):
    BUY = "buy"
    SELL = "sell"


# -- Validation helpers --------------------------------------------------------

def _require_fixed(name: str, value: object) -> None:
    if not isinstance(value, I80F48):
        raise TypeError(f"{name} must be an I80F48")


def _require_int(name: str, value: object) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_len(name: str, values: tuple, expected: int) -> None:
    if not isinstance(values, tuple):
        raise TypeError(f"{name} must be a tuple")
    if len(values) != expected:
        raise ValueError(f"{name} must have {expected} entries, got {len(values)}")


def _zeros(n: int) -> tuple[I80F48, ...]:
    return (ZERO_I80F48,) * n


# -- Market registry -----------------------------------------------------------

@dataclass(frozen=True)
class TokenInfo:
    decimals: int
    symbol: str = ""

    def __post_init__(self) -> None:
        _require_int("decimals", self.decimals)
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative: {self.decimals}")


@dataclass(frozen=True)
class SpotMarketInfo:
    maint_asset_weight: I80F48
    init_asset_weight: I80F48
    maint_liab_weight: I80F48
    init_liab_weight: I80F48

    def __post_init__(self) -> None:
        for name in ("maint_asset_weight", "init_asset_weight", "maint_liab_weight", "init_liab_weight"):
            _require_fixed(name, getattr(self, name))


@dataclass(frozen=True)
class PerpMarketInfo:
    maint_asset_weight: I80F48
    init_asset_weight: I80F48
    maint_liab_weight: I80F48
    init_liab_weight: I80F48
    base_lot_size: int
    quote_lot_size: int

    def __post_init__(self) -> None:
        for name in ("maint_asset_weight", "init_asset_weight", "maint_liab_weight", "init_liab_weight"):
            _require_fixed(name, getattr(self, name))
        _require_int("base_lot_size", self.base_lot_size)
        _require_int("quote_lot_size", self.quote_lot_size)
        if self.base_lot_size <= 0 or self.quote_lot_size <= 0:
            raise ValueError("lot sizes must be positive")


@dataclass(frozen=True)
class MarketRegistry:
    """Per-oracle market configuration plus the quote token at `QUOTE_INDEX`."""

    num_oracles: int
    tokens: tuple[Optional[TokenInfo], ...]
    spot_markets: tuple[Optional[SpotMarketInfo], ...] = (None,) * MAX_PAIRS
    perp_markets: tuple[Optional[PerpMarketInfo], ...] = (None,) * MAX_PAIRS

    def __post_init__(self) -> None:
        _require_int("num_oracles", self.num_oracles)
        if not (0 <= self.num_oracles <= MAX_PAIRS):
            raise ValueError(f"num_oracles must be in [0, {MAX_PAIRS}]: {self.num_oracles}")
        _require_len("tokens", self.tokens, MAX_TOKENS)
        _require_len("spot_markets", self.spot_markets, MAX_PAIRS)
        _require_len("perp_markets", self.perp_markets, MAX_PAIRS)
        if self.tokens[QUOTE_INDEX] is None:
            raise ValueError("quote token must be registered at QUOTE_INDEX")
        for i in range(self.num_oracles):
            if self.tokens[i] is None and (self.spot_markets[i] is not None or self.perp_markets[i] is not None):
                raise ValueError(f"market {i} is registered without a token")

    @property
    def quote_token(self) -> TokenInfo:
        return cast(TokenInfo, self.tokens[QUOTE_INDEX])

    def token_decimals(self, token_index: int) -> int:
        token = self.tokens[token_index]
        if token is None:
            raise KeyError(f"no token registered at index {token_index}")
        return token.decimals


# -- Collaborator caches -------------------------------------------------------

@dataclass(frozen=True)
class BankCache:
    """Interest indices for one token (shares -> native)."""

    deposit_index: I80F48 = ONE_I80F48
    borrow_index: I80F48 = ONE_I80F48

    def __post_init__(self) -> None:
        _require_fixed("deposit_index", self.deposit_index)
        _require_fixed("borrow_index", self.borrow_index)


@dataclass(frozen=True)
class PerpMarketCache:
    """Cumulative funding per base lot for one perp market."""

    long_funding: I80F48 = ZERO_I80F48
    short_funding: I80F48 = ZERO_I80F48

    def __post_init__(self) -> None:
        _require_fixed("long_funding", self.long_funding)
        _require_fixed("short_funding", self.short_funding)


@dataclass(frozen=True)
class MarketCache:
    """Oracle prices, bank indices and funding, all captured from one fetch."""

    prices: tuple[I80F48, ...] = _zeros(MAX_PAIRS)
    bank_caches: tuple[BankCache, ...] = (BankCache(),) * MAX_TOKENS
    perp_caches: tuple[PerpMarketCache, ...] = (PerpMarketCache(),) * MAX_PAIRS

    def __post_init__(self) -> None:
        _require_len("prices", self.prices, MAX_PAIRS)
        _require_len("bank_caches", self.bank_caches, MAX_TOKENS)
        _require_len("perp_caches", self.perp_caches, MAX_PAIRS)
        for i, price in enumerate(self.prices):
            _require_fixed(f"prices[{i}]", price)


# -- Account -------------------------------------------------------------------

@dataclass(frozen=True)
class OpenOrdersSnapshot:
    """Spot open-orders balances in native units."""

    base_free: int = 0
    base_locked: int = 0
    quote_free: int = 0
    quote_locked: int = 0
    referrer_rebates_accrued: int = 0

    def __post_init__(self) -> None:
        for name in ("base_free", "base_locked", "quote_free", "quote_locked", "referrer_rebates_accrued"):
            value = getattr(self, name)
            _require_int(name, value)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")

    @property
    def base_total(self) -> int:
        return self.base_free + self.base_locked

    @property
    def quote_total(self) -> int:
        return self.quote_free + self.quote_locked


@dataclass(frozen=True)
class PerpAccount:
    base_position: int = 0
    quote_position: I80F48 = ZERO_I80F48
    long_settled_funding: I80F48 = ZERO_I80F48
    short_settled_funding: I80F48 = ZERO_I80F48
    bids_quantity: int = 0
    asks_quantity: int = 0
    taker_base: int = 0
    taker_quote: int = 0

    def __post_init__(self) -> None:
        for name in ("base_position", "bids_quantity", "asks_quantity", "taker_base", "taker_quote"):
            _require_int(name, getattr(self, name))
        for name in ("quote_position", "long_settled_funding", "short_settled_funding"):
            _require_fixed(name, getattr(self, name))
        if self.bids_quantity < 0 or self.asks_quantity < 0:
            raise ValueError("resting order quantities must be non-negative")

    def is_empty(self) -> bool:
        return (
            self.base_position == 0
            and self.quote_position.is_zero()
            and self.bids_quantity == 0
            and self.asks_quantity == 0
            and self.taker_base == 0
            and self.taker_quote == 0
        )


@dataclass(frozen=True)
class MarginAccount:
    deposits: tuple[I80F48, ...] = _zeros(MAX_TOKENS)
    borrows: tuple[I80F48, ...] = _zeros(MAX_TOKENS)
    in_margin_basket: tuple[bool, ...] = (False,) * MAX_PAIRS
    spot_open_orders: tuple[Optional[OpenOrdersSnapshot], ...] = (None,) * MAX_PAIRS
    perp_accounts: tuple[Optional[PerpAccount], ...] = (None,) * MAX_PAIRS
    being_liquidated: bool = False
    is_bankrupt: bool = False
    name: str = ""

    def __post_init__(self) -> None:
        _require_len("deposits", self.deposits, MAX_TOKENS)
        _require_len("borrows", self.borrows, MAX_TOKENS)
        _require_len("in_margin_basket", self.in_margin_basket, MAX_PAIRS)
        _require_len("spot_open_orders", self.spot_open_orders, MAX_PAIRS)
        _require_len("perp_accounts", self.perp_accounts, MAX_PAIRS)
        for i in range(MAX_TOKENS):
            _require_fixed(f"deposits[{i}]", self.deposits[i])
            _require_fixed(f"borrows[{i}]", self.borrows[i])
        if not isinstance(self.being_liquidated, bool) or not isinstance(self.is_bankrupt, bool):
            raise TypeError("being_liquidated and is_bankrupt must be bools")


@dataclass(frozen=True)
class Snapshot:
    """One atomic, immutable input: registry + cache + account from a single fetch."""

    registry: MarketRegistry
    cache: MarketCache
    account: MarginAccount


# -- Results -------------------------------------------------------------------

@dataclass(frozen=True)
class HealthComponents:
    """Worst-case per-market signed base quantities plus net quote (native units)."""

    spot: tuple[I80F48, ...]
    perps: tuple[I80F48, ...]
    quote: I80F48


@dataclass(frozen=True)
class MarketWeights:
    spot_asset_weight: I80F48
    spot_liab_weight: I80F48
    perp_asset_weight: I80F48
    perp_liab_weight: I80F48


@dataclass(frozen=True)
class MaxLeverage:
    """Result of ``get_max_leverage_for_market()`` in UI units."""

    max: I80F48
    ui_deposit_val: I80F48 = ZERO_I80F48
    ui_borrow_val: I80F48 = ZERO_I80F48
    deposits: I80F48 = ZERO_I80F48
    borrows: I80F48 = ZERO_I80F48
