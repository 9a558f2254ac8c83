"""`cross_margin`: deterministic cross-margin health engine.

Given one immutable `Snapshot` (market registry, oracle/bank/funding cache and
a margin account), this package predicts the solvency decisions of the
settlement layer:
- exact 80.48 fixed-point arithmetic (`I80F48`), no floats in any decision,
- worst-case resolution of resting spot orders and perp orders,
- Init / Maint risk-weighted health, health ratio, liquidation checks,
  liquidation price and margin / withdraw / borrow limits.

Public API:
- `get_health(snapshot, health_type) -> I80F48`
- `get_health_ratio(snapshot, health_type) -> I80F48`
- `is_liquidatable(snapshot) -> bool`
- `get_liquidation_price(snapshot, oracle_index) -> I80F48 | None`
- `get_market_margin_available`, `get_available_balance`,
  `get_max_leverage_for_market`, `get_max_with_borrow_for_token`
- `load_registry(path)` / `registry_from_dict(mapping)` for configuration
"""

from .components import get_health_components
from .config import default_registry_path, load_registry, registry_from_dict, weights_from_leverage
from .engine import (
    compute_value,
    get_available_balance,
    get_collateral_value_ui,
    get_equity_ui,
    get_health,
    get_health_ratio,
    get_health_unweighted,
    get_healths,
    get_leverage,
    get_liquidation_price,
    get_market_margin_available,
    get_max_leverage_for_market,
    get_max_with_borrow_for_token,
    get_perp_position_ui,
    has_any_spot_orders,
    is_liquidatable,
)
from .errors import FixedPointOverflowError, RegistryConfigError, SnapshotInvariantError
from .fixednum import HUNDRED_I80F48, ONE_I80F48, ZERO_I80F48, I80F48
from .invariants import check_all, check_or_raise
from .report import format_account
from .state import (
    make_account,
    make_cache,
    make_registry,
    snapshot_from_dict,
    snapshot_to_dict,
    with_account,
    with_price,
)
from .types import (
    MAX_PAIRS,
    MAX_TOKENS,
    QUOTE_INDEX,
    BankCache,
    HealthComponents,
    HealthType,
    MarginAccount,
    MarketCache,
    MarketKind,
    MarketRegistry,
    MaxLeverage,
    OpenOrdersSnapshot,
    PerpAccount,
    PerpMarketCache,
    PerpMarketInfo,
    Side,
    Snapshot,
    SpotMarketInfo,
    TokenInfo,
)

__all__ = [
    "get_health_components",
    "get_health",
    "get_health_unweighted",
    "get_healths",
    "get_health_ratio",
    "is_liquidatable",
    "get_liquidation_price",
    "get_market_margin_available",
    "get_available_balance",
    "get_max_leverage_for_market",
    "get_max_with_borrow_for_token",
    "compute_value",
    "get_leverage",
    "get_equity_ui",
    "get_collateral_value_ui",
    "get_perp_position_ui",
    "has_any_spot_orders",
    "default_registry_path",
    "load_registry",
    "registry_from_dict",
    "weights_from_leverage",
    "check_all",
    "check_or_raise",
    "format_account",
    "make_account",
    "make_cache",
    "make_registry",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "with_account",
    "with_price",
    "I80F48",
    "ZERO_I80F48",
    "ONE_I80F48",
    "HUNDRED_I80F48",
    "MAX_PAIRS",
    "MAX_TOKENS",
    "QUOTE_INDEX",
    "BankCache",
    "HealthComponents",
    "HealthType",
    "MarginAccount",
    "MarketCache",
    "MarketKind",
    "MarketRegistry",
    "MaxLeverage",
    "OpenOrdersSnapshot",
    "PerpAccount",
    "PerpMarketCache",
    "PerpMarketInfo",
    "Side",
    "Snapshot",
    "SpotMarketInfo",
    "TokenInfo",
    "FixedPointOverflowError",
    "RegistryConfigError",
    "SnapshotInvariantError",
]
