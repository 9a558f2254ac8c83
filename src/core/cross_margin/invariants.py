"""Invariant checkers for market registries and snapshots.

Each function returns True when the invariant holds. `check_registry()` and
`check_all()` return the list of violated invariant IDs (empty = all pass).

The evaluator never enforces these: a degenerate registry (e.g. an asset weight
>= 1) is still answered with sentinels. Strict config loading and callers that
want fail-closed behavior use them. The quote-token and market-token checks
are also enforced by `MarketRegistry` at construction, since unit conversion
needs every oracle market's decimals.
"""

from __future__ import annotations

from typing import Callable, Iterator, Union

from .errors import SnapshotInvariantError
from .fixednum import ONE_I80F48, ZERO_I80F48
from .types import (
    MAX_PAIRS,
    QUOTE_INDEX,
    MarketRegistry,
    PerpMarketInfo,
    Snapshot,
    SpotMarketInfo,
)

MarketInfo = Union[SpotMarketInfo, PerpMarketInfo]


def _registered(r: MarketRegistry) -> Iterator[tuple[int, MarketInfo]]:
    for i in range(MAX_PAIRS):
        for info in (r.spot_markets[i], r.perp_markets[i]):
            if info is not None:
                yield i, info


# -- Registry ------------------------------------------------------------------

def inv_num_oracles_bounded(r: MarketRegistry) -> bool:
    return 0 <= r.num_oracles <= MAX_PAIRS


def inv_quote_token_present(r: MarketRegistry) -> bool:
    return r.tokens[QUOTE_INDEX] is not None


def inv_markets_have_tokens(r: MarketRegistry) -> bool:
    return all(r.tokens[i] is not None for i, _ in _registered(r) if i < r.num_oracles)


def inv_no_markets_beyond_oracles(r: MarketRegistry) -> bool:
    return all(i < r.num_oracles for i, _ in _registered(r))


def inv_weights_bounded(r: MarketRegistry) -> bool:
    for _, m in _registered(r):
        for asset in (m.maint_asset_weight, m.init_asset_weight):
            if not (ZERO_I80F48 <= asset <= ONE_I80F48):
                return False
        for liab in (m.maint_liab_weight, m.init_liab_weight):
            if liab < ONE_I80F48:
                return False
    return True


def inv_init_stricter_than_maint(r: MarketRegistry) -> bool:
    return all(
        m.init_asset_weight <= m.maint_asset_weight and m.init_liab_weight >= m.maint_liab_weight
        for _, m in _registered(r)
    )


# -- Snapshot ------------------------------------------------------------------

def inv_prices_nonneg(s: Snapshot) -> bool:
    return all(not s.cache.prices[i].is_neg() for i in range(s.registry.num_oracles))


def inv_bank_indices_positive(s: Snapshot) -> bool:
    return all(b.deposit_index.is_pos() and b.borrow_index.is_pos() for b in s.cache.bank_caches)


def inv_balances_nonneg(s: Snapshot) -> bool:
    a = s.account
    return not any(x.is_neg() for x in a.deposits + a.borrows)


def inv_perp_exposure_registered(s: Snapshot) -> bool:
    for i, perp_account in enumerate(s.account.perp_accounts):
        if perp_account is None or perp_account.is_empty():
            continue
        if i >= s.registry.num_oracles or s.registry.perp_markets[i] is None:
            return False
    return True


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

REGISTRY_INVARIANTS: dict[str, Callable[[MarketRegistry], bool]] = {
    "inv_num_oracles_bounded": inv_num_oracles_bounded,
    "inv_quote_token_present": inv_quote_token_present,
    "inv_markets_have_tokens": inv_markets_have_tokens,
    "inv_no_markets_beyond_oracles": inv_no_markets_beyond_oracles,
    "inv_weights_bounded": inv_weights_bounded,
    "inv_init_stricter_than_maint": inv_init_stricter_than_maint,
}

SNAPSHOT_INVARIANTS: dict[str, Callable[[Snapshot], bool]] = {
    "inv_prices_nonneg": inv_prices_nonneg,
    "inv_bank_indices_positive": inv_bank_indices_positive,
    "inv_balances_nonneg": inv_balances_nonneg,
    "inv_perp_exposure_registered": inv_perp_exposure_registered,
}


def check_registry(registry: MarketRegistry) -> list[str]:
    """Return list of violated registry invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in REGISTRY_INVARIANTS.items()
        if not check_fn(registry)
    ]


def check_all(snapshot: Snapshot) -> list[str]:
    """Return list of violated registry and snapshot invariant IDs."""
    return check_registry(snapshot.registry) + [
        inv_id
        for inv_id, check_fn in SNAPSHOT_INVARIANTS.items()
        if not check_fn(snapshot)
    ]


def check_or_raise(snapshot: Snapshot) -> Snapshot:
    """Return `snapshot` unchanged, or raise `SnapshotInvariantError`."""
    violations = check_all(snapshot)
    if violations:
        raise SnapshotInvariantError(violations)
    return snapshot
