"""Market registry configuration.

A registry is loaded from YAML (``yaml.safe_load``) or from an equivalent plain
mapping. Each market's risk weights are given either explicitly or as a pair of
leverages, converted with ``weights_from_leverage()``.

Example::

    quote: {symbol: USDC, decimals: 6}
    markets:
      - index: 0
        symbol: BTC
        decimals: 6
        spot: {maint_leverage: 10, init_leverage: 5}
        perp: {maint_leverage: 20, init_leverage: 10, base_lot_size: 100, quote_lot_size: 10}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import RegistryConfigError
from .fixednum import ONE_I80F48, I80F48
from .invariants import check_registry
from .state import make_registry
from .types import MAX_PAIRS, MarketRegistry, PerpMarketInfo, SpotMarketInfo, TokenInfo

logger = logging.getLogger(__name__)

_TOP_KEYS = {"num_oracles", "quote", "markets"}
_TOKEN_KEYS = {"symbol", "decimals"}
_MARKET_KEYS = {"index", "symbol", "decimals", "spot", "perp"}
_WEIGHT_KEYS = ("maint_asset_weight", "init_asset_weight", "maint_liab_weight", "init_liab_weight")
_LEVERAGE_KEYS = ("maint_leverage", "init_leverage")
_LOT_KEYS = ("base_lot_size", "quote_lot_size")


def weights_from_leverage(leverage: Any) -> tuple[I80F48, I80F48]:
    """``(asset_weight, liab_weight) = ((L - 1) / L, (L + 1) / L)``."""
    lev = I80F48.from_decimal(leverage)
    if not lev.is_pos():
        raise RegistryConfigError(f"leverage must be positive: {leverage}")
    return (lev - ONE_I80F48) / lev, (lev + ONE_I80F48) / lev


def _reject_unknown(section: Mapping[str, Any], allowed: set[str] | tuple[str, ...], where: str) -> None:
    extra = set(section) - set(allowed)
    if extra:
        raise RegistryConfigError(f"{where}: unknown keys {sorted(extra)}")


def _parse_weights(section: Mapping[str, Any], where: str) -> dict[str, I80F48]:
    has_weights = any(k in section for k in _WEIGHT_KEYS)
    has_leverage = any(k in section for k in _LEVERAGE_KEYS)
    if has_weights == has_leverage:
        raise RegistryConfigError(f"{where}: give either all four weights or both leverages")

    if has_leverage:
        missing = [k for k in _LEVERAGE_KEYS if k not in section]
        if missing:
            raise RegistryConfigError(f"{where}: missing {missing}")
        maint_asset, maint_liab = weights_from_leverage(section["maint_leverage"])
        init_asset, init_liab = weights_from_leverage(section["init_leverage"])
        return {
            "maint_asset_weight": maint_asset,
            "init_asset_weight": init_asset,
            "maint_liab_weight": maint_liab,
            "init_liab_weight": init_liab,
        }

    missing = [k for k in _WEIGHT_KEYS if k not in section]
    if missing:
        raise RegistryConfigError(f"{where}: missing {missing}")
    return {k: I80F48.from_decimal(section[k]) for k in _WEIGHT_KEYS}


def _parse_token(section: Any, where: str) -> TokenInfo:
    if not isinstance(section, Mapping):
        raise RegistryConfigError(f"{where} must be a mapping")
    _reject_unknown(section, _TOKEN_KEYS, where)
    if "decimals" not in section:
        raise RegistryConfigError(f"{where}: missing decimals")
    return TokenInfo(decimals=section["decimals"], symbol=str(section.get("symbol", "")))


def registry_from_dict(config: Mapping[str, Any], *, strict: bool = True) -> MarketRegistry:
    """Build a `MarketRegistry` from a config mapping.

    With ``strict=True`` risk-weight invariant violations raise
    `RegistryConfigError`; otherwise they are logged and the registry is kept.
    """
    if not isinstance(config, Mapping):
        raise RegistryConfigError("registry config must be a mapping")
    _reject_unknown(config, _TOP_KEYS, "registry")
    if "quote" not in config:
        raise RegistryConfigError("registry: missing quote token")

    tokens: dict[int, TokenInfo] = {}
    spot_markets: dict[int, SpotMarketInfo] = {}
    perp_markets: dict[int, PerpMarketInfo] = {}
    try:
        quote = _parse_token(config["quote"], "quote")
        for entry in config.get("markets") or []:
            if not isinstance(entry, Mapping):
                raise RegistryConfigError("markets entries must be mappings")
            index = entry.get("index")
            where = f"markets[{index}]"
            if not isinstance(index, int) or isinstance(index, bool) or not (0 <= index < MAX_PAIRS):
                raise RegistryConfigError(f"{where}: index must be an int in [0, {MAX_PAIRS})")
            if index in tokens:
                raise RegistryConfigError(f"{where}: duplicate index")
            _reject_unknown(entry, _MARKET_KEYS, where)
            tokens[index] = _parse_token(
                {k: entry[k] for k in _TOKEN_KEYS if k in entry}, where,
            )

            if entry.get("spot") is not None:
                spot = entry["spot"]
                _reject_unknown(spot, _WEIGHT_KEYS + _LEVERAGE_KEYS, f"{where}.spot")
                spot_markets[index] = SpotMarketInfo(**_parse_weights(spot, f"{where}.spot"))

            if entry.get("perp") is not None:
                perp = entry["perp"]
                _reject_unknown(perp, _WEIGHT_KEYS + _LEVERAGE_KEYS + _LOT_KEYS, f"{where}.perp")
                missing = [k for k in _LOT_KEYS if k not in perp]
                if missing:
                    raise RegistryConfigError(f"{where}.perp: missing {missing}")
                weights = _parse_weights(
                    {k: v for k, v in perp.items() if k not in _LOT_KEYS}, f"{where}.perp",
                )
                perp_markets[index] = PerpMarketInfo(
                    base_lot_size=perp["base_lot_size"],
                    quote_lot_size=perp["quote_lot_size"],
                    **weights,
                )

        num_oracles = config.get("num_oracles", max(tokens, default=-1) + 1)
        registry = make_registry(
            num_oracles,
            quote=quote,
            tokens=tokens,
            spot_markets=spot_markets,
            perp_markets=perp_markets,
        )
    except RegistryConfigError:
        raise
    except (TypeError, ValueError) as e:
        raise RegistryConfigError(str(e)) from e

    violations = check_registry(registry)
    if violations:
        if strict:
            raise RegistryConfigError(f"registry invariant violations: {', '.join(violations)}")
        logger.warning("registry invariant violations (non-strict): %s", ", ".join(violations))

    logger.info(
        "loaded market registry: %d oracles, %d spot, %d perp markets",
        registry.num_oracles, len(spot_markets), len(perp_markets),
    )
    return registry


def default_registry_path() -> Path:
    # src/core/cross_margin/config.py -> cross_margin/data/markets.yaml
    return Path(__file__).resolve().parent / "data" / "markets.yaml"


def load_registry(path: str | Path | None = None, *, strict: bool = True) -> MarketRegistry:
    """Load a `MarketRegistry` from a YAML file (the bundled default when `path` is None)."""
    path = default_registry_path() if path is None else Path(path)
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(obj, Mapping):
        raise RegistryConfigError(f"{path}: registry YAML must be a mapping")
    return registry_from_dict(obj, strict=strict)
