"""Human-readable account summary (display only)."""

from __future__ import annotations

from .components import get_net, get_quote_position, get_unsettled_funding
from .engine import compute_value, get_perp_position_ui
from .fixednum import ZERO_I80F48, I80F48
from .types import QUOTE_INDEX, Snapshot
from .valuation import native_to_ui


def _symbol(snapshot: Snapshot, index: int) -> str:
    token = snapshot.registry.tokens[index]
    if token is not None and token.symbol:
        return token.symbol
    return "QUOTE" if index == QUOTE_INDEX else f"#{index}"


def format_account(snapshot: Snapshot, places: int = 4) -> str:
    registry, cache, account = snapshot.registry, snapshot.cache, snapshot.account
    quote_decimals = registry.quote_token.decimals
    lines = [
        f"MarginAccount {account.name}".rstrip(),
        f"Equity: {compute_value(snapshot).to_fixed(places)}",
        "Token: Net Balance / Base In Orders / Quote In Orders",
    ]

    for i in list(range(registry.num_oracles)) + [QUOTE_INDEX]:
        token = registry.tokens[i]
        if token is None:
            continue
        base_in_orders = quote_in_orders = ZERO_I80F48
        open_orders = account.spot_open_orders[i] if i != QUOTE_INDEX else None
        if open_orders is not None:
            base_in_orders = native_to_ui(I80F48.from_int(open_orders.base_total), token.decimals)
            quote_in_orders = native_to_ui(
                I80F48.from_int(open_orders.quote_total + open_orders.referrer_rebates_accrued),
                quote_decimals,
            )
        net = native_to_ui(get_net(account, cache.bank_caches[i], i), token.decimals)
        if net.is_zero() and base_in_orders.is_zero() and quote_in_orders.is_zero():
            continue
        lines.append(
            f"{_symbol(snapshot, i)}: {net.to_fixed(places)} / "
            f"{base_in_orders.to_fixed(places)} / {quote_in_orders.to_fixed(places)}"
        )

    lines.append("Perps:")
    lines.append("Market: Base Pos / Quote Pos / Unsettled Funding")
    for i in range(registry.num_oracles):
        perp_account = account.perp_accounts[i]
        if registry.perp_markets[i] is None or perp_account is None:
            continue
        perp_cache = cache.perp_caches[i]
        quote_pos = native_to_ui(get_quote_position(perp_account, perp_cache), quote_decimals)
        funding = native_to_ui(get_unsettled_funding(perp_account, perp_cache), quote_decimals)
        lines.append(
            f"{_symbol(snapshot, i)}-PERP: {get_perp_position_ui(snapshot, i).to_fixed(places)} / "
            f"{quote_pos.to_fixed(places)} / {funding.to_fixed(places)}"
        )
    return "\n".join(lines)
