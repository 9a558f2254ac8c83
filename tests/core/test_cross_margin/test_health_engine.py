"""Tests for src/core/cross_margin/engine.py: solvency queries and limits."""

import logging

import pytest

from src.core.cross_margin import (
    HUNDRED_I80F48,
    ONE_I80F48,
    QUOTE_INDEX,
    ZERO_I80F48,
    HealthType,
    I80F48,
    MarketKind,
    OpenOrdersSnapshot,
    PerpAccount,
    PerpMarketInfo,
    Side,
    Snapshot,
    SpotMarketInfo,
    TokenInfo,
    compute_value,
    get_available_balance,
    get_collateral_value_ui,
    get_equity_ui,
    get_health,
    get_health_ratio,
    get_leverage,
    get_liquidation_price,
    get_market_margin_available,
    get_max_leverage_for_market,
    get_max_with_borrow_for_token,
    get_perp_position_ui,
    has_any_spot_orders,
    is_liquidatable,
    make_account,
    make_cache,
    make_registry,
    with_account,
    with_price,
)
from src.core.cross_margin.valuation import get_assets_val, get_liabs_val, get_native_liabs_val


def fx(value) -> I80F48:
    return I80F48.from_str(str(value))


EPS = fx("1e-9")

SPOT = SpotMarketInfo(
    maint_asset_weight=fx("0.875"),
    init_asset_weight=fx("0.75"),
    maint_liab_weight=fx("1.125"),
    init_liab_weight=fx("1.25"),
)
PERP = PerpMarketInfo(
    maint_asset_weight=fx("0.9375"),
    init_asset_weight=fx("0.875"),
    maint_liab_weight=fx("1.0625"),
    init_liab_weight=fx("1.125"),
    base_lot_size=1,
    quote_lot_size=1,
)


def _snapshot(
    *,
    price="10",
    decimals: int = 0,
    quote_decimals: int = 0,
    spot=SPOT,
    perp=PERP,
    **account_kwargs,
) -> Snapshot:
    """Helper: one BTC market at oracle 0; decimals default to 0 so UI == native."""
    registry = make_registry(
        1,
        quote=TokenInfo(quote_decimals, "USDC"),
        tokens={0: TokenInfo(decimals, "BTC")},
        spot_markets={0: spot} if spot is not None else None,
        perp_markets={0: perp} if perp is not None else None,
    )
    cache = make_cache(prices={0: fx(price)})
    return Snapshot(registry, cache, make_account(**account_kwargs))


def _borrowed_base(quote: int, **kwargs) -> Snapshot:
    """Quote deposit plus a 10 BTC borrow at price 10 (Maint -112.5, Init -125)."""
    return _snapshot(deposits={QUOTE_INDEX: fx(quote)}, borrows={0: fx(10)}, **kwargs)


class TestZeroAccount:
    def test_zero_health(self):
        s = _snapshot()
        assert get_health(s, HealthType.INIT) == ZERO_I80F48
        assert get_health(s, HealthType.MAINT) == ZERO_I80F48

    def test_ratio_is_100(self):
        assert get_health_ratio(_snapshot(), HealthType.MAINT) == HUNDRED_I80F48

    def test_not_liquidatable(self):
        assert is_liquidatable(_snapshot()) is False


class TestIsLiquidatable:
    def test_maint_negative(self):
        s = _borrowed_base(100)
        assert get_health(s, HealthType.MAINT).is_neg()
        assert is_liquidatable(s) is True

    def test_only_init_negative_not_yet_liquidating(self):
        s = _borrowed_base(120)
        assert get_health(s, HealthType.MAINT) == fx("7.5")
        assert get_health(s, HealthType.INIT) == fx(-5)
        assert is_liquidatable(s) is False

    def test_hysteresis_keeps_liquidation_running(self):
        assert is_liquidatable(_borrowed_base(120, being_liquidated=True)) is True

    def test_being_liquidated_and_maint_negative(self):
        assert is_liquidatable(_borrowed_base(100, being_liquidated=True)) is True

    def test_being_liquidated_but_init_healthy(self):
        assert is_liquidatable(_borrowed_base(200, being_liquidated=True)) is False

    def test_healthy(self):
        assert is_liquidatable(_borrowed_base(200)) is False

    def test_more_borrow_lowers_health(self):
        s = _borrowed_base(200)
        worse = with_account(s, borrows=tuple(
            fx(11) if i == 0 else b for i, b in enumerate(s.account.borrows)
        ))
        for health_type in HealthType:
            assert get_health(worse, health_type) < get_health(s, health_type)


class TestLiquidationPrice:
    def test_short_round_trip(self):
        s = _snapshot(price="50", deposits={QUOTE_INDEX: fx(1000)}, borrows={0: fx(10)})
        assert get_health(s, HealthType.MAINT) == fx("437.5")
        liq = get_liquidation_price(s, 0)
        assert liq is not None and liq > fx(50)
        assert abs(get_health(with_price(s, 0, liq), HealthType.MAINT)) <= EPS

    def test_long_round_trip(self):
        s = _snapshot(price="150", deposits={0: fx(10)}, borrows={QUOTE_INDEX: fx(1000)})
        assert get_health(s, HealthType.MAINT) == fx("312.5")
        liq = get_liquidation_price(s, 0)
        assert liq is not None and ZERO_I80F48 < liq < fx(150)
        assert abs(get_health(with_price(s, 0, liq), HealthType.MAINT)) <= EPS

    def test_perp_round_trip(self):
        s = _snapshot(
            price="40",
            deposits={QUOTE_INDEX: fx(100)},
            perp_accounts={0: PerpAccount(base_position=-5)},
        )
        liq = get_liquidation_price(s, 0)
        assert liq is not None
        assert abs(get_health(with_price(s, 0, liq), HealthType.MAINT)) <= EPS

    def test_scaled_by_decimals(self):
        kwargs = dict(price="50", deposits={QUOTE_INDEX: fx(1000)}, borrows={0: fx(10)})
        native = get_liquidation_price(_snapshot(**kwargs), 0)
        scaled = get_liquidation_price(_snapshot(decimals=9, quote_decimals=6, **kwargs), 0)
        assert scaled == native * fx(1000)

    def test_no_exposure(self):
        assert get_liquidation_price(_snapshot(deposits={QUOTE_INDEX: fx(10)}), 0) is None

    def test_negative_price(self):
        # Short BTC while already in quote debt: no positive price clears the debt.
        s = _snapshot(borrows={QUOTE_INDEX: fx(100), 0: fx(1)})
        assert get_liquidation_price(s, 0) is None

    def test_index_out_of_range(self):
        with pytest.raises(ValueError):
            get_liquidation_price(_snapshot(), 1)


class TestMarketMarginAvailable:
    def test_no_health(self):
        s = _borrowed_base(100)
        assert get_market_margin_available(s, 0, MarketKind.SPOT) == ZERO_I80F48
        assert get_market_margin_available(_snapshot(), 0, MarketKind.PERP) == ZERO_I80F48

    def test_spot(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(100)})
        assert get_market_margin_available(s, 0, MarketKind.SPOT) == fx(400)

    def test_perp(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(100)})
        assert get_market_margin_available(s, 0, MarketKind.PERP) == fx(800)

    def test_unit_asset_weight_returns_health(self, caplog):
        spot = SpotMarketInfo(ONE_I80F48, ONE_I80F48, ONE_I80F48, ONE_I80F48)
        s = _snapshot(spot=spot, deposits={QUOTE_INDEX: fx(100)})
        with caplog.at_level(logging.WARNING, logger="src.core.cross_margin.engine"):
            assert get_market_margin_available(s, 0, MarketKind.SPOT) == fx(100)
        assert "asset weight" in caplog.text


class TestAvailableBalance:
    def test_quote_limited_by_net(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(100)})
        assert get_available_balance(s, QUOTE_INDEX) == fx(100)

    def test_quote_limited_by_health(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(100)}, borrows={0: fx(4)})
        assert get_available_balance(s, QUOTE_INDEX) == fx(50)

    def test_quote_never_negative(self):
        assert get_available_balance(_borrowed_base(100), QUOTE_INDEX) == ZERO_I80F48

    def test_token_full_balance(self):
        s = _snapshot(deposits={0: fx(10)})
        assert get_available_balance(s, 0) == fx(10)

    def test_token_limited_by_health(self):
        s = _snapshot(deposits={0: fx(10)}, borrows={QUOTE_INDEX: fx(50)})
        available = get_available_balance(s, 0)
        assert abs(available - fx(25) / fx(7.5)) <= EPS
        assert available < fx(10)

    def test_token_without_collateral_value(self):
        spot = SpotMarketInfo(ZERO_I80F48, ZERO_I80F48, ONE_I80F48, ONE_I80F48)
        s = _snapshot(spot=spot, deposits={0: fx(10)})
        assert get_available_balance(s, 0) == fx(10)

    def test_token_net_borrow(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(500)}, borrows={0: fx(2)})
        assert get_available_balance(s, 0) == ZERO_I80F48

    @pytest.mark.parametrize("index", [1, 16, 99])
    def test_index_out_of_range(self, index):
        with pytest.raises(ValueError):
            get_available_balance(_snapshot(deposits={QUOTE_INDEX: fx(100)}), index)


class TestMaxLeverage:
    def test_spot_buy(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)})
        result = get_max_leverage_for_market(s, 0, MarketKind.SPOT, Side.BUY, fx(10))
        assert result.max == fx(4000)
        assert result.ui_deposit_val == ZERO_I80F48

    def test_spot_sell(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)})
        result = get_max_leverage_for_market(s, 0, MarketKind.SPOT, Side.SELL, fx(10))
        assert result.max == fx(4000)

    def test_spot_sell_closes_existing_deposit(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000), 0: fx(10)})
        result = get_max_leverage_for_market(s, 0, MarketKind.SPOT, Side.SELL, fx(10))
        health = get_health(s, HealthType.INIT)  # 1075
        assert health == fx(1075)
        assert result.deposits == fx(10)
        assert result.ui_deposit_val == fx(100)
        assert result.max == (health + fx(25)) / fx("0.25") + fx(100)

    def test_perp_sell_with_long(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)}, perp_accounts={0: PerpAccount(base_position=2)})
        result = get_max_leverage_for_market(s, 0, MarketKind.PERP, Side.SELL, fx(10))
        health = get_health(s, HealthType.INIT)
        assert result.deposits == fx(2)
        assert result.borrows == ZERO_I80F48
        assert result.max == (health + fx(20) * fx("0.125")) / fx("0.125") + fx(20)

    def test_perp_buy_with_short(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)}, perp_accounts={0: PerpAccount(base_position=-2)})
        result = get_max_leverage_for_market(s, 0, MarketKind.PERP, Side.BUY, fx(10))
        assert result.borrows == fx(2)
        assert result.ui_borrow_val == fx(20)

    def test_degenerate_weights_return_health(self):
        spot = SpotMarketInfo(ONE_I80F48, ONE_I80F48, ONE_I80F48, ONE_I80F48)
        s = _snapshot(spot=spot, deposits={QUOTE_INDEX: fx(1000)})
        for side in Side:
            assert get_max_leverage_for_market(s, 0, MarketKind.SPOT, side, fx(10)).max == fx(1000)

    def test_ui_units(self):
        s = _snapshot(quote_decimals=6, decimals=6, deposits={QUOTE_INDEX: fx(1_000_000_000)})
        result = get_max_leverage_for_market(s, 0, MarketKind.SPOT, Side.BUY, fx(10))
        assert result.max == fx(4000)

    def test_unregistered_market(self):
        with pytest.raises(ValueError):
            get_max_leverage_for_market(_snapshot(perp=None), 0, MarketKind.PERP, Side.BUY, fx(10))


class TestMaxWithBorrow:
    def test_quote_all_deposits(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)})
        assert get_max_with_borrow_for_token(s, QUOTE_INDEX) == ZERO_I80F48

    def test_token(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)})
        assert get_max_with_borrow_for_token(s, 0) == fx(80)  # 1000 / (10 * 1.25)

    def test_token_after_pulling_deposits(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000), 0: fx(10)})
        assert get_max_with_borrow_for_token(s, 0) == fx(80)

    def test_zero_price(self):
        s = _snapshot(price="0", deposits={QUOTE_INDEX: fx(1000)})
        assert get_max_with_borrow_for_token(s, 0) == fx(1000)

    @pytest.mark.parametrize("index", [1, 16, 99])
    def test_index_out_of_range(self, index):
        with pytest.raises(ValueError):
            get_max_with_borrow_for_token(_snapshot(), index)


class TestDisplayValues:
    def test_value_and_leverage(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000), 0: fx(10)})
        assert compute_value(s) == fx(1100)
        assert get_equity_ui(s) == fx(1100)
        assert get_leverage(s) == ZERO_I80F48

    def test_leverage_with_liabs(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(1000)}, borrows={0: fx(5)})
        assert compute_value(s) == fx(950)
        assert get_leverage(s) == fx(50) / fx(950)

    def test_leverage_without_assets(self):
        assert get_leverage(_snapshot()) == ZERO_I80F48

    def test_leverage_zero_equity(self):
        s = _snapshot(deposits={QUOTE_INDEX: fx(50)}, borrows={0: fx(5)})
        assert get_leverage(s) is None

    def test_value_includes_open_orders(self):
        s = _snapshot(spot_open_orders={0: OpenOrdersSnapshot(base_locked=2, quote_free=5)})
        assert compute_value(s) == fx(25)

    def test_collateral_value_ui(self):
        s = _snapshot(quote_decimals=2, decimals=2, deposits={QUOTE_INDEX: fx(10_000)})
        assert get_collateral_value_ui(s) == fx(100)

    def test_perp_position_ui(self):
        perp = PerpMarketInfo(
            PERP.maint_asset_weight, PERP.init_asset_weight,
            PERP.maint_liab_weight, PERP.init_liab_weight,
            base_lot_size=100, quote_lot_size=1,
        )
        s = _snapshot(decimals=3, perp=perp, perp_accounts={0: PerpAccount(base_position=-5)})
        assert get_perp_position_ui(s, 0) == fx("-0.5")
        assert get_perp_position_ui(_snapshot(), 0) == ZERO_I80F48

    def test_has_any_spot_orders(self):
        assert has_any_spot_orders(_snapshot()) is False
        assert has_any_spot_orders(_snapshot(spot_open_orders={0: OpenOrdersSnapshot()})) is True

    @staticmethod
    def _mixed(**kwargs) -> Snapshot:
        """4 BTC deposited, 1 BTC borrowed, 1 USDC deposited at price 10; 6 decimals each side."""
        return _snapshot(
            decimals=6,
            quote_decimals=6,
            deposits={0: fx(4_000_000), QUOTE_INDEX: fx(1_000_000)},
            borrows={0: fx(1_000_000)},
            **kwargs,
        )

    @pytest.mark.parametrize(
        "health_type, assets, liabs, native_liabs",
        [
            (None, "41", "10", "10000000"),
            (HealthType.INIT, "31", "12.5", "12500000"),
            (HealthType.MAINT, "36", "11.25", "11250000"),
        ],
    )
    def test_weighted_assets_and_liabs(self, health_type, assets, liabs, native_liabs):
        s = self._mixed()
        assert get_assets_val(s, health_type) == fx(assets)
        assert get_liabs_val(s, health_type) == fx(liabs)
        assert get_native_liabs_val(s, health_type) == fx(native_liabs)

    def test_unweighted_by_default(self):
        s = self._mixed()
        assert get_assets_val(s) == get_assets_val(s, None)
        assert compute_value(s) == fx(31)

    def test_unregistered_spot_market_weights(self):
        # No spot registration: deposits carry no collateral value, debt is priced at par.
        s = self._mixed(spot=None)
        for health_type in HealthType:
            assert get_assets_val(s, health_type) == fx(1)
            assert get_liabs_val(s, health_type) == fx(10)
            assert get_native_liabs_val(s, health_type) == fx(10_000_000)
        assert get_assets_val(s) == fx(41)

    def test_native_liabs_include_perp_short(self):
        s = _snapshot(perp_accounts={0: PerpAccount(base_position=-3, quote_position=fx(-5))})
        # 3 lots short at 10 plus 5 of negative quote.
        assert get_native_liabs_val(s) == fx(35)
        assert get_native_liabs_val(s, HealthType.INIT) == fx(35)
