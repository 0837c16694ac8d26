"""Tests for canonical trade models."""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from tradenorm.models import (
    DividendInfo,
    DividendType,
    FeeInfo,
    FeeType,
    OptionInfo,
    OptionType,
    Trade,
    TradeType,
    sort_trades,
)

NY = ZoneInfo("America/New_York")


def _make_trade(**overrides) -> Trade:
    defaults = {
        "type": TradeType.STOCK_BUY,
        "ticker": "AAPL",
        "quantity": Decimal("100"),
        "price": Decimal("150.50"),
        "total_amount": Decimal("-15050.00"),
        "trade_date": datetime(2025, 1, 15, 9, 30, tzinfo=NY),
    }
    defaults.update(overrides)
    return Trade(**defaults)


def _make_option(**overrides) -> OptionInfo:
    defaults = {
        "underlying_ticker": "AAPL",
        "option_type": OptionType.CALL,
        "strike_price": Decimal("150"),
        "expiration_date": date(2025, 12, 19),
    }
    defaults.update(overrides)
    return OptionInfo(**defaults)


class TestTradeType:
    def test_buy_and_sell_sets(self):
        assert TradeType.STOCK_BUY.is_buy
        assert TradeType.OPTION_BUY_TO_CLOSE.is_buy
        assert TradeType.DIVIDEND_REINVEST.is_buy
        assert TradeType.STOCK_SELL.is_sell
        assert TradeType.SYMBOL_EXCHANGE_OUT.is_sell
        assert not TradeType.DIVIDEND.is_buy
        assert not TradeType.DIVIDEND.is_sell

    def test_sort_priority(self):
        assert TradeType.STOCK_BUY.sort_priority == 0
        assert TradeType.OPTION_SELL_TO_OPEN.sort_priority == 1
        assert TradeType.FEE.sort_priority == 2
        assert TradeType.DIVIDEND.sort_priority == 2

    def test_option_predicates(self):
        assert TradeType.OPTION_EXPIRATION.is_option
        assert not TradeType.STOCK_BUY.is_option
        assert TradeType.OPTION_SELL_TO_OPEN.opens_position
        assert TradeType.OPTION_BUY_TO_CLOSE.closes_position
        assert not TradeType.OPTION_BUY.opens_position

    def test_cash_transfer(self):
        assert TradeType.DEPOSIT.is_cash_transfer
        assert TradeType.WITHDRAW.is_cash_transfer
        assert not TradeType.INTEREST_INCOME.is_cash_transfer

    def test_every_type_has_display_name(self):
        for trade_type in TradeType:
            assert trade_type.display_name

    def test_str_value(self):
        assert TradeType("stock_buy") is TradeType.STOCK_BUY


class TestOptionInfo:
    def test_yahoo_symbol(self):
        assert _make_option().yahoo_symbol == "AAPL251219C00150000"

    def test_yahoo_symbol_fractional_strike_put(self):
        option = _make_option(
            underlying_ticker="LUMN",
            option_type=OptionType.PUT,
            strike_price=Decimal("5.50"),
            expiration_date=date(2026, 1, 16),
        )
        assert option.yahoo_symbol == "LUMN260116P00005500"

    def test_display_symbol_whole_strike(self):
        assert _make_option().display_symbol == "AAPL 12/19/25 $150 Call"

    def test_display_symbol_fractional_strike(self):
        option = _make_option(strike_price=Decimal("5.5"), option_type=OptionType.PUT)
        assert option.display_symbol == "AAPL 12/19/25 $5.50 Put"


class TestDividendInfo:
    def test_net_amount(self):
        info = DividendInfo(
            type=DividendType.QUALIFIED,
            gross_amount=Decimal("2.70"),
            tax_withheld=Decimal("0.81"),
        )
        assert info.net_amount == Decimal("1.89")
        assert info.has_tax_withheld

    def test_effective_tax_rate(self):
        info = DividendInfo(
            type=DividendType.ORDINARY,
            gross_amount=Decimal("10.00"),
            tax_withheld=Decimal("3.00"),
        )
        assert info.effective_tax_rate == Decimal("30")

    def test_effective_tax_rate_zero_gross(self):
        info = DividendInfo(type=DividendType.ORDINARY, gross_amount=Decimal("0"))
        assert info.effective_tax_rate == Decimal("0")
        assert not info.has_tax_withheld

    def test_rejects_negative_tax(self):
        with pytest.raises(ValidationError):
            DividendInfo(
                type=DividendType.ORDINARY,
                gross_amount=Decimal("1"),
                tax_withheld=Decimal("-0.10"),
            )


class TestFeeInfo:
    def test_display_name(self):
        assert FeeInfo(type=FeeType.ADR_MGMT_FEE, amount=Decimal("1.25")).display_name == (
            "ADR Management Fee"
        )

    def test_rejects_negative_amount(self):
        with pytest.raises(ValidationError):
            FeeInfo(type=FeeType.WIRE_FEE, amount=Decimal("-25"))


class TestTrade:
    def test_summary(self):
        assert _make_trade().summary == "Buy 100 AAPL for $15,050.00"

    def test_formatting(self):
        t = _make_trade(quantity=Decimal("0.05252"), price=Decimal("70.83"))
        assert t.formatted_quantity == "0.0525"
        assert t.formatted_price == "$70.83"
        assert t.formatted_total_amount == "$15,050.00"

    def test_display_ticker_uses_option_symbol(self):
        t = _make_trade(
            type=TradeType.OPTION_BUY_TO_OPEN,
            quantity=Decimal("1"),
            price=Decimal("3.20"),
            total_amount=Decimal("-320"),
            option_info=_make_option(),
        )
        assert t.display_ticker == "AAPL 12/19/25 $150 Call"

    def test_rejects_negative_quantity(self):
        with pytest.raises(ValidationError):
            _make_trade(quantity=Decimal("-1"))

    def test_rejects_negative_commission(self):
        with pytest.raises(ValidationError):
            _make_trade(commission=Decimal("-0.65"))

    def test_rejects_option_info_on_stock_trade(self):
        with pytest.raises(ValidationError):
            _make_trade(option_info=_make_option())

    def test_rejects_two_info_objects(self):
        with pytest.raises(ValidationError):
            _make_trade(
                type=TradeType.FEE,
                total_amount=Decimal("-1"),
                fee_info=FeeInfo(type=FeeType.OTHER, amount=Decimal("1")),
                dividend_info=DividendInfo(type=DividendType.ORDINARY, gross_amount=Decimal("1")),
            )

    def test_rejects_dividend_net_mismatch(self):
        info = DividendInfo(
            type=DividendType.QUALIFIED,
            gross_amount=Decimal("2.70"),
            tax_withheld=Decimal("0.81"),
        )
        with pytest.raises(ValidationError):
            _make_trade(type=TradeType.DIVIDEND, total_amount=Decimal("2.70"), dividend_info=info)

    def test_accepts_matching_dividend(self):
        info = DividendInfo(
            type=DividendType.QUALIFIED,
            gross_amount=Decimal("2.70"),
            tax_withheld=Decimal("0.81"),
        )
        t = _make_trade(
            type=TradeType.DIVIDEND,
            quantity=Decimal("0"),
            price=Decimal("0"),
            total_amount=Decimal("1.89"),
            dividend_info=info,
        )
        assert t.dividend_info.net_amount == t.total_amount

    def test_fee_info_allowed_on_tax_withholding(self):
        t = _make_trade(
            type=TradeType.TAX_WITHHOLDING,
            total_amount=Decimal("-0.81"),
            fee_info=FeeInfo(type=FeeType.TAX_WITHHOLDING, amount=Decimal("0.81")),
        )
        assert t.fee_info.amount == Decimal("0.81")

    def test_rejects_fee_info_on_deposit(self):
        with pytest.raises(ValidationError):
            _make_trade(
                type=TradeType.DEPOSIT,
                total_amount=Decimal("100"),
                fee_info=FeeInfo(type=FeeType.ACH_FEE, amount=Decimal("1")),
            )

    def test_frozen(self):
        t = _make_trade()
        with pytest.raises(ValidationError):
            t.ticker = "MSFT"  # type: ignore[misc]

    def test_json_dump_keeps_decimals_exact(self):
        data = _make_trade(price=Decimal("0.10")).model_dump(mode="json")
        assert data["price"] == "0.10"
        assert data["type"] == "stock_buy"


class TestSortTrades:
    def test_earlier_date_first(self):
        later = _make_trade(trade_date=datetime(2025, 2, 1, 9, 30, tzinfo=NY))
        earlier = _make_trade(
            type=TradeType.FEE,
            total_amount=Decimal("-1"),
            trade_date=datetime(2025, 1, 1, 9, 30, tzinfo=NY),
        )
        assert sort_trades([later, earlier]) == [earlier, later]

    def test_same_day_buys_then_sells_then_others(self):
        fee = _make_trade(type=TradeType.FEE, total_amount=Decimal("-1"))
        sell = _make_trade(type=TradeType.STOCK_SELL, total_amount=Decimal("100"))
        buy = _make_trade()
        assert [t.type for t in sort_trades([fee, sell, buy])] == [
            TradeType.STOCK_BUY,
            TradeType.STOCK_SELL,
            TradeType.FEE,
        ]

    def test_stable_for_ties(self):
        first = _make_trade(ticker="AAA")
        second = _make_trade(ticker="BBB")
        third = _make_trade(ticker="CCC")
        assert [t.ticker for t in sort_trades([first, second, third])] == ["AAA", "BBB", "CCC"]

    def test_empty(self):
        assert sort_trades([]) == []
