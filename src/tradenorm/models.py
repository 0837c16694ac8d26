"""Canonical trade models.

Every broker parser produces the same output schema: a list of Trade
records, each tagged with a TradeType. Monetary and quantity fields are
Decimal throughout so that sums and equality checks are exact.

Sign convention for Trade.total_amount is the signed cash flow seen by the
account: negative when cash leaves (buys, fees, withholding, withdrawals,
margin interest), positive when it arrives (sells, dividends, interest,
deposits), zero when only shares move (exchanges, split grants).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from tradenorm.money import ZERO


class TradeType(str, Enum):
    """Closed set of canonical trade categories."""

    STOCK_BUY = "stock_buy"
    STOCK_SELL = "stock_sell"

    OPTION_BUY = "option_buy"
    OPTION_SELL = "option_sell"
    OPTION_BUY_TO_OPEN = "option_buy_to_open"
    OPTION_BUY_TO_CLOSE = "option_buy_to_close"
    OPTION_SELL_TO_OPEN = "option_sell_to_open"
    OPTION_SELL_TO_CLOSE = "option_sell_to_close"

    DIVIDEND = "dividend"
    DIVIDEND_REINVEST = "dividend_reinvest"
    SYMBOL_EXCHANGE_OUT = "symbol_exchange_out"
    SYMBOL_EXCHANGE_IN = "symbol_exchange_in"
    OPTION_EXPIRATION = "option_expiration"
    OPTION_ASSIGNMENT = "option_assignment"
    FEE = "fee"

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"

    INTEREST_INCOME = "interest_income"
    MARGIN_INTEREST = "margin_interest"
    TAX_WITHHOLDING = "tax_withholding"

    @property
    def is_buy(self) -> bool:
        return self in _BUY_TYPES

    @property
    def is_sell(self) -> bool:
        return self in _SELL_TYPES

    @property
    def is_option(self) -> bool:
        return self in _OPTION_TYPES

    @property
    def opens_position(self) -> bool:
        return self in _OPEN_TYPES

    @property
    def closes_position(self) -> bool:
        return self in _CLOSE_TYPES

    @property
    def is_cash_transfer(self) -> bool:
        return self in (TradeType.DEPOSIT, TradeType.WITHDRAW)

    @property
    def sort_priority(self) -> int:
        """Same-day ordering: buys (0) before sells (1) before everything else (2)."""
        if self.is_buy:
            return 0
        if self.is_sell:
            return 1
        return 2

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_BUY_TYPES = frozenset(
    {
        TradeType.STOCK_BUY,
        TradeType.OPTION_BUY,
        TradeType.OPTION_BUY_TO_OPEN,
        TradeType.OPTION_BUY_TO_CLOSE,
        TradeType.DIVIDEND_REINVEST,
        TradeType.SYMBOL_EXCHANGE_IN,
    }
)
_SELL_TYPES = frozenset(
    {
        TradeType.STOCK_SELL,
        TradeType.OPTION_SELL,
        TradeType.OPTION_SELL_TO_OPEN,
        TradeType.OPTION_SELL_TO_CLOSE,
        TradeType.SYMBOL_EXCHANGE_OUT,
    }
)
_OPTION_TYPES = frozenset(
    {
        TradeType.OPTION_BUY,
        TradeType.OPTION_SELL,
        TradeType.OPTION_BUY_TO_OPEN,
        TradeType.OPTION_BUY_TO_CLOSE,
        TradeType.OPTION_SELL_TO_OPEN,
        TradeType.OPTION_SELL_TO_CLOSE,
        TradeType.OPTION_EXPIRATION,
        TradeType.OPTION_ASSIGNMENT,
    }
)
_OPEN_TYPES = frozenset(
    {TradeType.STOCK_BUY, TradeType.OPTION_BUY_TO_OPEN, TradeType.OPTION_SELL_TO_OPEN}
)
_CLOSE_TYPES = frozenset(
    {
        TradeType.STOCK_SELL,
        TradeType.OPTION_BUY_TO_CLOSE,
        TradeType.OPTION_SELL_TO_CLOSE,
        TradeType.OPTION_EXPIRATION,
        TradeType.OPTION_ASSIGNMENT,
    }
)
_DISPLAY_NAMES = {
    TradeType.STOCK_BUY: "Buy",
    TradeType.STOCK_SELL: "Sell",
    TradeType.OPTION_BUY: "Buy Option",
    TradeType.OPTION_SELL: "Sell Option",
    TradeType.OPTION_BUY_TO_OPEN: "Buy to Open",
    TradeType.OPTION_BUY_TO_CLOSE: "Buy to Close",
    TradeType.OPTION_SELL_TO_OPEN: "Sell to Open",
    TradeType.OPTION_SELL_TO_CLOSE: "Sell to Close",
    TradeType.DIVIDEND: "Dividend",
    TradeType.DIVIDEND_REINVEST: "Dividend Reinvest",
    TradeType.SYMBOL_EXCHANGE_OUT: "Exchange Out",
    TradeType.SYMBOL_EXCHANGE_IN: "Exchange In",
    TradeType.OPTION_EXPIRATION: "Option Expired",
    TradeType.OPTION_ASSIGNMENT: "Option Assigned",
    TradeType.FEE: "Fee",
    TradeType.DEPOSIT: "Deposit",
    TradeType.WITHDRAW: "Withdraw",
    TradeType.INTEREST_INCOME: "Interest Income",
    TradeType.MARGIN_INTEREST: "Margin Interest",
    TradeType.TAX_WITHHOLDING: "Tax Withholding",
}


class OptionType(str, Enum):
    CALL = "C"
    PUT = "P"

    @property
    def display_name(self) -> str:
        return "Call" if self is OptionType.CALL else "Put"


class DividendType(str, Enum):
    QUALIFIED = "qualified"
    ORDINARY = "ordinary"
    CAPITAL_GAIN = "capital_gain"
    REINVEST = "reinvest"


class FeeType(str, Enum):
    ADR_MGMT_FEE = "adr_mgmt_fee"
    TRADING_COMMISSION = "trading_commission"
    TAX_WITHHOLDING = "tax_withholding"
    WIRE_FEE = "wire_fee"
    ACH_FEE = "ach_fee"
    FOREIGN_TRANSACTION_FEE = "foreign_transaction_fee"
    OTHER = "other"


_FEE_DISPLAY_NAMES = {
    FeeType.ADR_MGMT_FEE: "ADR Management Fee",
    FeeType.TRADING_COMMISSION: "Trading Commission",
    FeeType.TAX_WITHHOLDING: "Tax Withholding",
    FeeType.WIRE_FEE: "Wire Fee",
    FeeType.ACH_FEE: "ACH Fee",
    FeeType.FOREIGN_TRANSACTION_FEE: "Foreign Transaction Fee",
    FeeType.OTHER: "Other Fee",
}


class OptionInfo(BaseModel):
    """An options contract, derived from a broker's contract descriptor."""

    underlying_ticker: str = Field(description="Underlying stock ticker, e.g. 'AAPL'")
    option_type: OptionType
    strike_price: Decimal
    expiration_date: date

    @property
    def yahoo_symbol(self) -> str:
        """OCC-style symbol, e.g. AAPL251219C00150000."""
        strike = int(self.strike_price * 1000)
        return (
            f"{self.underlying_ticker}{self.expiration_date:%y%m%d}"
            f"{self.option_type.value}{strike:08d}"
        )

    @property
    def display_symbol(self) -> str:
        """Human-readable symbol, e.g. 'AAPL 12/19/25 $150 Call'."""
        if self.strike_price == self.strike_price.to_integral_value():
            strike = f"{self.strike_price:.0f}"
        else:
            strike = f"{self.strike_price:.2f}"
        return (
            f"{self.underlying_ticker} {self.expiration_date:%m/%d/%y} "
            f"${strike} {self.option_type.display_name}"
        )

    model_config = {"frozen": True}


class DividendInfo(BaseModel):
    """Dividend payment details, including any tax withheld at source."""

    type: DividendType
    gross_amount: Decimal = Field(description="Dividend before withholding")
    tax_withheld: Decimal = Field(default=ZERO, ge=0, description="Withheld tax, positive")
    issue_id: str | None = Field(default=None, description="Broker correlation key")

    @property
    def net_amount(self) -> Decimal:
        return self.gross_amount - self.tax_withheld

    @property
    def has_tax_withheld(self) -> bool:
        return self.tax_withheld > ZERO

    @property
    def effective_tax_rate(self) -> Decimal:
        """Withheld tax as a percentage of the gross amount."""
        if self.gross_amount <= ZERO:
            return ZERO
        return self.tax_withheld / self.gross_amount * 100

    model_config = {"frozen": True}


class FeeInfo(BaseModel):
    type: FeeType
    amount: Decimal = Field(ge=0, description="Fee amount, always positive")

    @property
    def display_name(self) -> str:
        return _FEE_DISPLAY_NAMES[self.type]

    model_config = {"frozen": True}


class Trade(BaseModel):
    """A single normalized transaction event from any broker.

    Direction lives in `type`; `quantity` is never negative. At most one of
    option_info / dividend_info / fee_info is set, and only on a type of the
    matching category.
    """

    id: UUID = Field(default_factory=uuid4)
    type: TradeType
    ticker: str = Field(description="Ticker symbol; empty for pure cash events")
    quantity: Decimal = Field(ge=0)
    price: Decimal
    total_amount: Decimal = Field(description="Signed cash flow, see module docstring")
    trade_date: datetime
    option_info: OptionInfo | None = None
    dividend_info: DividendInfo | None = None
    fee_info: FeeInfo | None = None
    commission: Decimal = Field(default=ZERO, ge=0, description="Trading commission paid")
    note: str = ""
    raw_source: str = ""

    @model_validator(mode="after")
    def _check_info_matches_type(self) -> Trade:
        populated = [
            info
            for info in (self.option_info, self.dividend_info, self.fee_info)
            if info is not None
        ]
        if len(populated) > 1:
            raise ValueError("only one of option_info, dividend_info, fee_info may be set")
        if self.option_info is not None and not self.type.is_option:
            raise ValueError(f"option_info is not allowed on {self.type.value}")
        if self.dividend_info is not None:
            if self.type is not TradeType.DIVIDEND:
                raise ValueError(f"dividend_info is not allowed on {self.type.value}")
            if self.dividend_info.net_amount != self.total_amount:
                raise ValueError(
                    f"dividend net amount {self.dividend_info.net_amount} "
                    f"does not match total_amount {self.total_amount}"
                )
        if self.fee_info is not None and self.type not in (
            TradeType.FEE,
            TradeType.TAX_WITHHOLDING,
        ):
            raise ValueError(f"fee_info is not allowed on {self.type.value}")
        return self

    @property
    def display_ticker(self) -> str:
        if self.option_info is not None:
            return self.option_info.display_symbol
        return self.ticker

    @property
    def formatted_quantity(self) -> str:
        if self.quantity == self.quantity.to_integral_value():
            return f"{self.quantity:.0f}"
        return f"{self.quantity:.4f}"

    @property
    def formatted_price(self) -> str:
        return f"${self.price:.2f}"

    @property
    def formatted_total_amount(self) -> str:
        return f"${abs(self.total_amount):,.2f}"

    @property
    def summary(self) -> str:
        """One-line description, e.g. 'Buy 100 AAPL for $15,050.00'."""
        return (
            f"{self.type.display_name} {self.formatted_quantity} "
            f"{self.display_ticker} for {self.formatted_total_amount}"
        )

    model_config = {"frozen": True}


def sort_trades(trades: Iterable[Trade]) -> list[Trade]:
    """Order trades by date, then buys before sells before everything else.

    The sort is stable, so trades that tie on both keys keep their input
    order.
    """
    return sorted(trades, key=lambda t: (t.trade_date, t.type.sort_priority))
