"""Charles Schwab action vocabulary.

Maps each raw "Action" label of the Schwab JSON export to how it is
classified. Labels are matched exactly (case-sensitive); labels outside
this table are dropped by the parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tradenorm.models import DividendType, TradeType


class ActionCategory(str, Enum):
    STOCK_TRADE = "stock_trade"
    OPTION_TRADE = "option_trade"
    DIVIDEND = "dividend"
    DIVIDEND_REINVEST = "dividend_reinvest"
    TAX_WITHHOLDING = "tax_withholding"
    ADR_FEE = "adr_fee"
    SYMBOL_EXCHANGE = "symbol_exchange"
    STOCK_SPLIT = "stock_split"
    CASH_TRANSFER = "cash_transfer"
    INTEREST = "interest"
    INTEREST_ADJUSTMENT = "interest_adjustment"
    CASH_IN_LIEU = "cash_in_lieu"
    JOURNAL_OTHER = "journal_other"
    IGNORED = "ignored"


class SchwabAction(str, Enum):
    BUY = "Buy"
    SELL = "Sell"

    BUY_TO_OPEN = "Buy to Open"
    SELL_TO_OPEN = "Sell to Open"
    BUY_TO_CLOSE = "Buy to Close"
    SELL_TO_CLOSE = "Sell to Close"

    CASH_DIVIDEND = "Cash Dividend"
    QUALIFIED_DIVIDEND = "Qualified Dividend"
    QUAL_DIV_REINVEST = "Qual Div Reinvest"
    REINVEST_DIVIDEND = "Reinvest Dividend"
    REINVEST_SHARES = "Reinvest Shares"
    LONG_TERM_CAP_GAIN = "Long Term Cap Gain"

    NRA_TAX_ADJ = "NRA Tax Adj"
    ADR_MGMT_FEE = "ADR Mgmt Fee"

    DELIVERED_OTHER = "Delivered - Other"
    RECEIVED_OTHER = "Received - Other"
    JOURNALED_SHARES = "Journaled Shares"
    MANDATORY_REORG_EXC = "Mandatory Reorg Exc"

    STOCK_SPLIT = "Stock Split"
    CASH_IN_LIEU = "Cash In Lieu"
    INTERNAL_TRANSFER = "Internal Transfer"
    MONEYLINK_DEPOSIT = "MoneyLink Deposit"
    MONEYLINK_TRANSFER = "MoneyLink Transfer"
    FUNDS_DEPOSITED = "Funds Deposited"
    FUNDS_WITHDRAWN = "Funds Withdrawn"
    CREDIT_INTEREST = "Credit Interest"
    BOND_INTEREST = "Bond Interest"
    INTEREST_ADJ = "Interest Adj"
    JOURNAL_OTHER = "Journal - Other"

    # Known labels with no cash or position effect of their own.
    JOURNAL = "Journal"
    SECURITY_TRANSFER = "Security Transfer"

    @classmethod
    def from_label(cls, label: str) -> SchwabAction | None:
        try:
            return cls(label)
        except ValueError:
            return None

    @property
    def spec(self) -> ActionSpec:
        return VOCABULARY[self]

    @property
    def should_import(self) -> bool:
        return self.spec.should_import

    @property
    def category(self) -> ActionCategory:
        return self.spec.category

    @property
    def trade_type(self) -> TradeType | None:
        return self.spec.trade_type

    @property
    def is_option_trade(self) -> bool:
        return self.spec.category is ActionCategory.OPTION_TRADE

    @property
    def is_dividend(self) -> bool:
        return self.spec.category is ActionCategory.DIVIDEND

    @property
    def is_symbol_exchange(self) -> bool:
        return self.spec.category is ActionCategory.SYMBOL_EXCHANGE

    @property
    def is_buy_action(self) -> bool:
        return self.spec.is_buy

    @property
    def is_sell_action(self) -> bool:
        return self.spec.is_sell

    @property
    def opens_position(self) -> bool:
        return self.spec.opens_position

    @property
    def closes_position(self) -> bool:
        return self.spec.closes_position


@dataclass(frozen=True)
class ActionSpec:
    """Classification metadata for one Schwab action label.

    For cash transfers with `direction_by_sign`, `trade_type` is the
    positive-amount type; a negative amount flips it to a withdrawal.
    """

    category: ActionCategory
    trade_type: TradeType | None = None
    should_import: bool = True
    is_buy: bool = False
    is_sell: bool = False
    opens_position: bool = False
    closes_position: bool = False
    dividend_type: DividendType | None = None
    direction_by_sign: bool = False


VOCABULARY: dict[SchwabAction, ActionSpec] = {
    SchwabAction.BUY: ActionSpec(
        ActionCategory.STOCK_TRADE, TradeType.STOCK_BUY, is_buy=True
    ),
    SchwabAction.SELL: ActionSpec(
        ActionCategory.STOCK_TRADE, TradeType.STOCK_SELL, is_sell=True
    ),
    SchwabAction.REINVEST_SHARES: ActionSpec(
        ActionCategory.STOCK_TRADE, TradeType.STOCK_BUY, is_buy=True
    ),
    SchwabAction.BUY_TO_OPEN: ActionSpec(
        ActionCategory.OPTION_TRADE,
        TradeType.OPTION_BUY_TO_OPEN,
        is_buy=True,
        opens_position=True,
    ),
    SchwabAction.SELL_TO_OPEN: ActionSpec(
        ActionCategory.OPTION_TRADE,
        TradeType.OPTION_SELL_TO_OPEN,
        is_sell=True,
        opens_position=True,
    ),
    SchwabAction.BUY_TO_CLOSE: ActionSpec(
        ActionCategory.OPTION_TRADE,
        TradeType.OPTION_BUY_TO_CLOSE,
        is_buy=True,
        closes_position=True,
    ),
    SchwabAction.SELL_TO_CLOSE: ActionSpec(
        ActionCategory.OPTION_TRADE,
        TradeType.OPTION_SELL_TO_CLOSE,
        is_sell=True,
        closes_position=True,
    ),
    SchwabAction.CASH_DIVIDEND: ActionSpec(
        ActionCategory.DIVIDEND, TradeType.DIVIDEND, dividend_type=DividendType.ORDINARY
    ),
    SchwabAction.QUALIFIED_DIVIDEND: ActionSpec(
        ActionCategory.DIVIDEND, TradeType.DIVIDEND, dividend_type=DividendType.QUALIFIED
    ),
    SchwabAction.LONG_TERM_CAP_GAIN: ActionSpec(
        ActionCategory.DIVIDEND, TradeType.DIVIDEND, dividend_type=DividendType.CAPITAL_GAIN
    ),
    SchwabAction.QUAL_DIV_REINVEST: ActionSpec(
        ActionCategory.DIVIDEND_REINVEST, TradeType.DIVIDEND_REINVEST
    ),
    SchwabAction.REINVEST_DIVIDEND: ActionSpec(
        ActionCategory.DIVIDEND_REINVEST, TradeType.DIVIDEND_REINVEST
    ),
    SchwabAction.NRA_TAX_ADJ: ActionSpec(
        ActionCategory.TAX_WITHHOLDING, TradeType.TAX_WITHHOLDING
    ),
    SchwabAction.ADR_MGMT_FEE: ActionSpec(ActionCategory.ADR_FEE, TradeType.FEE),
    SchwabAction.DELIVERED_OTHER: ActionSpec(
        ActionCategory.SYMBOL_EXCHANGE, TradeType.SYMBOL_EXCHANGE_OUT, is_sell=True
    ),
    SchwabAction.RECEIVED_OTHER: ActionSpec(
        ActionCategory.SYMBOL_EXCHANGE, TradeType.SYMBOL_EXCHANGE_IN, is_buy=True
    ),
    SchwabAction.JOURNALED_SHARES: ActionSpec(
        ActionCategory.SYMBOL_EXCHANGE, TradeType.SYMBOL_EXCHANGE_IN
    ),
    SchwabAction.MANDATORY_REORG_EXC: ActionSpec(
        ActionCategory.SYMBOL_EXCHANGE, TradeType.SYMBOL_EXCHANGE_IN
    ),
    SchwabAction.STOCK_SPLIT: ActionSpec(
        ActionCategory.STOCK_SPLIT, TradeType.STOCK_BUY, is_buy=True
    ),
    SchwabAction.CASH_IN_LIEU: ActionSpec(
        ActionCategory.CASH_IN_LIEU, TradeType.DIVIDEND, dividend_type=DividendType.ORDINARY
    ),
    SchwabAction.INTERNAL_TRANSFER: ActionSpec(
        ActionCategory.CASH_TRANSFER, TradeType.DEPOSIT, direction_by_sign=True
    ),
    SchwabAction.MONEYLINK_DEPOSIT: ActionSpec(
        ActionCategory.CASH_TRANSFER, TradeType.DEPOSIT, direction_by_sign=True
    ),
    SchwabAction.MONEYLINK_TRANSFER: ActionSpec(
        ActionCategory.CASH_TRANSFER, TradeType.DEPOSIT, direction_by_sign=True
    ),
    SchwabAction.FUNDS_DEPOSITED: ActionSpec(ActionCategory.CASH_TRANSFER, TradeType.DEPOSIT),
    SchwabAction.FUNDS_WITHDRAWN: ActionSpec(ActionCategory.CASH_TRANSFER, TradeType.WITHDRAW),
    SchwabAction.CREDIT_INTEREST: ActionSpec(
        ActionCategory.INTEREST, TradeType.INTEREST_INCOME
    ),
    SchwabAction.BOND_INTEREST: ActionSpec(ActionCategory.INTEREST, TradeType.INTEREST_INCOME),
    SchwabAction.INTEREST_ADJ: ActionSpec(
        ActionCategory.INTEREST_ADJUSTMENT, TradeType.FEE
    ),
    SchwabAction.JOURNAL_OTHER: ActionSpec(
        ActionCategory.JOURNAL_OTHER, TradeType.TAX_WITHHOLDING
    ),
    SchwabAction.JOURNAL: ActionSpec(ActionCategory.IGNORED, should_import=False),
    SchwabAction.SECURITY_TRANSFER: ActionSpec(ActionCategory.IGNORED, should_import=False),
}
