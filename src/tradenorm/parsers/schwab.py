"""Charles Schwab JSON transaction export parser.

The export is a single JSON document:

    {"FromDate": "...", "ToDate": "...", "TotalTransactionsAmount": "...",
     "BrokerageTransactions": [{"Date": "01/15/2025", "Action": "Buy", ...}]}

Every field of a transaction is a string; amounts look like "-$15,050.00".

Classification runs in two phases. First, lookups are built from the full
record set: a company-name -> ticker map (to resolve corporate-action rows
that carry a CUSIP instead of a ticker) and an index of "NRA Tax Adj" rows
keyed by (date, symbol, ItemIssueId) for pairing with dividends. Then
every record is classified by an ordered rule table. Tax rows that no
dividend claimed are emitted on their own at the end.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, NamedTuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from tradenorm.models import (
    ZERO,
    DividendInfo,
    DividendType,
    FeeInfo,
    FeeType,
    Trade,
    TradeType,
    sort_trades,
)
from tradenorm.money import try_parse_decimal
from tradenorm.parsers.base import BrokerParser, ParseResult, SupportedBroker, make_trade_id
from tradenorm.parsers.dates import parse_schwab_date
from tradenorm.parsers.errors import InvalidContainerError
from tradenorm.parsers.patterns import (
    extract_company_name,
    extract_parenthesized_symbol,
    is_cusip,
    parse_schwab_option_symbol,
)
from tradenorm.parsers.rules import Rule, apply_rules
from tradenorm.parsers.schwab_actions import ActionCategory, SchwabAction

logger = logging.getLogger(__name__)

STOCK_SPLIT_MARKER = "STOCK SPLIT"
WITHHOLDING_MARKER = "W-8 WITHHOLDING"
CASH_MOVEMENT_MARKER = "CASH MOVEMENT"
EXCHANGE_MARKER = "EXCHANGE"


class SchwabRawTransaction(BaseModel):
    """One entry of the BrokerageTransactions array, fields kept as strings."""

    date: str = Field(default="", alias="Date")
    action: str = Field(default="", alias="Action")
    symbol: str = Field(default="", alias="Symbol")
    description: str = Field(default="", alias="Description")
    quantity: str = Field(default="", alias="Quantity")
    price: str = Field(default="", alias="Price")
    fees_and_comm: str = Field(default="", alias="Fees & Comm")
    amount: str = Field(default="", alias="Amount")
    item_issue_id: str = Field(default="", alias="ItemIssueId")
    acctg_rule_cd: str = Field(default="", alias="AcctgRuleCd")
    position: str = Field(default="", description="'<file>:<row>' within a parse call")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "coerce_numbers_to_str": True,
    }

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # Numbers go through coerce_numbers_to_str; other non-strings become text.
        if value is None:
            return ""
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return str(value)
        return value

    @property
    def ticker(self) -> str:
        return self.symbol.strip().upper()


class SchwabTransactionFile(BaseModel):
    from_date: str = Field(default="", alias="FromDate")
    to_date: str = Field(default="", alias="ToDate")
    total_transactions_amount: str = Field(default="", alias="TotalTransactionsAmount")
    brokerage_transactions: list[SchwabRawTransaction] = Field(alias="BrokerageTransactions")

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}


class _Row(NamedTuple):
    """A record with its action resolved and numeric fields parsed."""

    record: SchwabRawTransaction
    action: SchwabAction
    trade_date: datetime
    quantity: Decimal
    price: Decimal
    amount: Decimal
    commission: Decimal


_TaxKey = tuple[str, str, str]


@dataclass
class _Context:
    """Lookups for one extract_trades call.

    `company_tickers` and `tax_rows` are built before classification and
    only read afterwards; `consumed_tax` and `warnings` grow as rows are
    classified.
    """

    records: list[SchwabRawTransaction]
    company_tickers: Mapping[str, str]
    tax_rows: Mapping[_TaxKey, list[int]]
    consumed_tax: set[int] = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)


def _tax_key(record: SchwabRawTransaction) -> _TaxKey:
    return (record.date.strip(), record.ticker, record.item_issue_id.strip())


class SchwabParser(BrokerParser[SchwabRawTransaction]):
    """Parses Charles Schwab JSON exports into trades.

    Multiple files are pooled before classification, so a CUSIP in one
    file can be resolved from a ticker row in another.
    """

    broker = SupportedBroker.CHARLES_SCHWAB
    combine_files = True

    def __init__(self, strict_numbers: bool = False) -> None:
        self._strict_numbers = strict_numbers
        self._rules: list[Rule[_Row, _Context]] = [
            Rule("dividend", lambda r: r.action.is_dividend, self._dividend),
            Rule("option trade", lambda r: r.action.is_option_trade, self._option_trade),
            Rule(
                "stock split",
                lambda r: r.action.category is ActionCategory.STOCK_SPLIT,
                self._stock_split,
            ),
            Rule("symbol exchange", lambda r: r.action.is_symbol_exchange, self._symbol_exchange),
            Rule(
                "dividend reinvest",
                lambda r: r.action.category is ActionCategory.DIVIDEND_REINVEST,
                self._dividend_reinvest,
            ),
            Rule(
                "cash transfer",
                lambda r: r.action.category is ActionCategory.CASH_TRANSFER,
                self._cash_transfer,
            ),
            Rule(
                "interest",
                lambda r: r.action.category is ActionCategory.INTEREST,
                self._interest,
            ),
            Rule(
                "interest adjustment",
                lambda r: r.action.category is ActionCategory.INTEREST_ADJUSTMENT,
                self._interest_adjustment,
            ),
            Rule(
                "cash in lieu",
                lambda r: r.action.category is ActionCategory.CASH_IN_LIEU,
                self._cash_in_lieu,
            ),
            Rule(
                "journal withholding",
                lambda r: r.action.category is ActionCategory.JOURNAL_OTHER,
                self._journal_withholding,
            ),
            Rule("adr fee", lambda r: r.action.category is ActionCategory.ADR_FEE, self._adr_fee),
            Rule(
                "stock trade",
                lambda r: r.action.category is ActionCategory.STOCK_TRADE,
                self._stock_trade,
            ),
        ]

    # --- Decoding ---

    def decode(
        self, data: bytes, file_index: int = 0
    ) -> tuple[list[SchwabRawTransaction], list[str]]:
        """Decode a Schwab JSON export into raw transactions."""
        if not data or not data.strip():
            raise InvalidContainerError(self.name, "input is empty")
        try:
            export = SchwabTransactionFile.model_validate_json(data)
        except ValidationError as exc:
            raise InvalidContainerError(self.name, f"invalid JSON: {exc}") from exc

        records = [
            record.model_copy(update={"position": f"{file_index}:{row}"})
            for row, record in enumerate(export.brokerage_transactions)
        ]
        logger.info(
            "%s: decoded %d transactions (%s to %s)",
            self.name,
            len(records),
            export.from_date or "?",
            export.to_date or "?",
        )
        return records, []

    # --- Classification ---

    def extract_trades(self, records: list[SchwabRawTransaction]) -> ParseResult:
        ctx = _Context(
            records=records,
            company_tickers=self._build_company_tickers(records),
            tax_rows=self._build_tax_index(records),
        )
        trades: list[Trade] = []

        for record in records:
            if record.action == SchwabAction.NRA_TAX_ADJ.value:
                continue  # claimed by a dividend or emitted below
            row = self._prepare(record, ctx)
            if row is None:
                continue
            trade = apply_rules(self._rules, row, ctx)
            if trade is not None:
                trades.append(trade)

        trades.extend(self._unpaired_tax(ctx))
        return ParseResult(sort_trades(trades), ctx.warnings)

    def _build_company_tickers(self, records: list[SchwabRawTransaction]) -> dict[str, str]:
        """Map company names to the first plain ticker seen for them."""
        tickers: dict[str, str] = {}
        for record in records:
            symbol = record.symbol.strip()
            if not symbol or is_cusip(symbol):
                continue
            company = extract_company_name(record.description)
            if company is not None and company not in tickers:
                tickers[company] = symbol.upper()
        return tickers

    def _build_tax_index(self, records: list[SchwabRawTransaction]) -> dict[_TaxKey, list[int]]:
        index: dict[_TaxKey, list[int]] = defaultdict(list)
        for i, record in enumerate(records):
            if record.action == SchwabAction.NRA_TAX_ADJ.value:
                index[_tax_key(record)].append(i)
        return dict(index)

    def _prepare(self, record: SchwabRawTransaction, ctx: _Context) -> _Row | None:
        action = SchwabAction.from_label(record.action)
        if action is None or not action.should_import:
            logger.debug("Dropping %s: unhandled action %r", record.position, record.action)
            return None
        trade_date = parse_schwab_date(record.date)
        if trade_date is None:
            logger.debug("Dropping %s: unparseable date %r", record.position, record.date)
            return None
        return _Row(
            record=record,
            action=action,
            trade_date=trade_date,
            quantity=self._number(record, "Quantity", record.quantity, ctx),
            price=self._number(record, "Price", record.price, ctx),
            amount=self._number(record, "Amount", record.amount, ctx),
            commission=abs(self._number(record, "Fees & Comm", record.fees_and_comm, ctx)),
        )

    def _number(self, record: SchwabRawTransaction, name: str, raw: str, ctx: _Context) -> Decimal:
        value = try_parse_decimal(raw)
        if value is not None:
            return value
        logger.debug("Malformed %s %r at %s, using 0", name, raw, record.position)
        if self._strict_numbers:
            ctx.warnings.append(
                f"Malformed {name} '{raw}' in {record.action} {record.symbol!r}; treated as 0"
            )
        return ZERO

    def _trade(self, row: _Row, trade_type: TradeType, **fields: Any) -> Trade:
        record = row.record
        fields.setdefault("note", f"{record.action}: {record.description}")
        fields.setdefault("quantity", ZERO)
        fields.setdefault("price", ZERO)
        return Trade(
            id=make_trade_id(self.broker, record.position),
            type=trade_type,
            trade_date=row.trade_date,
            raw_source=self.name,
            **fields,
        )

    def _resolve_ticker(self, row: _Row, ctx: _Context) -> str | None:
        """Return the row's ticker, mapping a CUSIP through the company lookup.

        An unresolvable CUSIP is reported as a warning and yields None.
        """
        record = row.record
        symbol = record.ticker
        if not symbol:
            return None
        if not is_cusip(symbol):
            return symbol
        company = extract_company_name(record.description)
        ticker = ctx.company_tickers.get(company) if company else None
        if ticker is None:
            message = (
                f"Unresolved CUSIP '{symbol}': {record.action} - {record.description} "
                f"(quantity: {record.quantity})"
            )
            logger.warning("%s", message)
            ctx.warnings.append(message)
            return None
        logger.debug("Resolved CUSIP %s to %s via %r", symbol, ticker, company)
        return ticker

    # --- Rule handlers ---

    def _dividend(self, row: _Row, ctx: _Context) -> Trade | None:
        record = row.record
        if not record.ticker:
            return None
        gross = abs(row.amount)
        if gross == ZERO:
            return None

        tax = ZERO
        for index in ctx.tax_rows.get(_tax_key(record), ()):
            if index not in ctx.consumed_tax:
                ctx.consumed_tax.add(index)
                tax = abs(self._number(ctx.records[index], "Amount", ctx.records[index].amount, ctx))
                break

        info = DividendInfo(
            type=row.action.spec.dividend_type or DividendType.ORDINARY,
            gross_amount=gross,
            tax_withheld=tax,
            issue_id=record.item_issue_id.strip() or None,
        )
        return self._trade(
            row,
            TradeType.DIVIDEND,
            ticker=record.ticker,
            total_amount=info.net_amount,
            dividend_info=info,
        )

    def _option_trade(self, row: _Row, ctx: _Context) -> Trade | None:
        option = parse_schwab_option_symbol(row.record.symbol)
        trade_type = row.action.trade_type
        if option is None or trade_type is None:
            logger.debug("Dropping option row with symbol %r", row.record.symbol)
            return None
        return self._trade(
            row,
            trade_type,
            ticker=option.underlying_ticker,
            quantity=abs(row.quantity),
            price=row.price,
            total_amount=_signed_for(trade_type, row.amount),
            option_info=option,
            commission=row.commission,
        )

    def _stock_split(self, row: _Row, ctx: _Context) -> Trade | None:
        if not row.record.ticker:
            return None
        return self._trade(
            row,
            TradeType.STOCK_BUY,
            ticker=row.record.ticker,
            quantity=abs(row.quantity),
            total_amount=ZERO,
        )

    def _symbol_exchange(self, row: _Row, ctx: _Context) -> Trade | None:
        description = row.record.description.upper()
        if STOCK_SPLIT_MARKER in description:
            return self._stock_split(row, ctx)
        if WITHHOLDING_MARKER in description:
            if row.amount == ZERO:
                return None
            ticker = extract_parenthesized_symbol(row.record.description) or ""
            return self._tax_withholding(row, ticker, row.amount)
        if CASH_MOVEMENT_MARKER in description:
            if row.amount == ZERO:
                return None
            trade_type = TradeType.DEPOSIT if row.amount > ZERO else TradeType.WITHDRAW
            return self._trade(row, trade_type, ticker="", total_amount=row.amount)
        # A journal entry is only a share exchange when it says so.
        if row.action is SchwabAction.JOURNALED_SHARES and EXCHANGE_MARKER not in description:
            return None

        ticker = self._resolve_ticker(row, ctx)
        if ticker is None:
            return None
        trade_type = (
            TradeType.SYMBOL_EXCHANGE_OUT if row.quantity < ZERO else TradeType.SYMBOL_EXCHANGE_IN
        )
        return self._trade(
            row, trade_type, ticker=ticker, quantity=abs(row.quantity), total_amount=ZERO
        )

    def _dividend_reinvest(self, row: _Row, ctx: _Context) -> Trade | None:
        # The income side of a reinvestment often has no symbol or quantity;
        # the purchase itself arrives as "Reinvest Shares".
        if not row.record.ticker or row.quantity == ZERO:
            return None
        return self._trade(
            row,
            TradeType.DIVIDEND_REINVEST,
            ticker=row.record.ticker,
            quantity=abs(row.quantity),
            price=row.price,
            total_amount=-abs(row.amount),
        )

    def _cash_transfer(self, row: _Row, ctx: _Context) -> Trade | None:
        if row.amount == ZERO:
            return None
        spec = row.action.spec
        if spec.direction_by_sign:
            trade_type = TradeType.DEPOSIT if row.amount > ZERO else TradeType.WITHDRAW
        else:
            trade_type = spec.trade_type or TradeType.DEPOSIT
        return self._trade(
            row, trade_type, ticker="", total_amount=_signed_for(trade_type, row.amount)
        )

    def _interest(self, row: _Row, ctx: _Context) -> Trade | None:
        if row.amount == ZERO:
            return None
        return self._trade(
            row, TradeType.INTEREST_INCOME, ticker="", total_amount=abs(row.amount)
        )

    def _interest_adjustment(self, row: _Row, ctx: _Context) -> Trade | None:
        if row.amount == ZERO:
            return None
        return self._trade(
            row,
            TradeType.FEE,
            ticker="",
            total_amount=row.amount,
            fee_info=FeeInfo(type=FeeType.OTHER, amount=abs(row.amount)),
        )

    def _cash_in_lieu(self, row: _Row, ctx: _Context) -> Trade | None:
        cash = abs(row.amount)
        if cash == ZERO:
            return None
        info = DividendInfo(type=DividendType.ORDINARY, gross_amount=cash)
        return self._trade(
            row,
            TradeType.DIVIDEND,
            ticker=row.record.ticker,
            total_amount=cash,
            dividend_info=info,
        )

    def _journal_withholding(self, row: _Row, ctx: _Context) -> Trade | None:
        if "WITHHOLDING" not in row.record.description.upper() or row.amount == ZERO:
            return None
        # The symbol field holds a CUSIP here, which cannot be mapped reliably.
        ticker = "" if is_cusip(row.record.symbol) else row.record.ticker
        return self._tax_withholding(row, ticker, row.amount)

    def _adr_fee(self, row: _Row, ctx: _Context) -> Trade | None:
        record = row.record
        ticker = record.ticker or extract_parenthesized_symbol(record.description)
        if not ticker:
            # "ARM HOLDINGS PLC SPONSORED ADS (SE) ADR FEES" -> "ARM"
            words = record.description.split()
            ticker = words[0].upper() if words else ""
        fee = abs(row.amount)
        if not ticker or fee == ZERO:
            return None
        return self._trade(
            row,
            TradeType.FEE,
            ticker=ticker,
            total_amount=-fee,
            fee_info=FeeInfo(type=FeeType.ADR_MGMT_FEE, amount=fee),
            note=record.description,
        )

    def _stock_trade(self, row: _Row, ctx: _Context) -> Trade | None:
        trade_type = row.action.trade_type
        if trade_type is None:
            return None
        ticker = self._resolve_ticker(row, ctx)
        if ticker is None:
            return None
        return self._trade(
            row,
            trade_type,
            ticker=ticker,
            quantity=abs(row.quantity),
            price=row.price,
            total_amount=_signed_for(trade_type, row.amount),
            commission=row.commission,
        )

    def _tax_withholding(self, row: _Row, ticker: str, amount: Decimal) -> Trade:
        tax = abs(amount)
        return self._trade(
            row,
            TradeType.TAX_WITHHOLDING,
            ticker=ticker,
            total_amount=-tax,
            fee_info=FeeInfo(type=FeeType.TAX_WITHHOLDING, amount=tax),
        )

    def _unpaired_tax(self, ctx: _Context) -> list[Trade]:
        """Emit tax rows that no dividend claimed as standalone withholding."""
        trades = []
        for index, record in enumerate(ctx.records):
            if record.action != SchwabAction.NRA_TAX_ADJ.value or index in ctx.consumed_tax:
                continue
            row = self._prepare(record, ctx)
            if row is None or row.amount == ZERO:
                continue
            trades.append(self._tax_withholding(row, record.ticker, row.amount))
        return trades


def _signed_for(trade_type: TradeType, amount: Decimal) -> Decimal:
    """Force the cash-flow sign implied by the trade type."""
    if trade_type.is_buy or trade_type is TradeType.WITHDRAW:
        return -abs(amount)
    if trade_type.is_sell or trade_type is TradeType.DEPOSIT:
        return abs(amount)
    return amount
