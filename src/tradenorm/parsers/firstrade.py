"""Firstrade CSV transaction export parser.

The export has a fixed 13-column header:

    Symbol,Quantity,Price,Action,Description,TradeDate,SettledDate,Interest,
    Amount,Commission,Fee,CUSIP,RecordType

Much of the meaning lives in the free-text Description column: option
contracts ("PUT  HIMS   11/07/25    45 ..."), withheld tax
("NON-RES TAX WITHHELD $1.58"), reinvestment prices ("REIN @ 70.8300") and
the kind of cash movement ("ACH DEPOSIT", "WIRE TRANSFER", ...). Each row
is classified by the first matching rule in an ordered table.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

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
from tradenorm.parsers.dates import parse_firstrade_date
from tradenorm.parsers.errors import InvalidContainerError, InvalidHeaderError
from tradenorm.parsers.patterns import (
    extract_reinvest_price,
    extract_tax_withheld,
    parse_firstrade_option_description,
)
from tradenorm.parsers.rules import Rule, apply_rules

logger = logging.getLogger(__name__)

EXPECTED_HEADER = [
    "Symbol",
    "Quantity",
    "Price",
    "Action",
    "Description",
    "TradeDate",
    "SettledDate",
    "Interest",
    "Amount",
    "Commission",
    "Fee",
    "CUSIP",
    "RecordType",
]

RECORD_TRADE = "TRADE"
RECORD_FINANCIAL = "FINANCIAL"

ACTION_BUY = "BUY"
ACTION_SELL = "SELL"
ACTION_DIVIDEND = "DIVIDEND"
ACTION_INTEREST = "INTEREST"
ACTION_OTHER = "OTHER"

DEPOSIT_MARKERS = ("ACH DEPOSIT", "WIRE FUNDS RECEIVED")
WITHDRAW_MARKERS = ("WIRE TRANSFER", "REVERSE ACH DEPOSIT", "CASH ADVANCE")
INTERNAL_TRANSFER_MARKERS = ("XFER MARGIN TO CASH", "XFER CASH TO MARGIN")
INCOME_MARKERS = ("REIMB", "REBATE")
INTEREST_INCOME_MARKERS = ("CREDIT BALANCE", "CREDIT INT", "LENDING", "REBATE")
_ATM = re.compile(r"\bATM\b")
_OPTION_PREFIX = re.compile(r"^[*\s]*(CALL|PUT)\b")


class FirstradeRecord(BaseModel):
    """One decoded data row of a Firstrade export."""

    symbol: str
    quantity: Decimal
    price: Decimal
    action: str
    description: str
    trade_date: datetime
    settled_date: datetime | None = None
    interest: Decimal = ZERO
    amount: Decimal
    commission: Decimal = ZERO
    fee: Decimal = ZERO
    cusip: str = ""
    record_type: str
    position: str = Field(default="", description="'<file>:<row>' within a parse call")

    model_config = {"frozen": True}

    @property
    def ticker(self) -> str:
        return self.symbol.strip().upper()

    @property
    def kind(self) -> str:
        return self.record_type.strip().upper()

    @property
    def verb(self) -> str:
        return self.action.strip().upper()

    @property
    def text(self) -> str:
        """Upper-cased description for marker matching."""
        return self.description.upper()

    def mentions(self, *markers: str) -> bool:
        text = self.text
        return any(marker in text for marker in markers)


def _financial_other(record: FirstradeRecord) -> bool:
    return record.kind == RECORD_FINANCIAL and record.verb == ACTION_OTHER


def _is_withdrawal(record: FirstradeRecord) -> bool:
    return record.mentions(*WITHDRAW_MARKERS) or bool(_ATM.search(record.text))


class FirstradeParser(BrokerParser[FirstradeRecord]):
    """Parses Firstrade CSV exports into trades."""

    broker = SupportedBroker.FIRSTRADE

    def __init__(self, strict_numbers: bool = False) -> None:
        self._strict_numbers = strict_numbers
        self._rules: list[Rule[FirstradeRecord, None]] = [
            Rule(
                "adr fee",
                lambda r: _financial_other(r) and r.mentions("ADR FEE"),
                self._adr_fee,
            ),
            Rule(
                "deposit",
                lambda r: _financial_other(r)
                and r.mentions(*DEPOSIT_MARKERS)
                and not r.mentions("REVERSE"),
                self._deposit,
            ),
            Rule("withdraw", lambda r: _financial_other(r) and _is_withdrawal(r), self._withdraw),
            Rule(
                "internal transfer",
                lambda r: _financial_other(r) and r.mentions(*INTERNAL_TRANSFER_MARKERS),
                self._internal_transfer,
            ),
            Rule(
                "reimbursement",
                lambda r: _financial_other(r) and r.mentions(*INCOME_MARKERS) and r.amount > ZERO,
                self._deposit,
            ),
            Rule("fee", lambda r: _financial_other(r) and r.mentions("FEE"), self._fee),
            Rule(
                "dividend",
                lambda r: r.kind == RECORD_FINANCIAL and r.verb == ACTION_DIVIDEND,
                self._dividend,
            ),
            Rule(
                "interest",
                lambda r: r.kind == RECORD_FINANCIAL and r.verb == ACTION_INTEREST,
                self._interest,
            ),
            Rule(
                "dividend reinvest",
                lambda r: _financial_other(r) and r.mentions("REIN @"),
                self._dividend_reinvest,
            ),
            Rule(
                "option expiration",
                lambda r: _financial_other(r) and r.mentions("EXPIRED"),
                self._option_expiration,
            ),
            Rule(
                "option assignment",
                lambda r: _financial_other(r) and r.mentions("ASSIGNED"),
                self._option_assignment,
            ),
            Rule(
                "trade",
                lambda r: r.kind == RECORD_TRADE and r.verb in (ACTION_BUY, ACTION_SELL),
                self._trade_row,
            ),
        ]

    # --- Decoding ---

    def decode(self, data: bytes, file_index: int = 0) -> tuple[list[FirstradeRecord], list[str]]:
        """Decode a Firstrade CSV export.

        The header must match exactly or the whole file is rejected. Data
        rows that the CSV reader rejects, that are too short, or that carry
        an unparseable trade date are skipped with a warning.
        """
        if not data or not data.strip():
            raise InvalidContainerError(self.name, "input is empty")
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InvalidContainerError(self.name, f"input is not UTF-8: {exc}") from exc

        reader = csv.reader(io.StringIO(text, newline=""))
        try:
            header = [cell.strip() for cell in next(reader, [])]
        except csv.Error as exc:
            raise InvalidContainerError(self.name, f"unreadable header: {exc}") from exc
        if header != EXPECTED_HEADER:
            raise InvalidHeaderError(self.name, EXPECTED_HEADER, header)

        records: list[FirstradeRecord] = []
        warnings: list[str] = []
        line_no = 1
        while True:
            line_no += 1
            position = f"{file_index}:{line_no}"
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as exc:
                warnings.append(f"Skipped row {position}: {exc}")
                continue
            if not any(cell.strip() for cell in row):
                continue
            record = self._decode_row(row, position, warnings)
            if record is not None:
                records.append(record)

        logger.info("%s: decoded %d rows", self.name, len(records))
        return records, warnings

    def _decode_row(
        self, row: list[str], position: str, warnings: list[str]
    ) -> FirstradeRecord | None:
        if len(row) < len(EXPECTED_HEADER):
            warnings.append(
                f"Skipped row {position}: expected {len(EXPECTED_HEADER)} columns, got {len(row)}"
            )
            return None
        fields = dict(zip(EXPECTED_HEADER, row))
        trade_date = parse_firstrade_date(fields["TradeDate"])
        if trade_date is None:
            warnings.append(f"Skipped row {position}: invalid trade date {fields['TradeDate']!r}")
            return None

        def number(name: str) -> Decimal:
            value = try_parse_decimal(fields[name])
            if value is not None:
                return value
            logger.debug("Malformed %s %r at %s, using 0", name, fields[name], position)
            if self._strict_numbers:
                warnings.append(f"Malformed {name} '{fields[name]}' at row {position}; treated as 0")
            return ZERO

        return FirstradeRecord(
            symbol=fields["Symbol"],
            quantity=number("Quantity"),
            price=number("Price"),
            action=fields["Action"],
            description=fields["Description"].strip(),
            trade_date=trade_date,
            settled_date=parse_firstrade_date(fields["SettledDate"]),
            interest=number("Interest"),
            amount=number("Amount"),
            commission=number("Commission"),
            fee=number("Fee"),
            cusip=fields["CUSIP"].strip(),
            record_type=fields["RecordType"],
            position=position,
        )

    # --- Classification ---

    def extract_trades(self, records: list[FirstradeRecord]) -> ParseResult:
        trades: list[Trade] = []
        for record in records:
            trade = apply_rules(self._rules, record, None)
            if trade is None:
                logger.debug(
                    "Dropping %s: %s/%s %r",
                    record.position,
                    record.record_type,
                    record.action,
                    record.description,
                )
                continue
            trades.append(trade)
        return ParseResult(sort_trades(trades), [])

    def _trade(self, record: FirstradeRecord, trade_type: TradeType, **fields) -> Trade:
        fields.setdefault("note", record.description)
        fields.setdefault("quantity", ZERO)
        fields.setdefault("price", ZERO)
        return Trade(
            id=make_trade_id(self.broker, record.position),
            type=trade_type,
            trade_date=record.trade_date,
            raw_source=self.name,
            **fields,
        )

    # --- Rule handlers ---

    def _adr_fee(self, record: FirstradeRecord, _: None) -> Trade | None:
        fee = abs(record.amount)
        if fee == ZERO:
            return None
        return self._trade(
            record,
            TradeType.FEE,
            ticker=record.ticker,
            total_amount=-fee,
            fee_info=FeeInfo(type=FeeType.ADR_MGMT_FEE, amount=fee),
        )

    def _deposit(self, record: FirstradeRecord, _: None) -> Trade | None:
        if record.amount == ZERO:
            return None
        return self._trade(record, TradeType.DEPOSIT, ticker="", total_amount=abs(record.amount))

    def _withdraw(self, record: FirstradeRecord, _: None) -> Trade | None:
        if record.amount == ZERO:
            return None
        return self._trade(record, TradeType.WITHDRAW, ticker="", total_amount=-abs(record.amount))

    def _internal_transfer(self, record: FirstradeRecord, _: None) -> Trade | None:
        # Moves cash between the margin and cash sides of one account.
        return None

    def _fee(self, record: FirstradeRecord, _: None) -> Trade | None:
        if record.amount == ZERO:
            return None
        if record.mentions("FOREIGN"):
            fee_type = FeeType.FOREIGN_TRANSACTION_FEE
        elif record.mentions("WIRE"):
            fee_type = FeeType.WIRE_FEE
        elif record.mentions("ACH"):
            fee_type = FeeType.ACH_FEE
        else:
            fee_type = FeeType.OTHER
        return self._trade(
            record,
            TradeType.FEE,
            ticker=record.ticker,
            total_amount=record.amount,
            fee_info=FeeInfo(type=fee_type, amount=abs(record.amount)),
        )

    def _dividend(self, record: FirstradeRecord, _: None) -> Trade | None:
        net = abs(record.amount)
        if net == ZERO or not record.ticker:
            return None
        tax = extract_tax_withheld(record.description) or ZERO
        dividend_type = (
            DividendType.CAPITAL_GAIN if record.mentions("CAP GAIN") else DividendType.ORDINARY
        )
        info = DividendInfo(type=dividend_type, gross_amount=net + tax, tax_withheld=tax)
        return self._trade(
            record,
            TradeType.DIVIDEND,
            ticker=record.ticker,
            total_amount=info.net_amount,
            dividend_info=info,
        )

    def _interest(self, record: FirstradeRecord, _: None) -> Trade | None:
        if record.amount == ZERO:
            return None
        if record.mentions(*INTEREST_INCOME_MARKERS) or record.amount > ZERO:
            trade_type = TradeType.INTEREST_INCOME
        else:
            trade_type = TradeType.MARGIN_INTEREST
        return self._trade(record, trade_type, ticker="", total_amount=record.amount)

    def _dividend_reinvest(self, record: FirstradeRecord, _: None) -> Trade | None:
        quantity = abs(record.quantity)
        if quantity == ZERO or not record.ticker:
            return None
        price = extract_reinvest_price(record.description) or record.price
        return self._trade(
            record,
            TradeType.DIVIDEND_REINVEST,
            ticker=record.ticker,
            quantity=quantity,
            price=price,
            total_amount=-abs(record.amount),
        )

    def _option_event(self, record: FirstradeRecord, trade_type: TradeType) -> Trade | None:
        option = parse_firstrade_option_description(record.description)
        quantity = abs(record.quantity)
        if option is None or quantity == ZERO:
            return None
        return self._trade(
            record,
            trade_type,
            ticker=option.underlying_ticker,
            quantity=quantity,
            price=record.price,
            total_amount=record.amount,
            option_info=option,
        )

    def _option_expiration(self, record: FirstradeRecord, _: None) -> Trade | None:
        return self._option_event(record, TradeType.OPTION_EXPIRATION)

    def _option_assignment(self, record: FirstradeRecord, _: None) -> Trade | None:
        return self._option_event(record, TradeType.OPTION_ASSIGNMENT)

    def _trade_row(self, record: FirstradeRecord, _: None) -> Trade | None:
        is_buy = record.verb == ACTION_BUY
        commission = abs(record.commission) + abs(record.fee)
        quantity = abs(record.quantity)
        amount = abs(record.amount)
        total = -amount if is_buy else amount

        if _OPTION_PREFIX.match(record.text):
            option = parse_firstrade_option_description(record.description)
            if option is None:
                return None
            if record.mentions("OPEN CONTRACT"):
                trade_type = TradeType.OPTION_BUY_TO_OPEN if is_buy else TradeType.OPTION_SELL_TO_OPEN
            elif record.mentions("CLOSING CONTRACT"):
                trade_type = (
                    TradeType.OPTION_BUY_TO_CLOSE if is_buy else TradeType.OPTION_SELL_TO_CLOSE
                )
            else:
                trade_type = TradeType.OPTION_BUY if is_buy else TradeType.OPTION_SELL
            return self._trade(
                record,
                trade_type,
                ticker=option.underlying_ticker,
                quantity=quantity,
                price=record.price,
                total_amount=total,
                option_info=option,
                commission=commission,
            )

        if not record.ticker:
            return None
        return self._trade(
            record,
            TradeType.STOCK_BUY if is_buy else TradeType.STOCK_SELL,
            ticker=record.ticker,
            quantity=quantity,
            price=record.price,
            total_amount=total,
            commission=commission,
        )
