"""Serialize trades to JSON or flat CSV."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from typing import Any

from tradenorm.models import Trade

CSV_COLUMNS = [
    "id",
    "trade_date",
    "type",
    "ticker",
    "quantity",
    "price",
    "total_amount",
    "commission",
    "option_type",
    "strike_price",
    "expiration_date",
    "dividend_type",
    "gross_amount",
    "tax_withheld",
    "fee_type",
    "fee_amount",
    "note",
    "raw_source",
]


def trades_to_json(trades: Iterable[Trade], indent: int | None = 2) -> str:
    """Render trades as a JSON array. Decimals are emitted as strings."""
    return json.dumps([t.model_dump(mode="json") for t in trades], indent=indent)


def trade_to_row(trade: Trade) -> dict[str, Any]:
    """Flatten a trade and its info object into one CSV row."""
    row: dict[str, Any] = {
        "id": str(trade.id),
        "trade_date": trade.trade_date.isoformat(),
        "type": trade.type.value,
        "ticker": trade.ticker,
        "quantity": str(trade.quantity),
        "price": str(trade.price),
        "total_amount": str(trade.total_amount),
        "commission": str(trade.commission),
        "note": trade.note,
        "raw_source": trade.raw_source,
    }
    if trade.option_info is not None:
        row["option_type"] = trade.option_info.option_type.value
        row["strike_price"] = str(trade.option_info.strike_price)
        row["expiration_date"] = trade.option_info.expiration_date.isoformat()
    if trade.dividend_info is not None:
        row["dividend_type"] = trade.dividend_info.type.value
        row["gross_amount"] = str(trade.dividend_info.gross_amount)
        row["tax_withheld"] = str(trade.dividend_info.tax_withheld)
    if trade.fee_info is not None:
        row["fee_type"] = trade.fee_info.type.value
        row["fee_amount"] = str(trade.fee_info.amount)
    return row


def trades_to_csv(trades: Iterable[Trade]) -> str:
    """Render trades as CSV with a header row, one trade per line."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, restval="", lineterminator="\n")
    writer.writeheader()
    writer.writerows(trade_to_row(t) for t in trades)
    return buffer.getvalue()
