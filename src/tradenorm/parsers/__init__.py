"""Broker parsers: turn raw export bytes into canonical trades."""

from tradenorm.parsers.base import (
    BrokerParser,
    FileFormat,
    ParseResult,
    SupportedBroker,
    make_trade_id,
)
from tradenorm.parsers.errors import (
    InvalidContainerError,
    InvalidHeaderError,
    ParserError,
    UnsupportedBrokerError,
)
from tradenorm.parsers.firstrade import FirstradeParser, FirstradeRecord
from tradenorm.parsers.schwab import SchwabParser, SchwabRawTransaction
from tradenorm.parsers.schwab_actions import ActionCategory, SchwabAction

__all__ = [
    # Base
    "BrokerParser",
    "FileFormat",
    "ParseResult",
    "SupportedBroker",
    "make_trade_id",
    # Errors
    "InvalidContainerError",
    "InvalidHeaderError",
    "ParserError",
    "UnsupportedBrokerError",
    # Charles Schwab (JSON)
    "ActionCategory",
    "SchwabAction",
    "SchwabParser",
    "SchwabRawTransaction",
    # Firstrade (CSV)
    "FirstradeParser",
    "FirstradeRecord",
]
