"""Abstract base class for broker export parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import ClassVar, Generic, NamedTuple, TypeVar
from uuid import UUID, uuid5

from tradenorm.models import Trade, sort_trades

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

_TRADE_ID_NAMESPACE = UUID("6f1c0a52-3b7e-4d0f-9a51-2c8e4f7d9b10")


class FileFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    XML = "xml"

    @property
    def file_extension(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.value.upper()


class SupportedBroker(str, Enum):
    CHARLES_SCHWAB = "charles_schwab"
    FIRSTRADE = "firstrade"

    @property
    def display_name(self) -> str:
        return {
            SupportedBroker.CHARLES_SCHWAB: "Charles Schwab",
            SupportedBroker.FIRSTRADE: "Firstrade",
        }[self]

    @property
    def supported_formats(self) -> tuple[FileFormat, ...]:
        if self is SupportedBroker.CHARLES_SCHWAB:
            return (FileFormat.JSON,)
        return (FileFormat.CSV,)


class ParseResult(NamedTuple):
    trades: list[Trade]
    warnings: list[str]


def make_trade_id(broker: SupportedBroker, position: str) -> UUID:
    """Deterministic trade id from the broker and the source row position.

    Parsing the same bytes twice yields identical ids.
    """
    return uuid5(_TRADE_ID_NAMESPACE, f"{broker.value}:{position}")


class BrokerParser(ABC, Generic[RecordT]):
    """Interface that all broker parsers must implement.

    A parse is two steps: `decode` turns the raw bytes of one file into
    broker-shaped records, then `extract_trades` classifies a list of
    records into canonical trades. Neither step keeps state between calls.
    """

    broker: ClassVar[SupportedBroker]

    # When True, records from several files are pooled before classification
    # so that cross-record lookups can see every file.
    combine_files: ClassVar[bool] = False

    @property
    def name(self) -> str:
        """Display name of the broker, e.g. 'Charles Schwab'."""
        return self.broker.display_name

    @property
    def supported_formats(self) -> tuple[FileFormat, ...]:
        return self.broker.supported_formats

    @abstractmethod
    def decode(self, data: bytes, file_index: int = 0) -> tuple[list[RecordT], list[str]]:
        """Decode one export file into raw records.

        Args:
            data: Raw file bytes.
            file_index: Position of this file in a multi-file parse, used to
                give every record a unique position.

        Returns:
            The decoded records in file order, plus warnings for rows that
            were skipped.

        Raises:
            ParserError: If the container itself cannot be decoded.
        """
        ...

    @abstractmethod
    def extract_trades(self, records: list[RecordT]) -> ParseResult:
        """Classify raw records into trades, sorted by `sort_trades`."""
        ...

    def parse_with_warnings(self, data: bytes) -> ParseResult:
        return self.parse_multiple_with_warnings([data])

    def parse(self, data: bytes) -> list[Trade]:
        """Parse one file and discard warnings."""
        return self.parse_with_warnings(data).trades

    def parse_multiple_with_warnings(
        self, datas: Iterable[bytes], combine: bool | None = None
    ) -> ParseResult:
        """Parse several files of this broker's format.

        Files are processed in order. When combining (the parser's
        `combine_files` unless `combine` overrides it) the records are pooled
        into one classification pass, otherwise each file is classified on
        its own and the results are merged and re-sorted. Either way every
        record keeps a distinct file index.
        """
        if combine is None:
            combine = self.combine_files
        warnings: list[str] = []
        if combine:
            records: list[RecordT] = []
            for file_index, data in enumerate(datas):
                decoded, decode_warnings = self.decode(data, file_index)
                records.extend(decoded)
                warnings.extend(decode_warnings)
            result = self.extract_trades(records)
            trades = result.trades
            warnings.extend(result.warnings)
        else:
            trades = []
            for file_index, data in enumerate(datas):
                decoded, decode_warnings = self.decode(data, file_index)
                warnings.extend(decode_warnings)
                result = self.extract_trades(decoded)
                trades.extend(result.trades)
                warnings.extend(result.warnings)
            trades = sort_trades(trades)

        logger.info(
            "%s: parsed %d trades with %d warnings", self.name, len(trades), len(warnings)
        )
        return ParseResult(trades, warnings)

    def parse_file(self, path: Path | str) -> ParseResult:
        return self.parse_with_warnings(Path(path).read_bytes())

    def parse_files(
        self, paths: Iterable[Path | str], combine: bool | None = None
    ) -> ParseResult:
        return self.parse_multiple_with_warnings((Path(p).read_bytes() for p in paths), combine)
