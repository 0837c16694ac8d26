"""Look up a broker parser by enum, name or alias."""

from __future__ import annotations

import logging

from tradenorm.parsers.base import BrokerParser, SupportedBroker
from tradenorm.parsers.errors import UnsupportedBrokerError
from tradenorm.parsers.firstrade import FirstradeParser
from tradenorm.parsers.schwab import SchwabParser

logger = logging.getLogger(__name__)

PARSERS: dict[SupportedBroker, type[BrokerParser]] = {
    SupportedBroker.CHARLES_SCHWAB: SchwabParser,
    SupportedBroker.FIRSTRADE: FirstradeParser,
}

ALIASES: dict[str, SupportedBroker] = {
    "schwab": SupportedBroker.CHARLES_SCHWAB,
    "charles schwab": SupportedBroker.CHARLES_SCHWAB,
    "charles-schwab": SupportedBroker.CHARLES_SCHWAB,
    "cs": SupportedBroker.CHARLES_SCHWAB,
    "first trade": SupportedBroker.FIRSTRADE,
    "ft": SupportedBroker.FIRSTRADE,
}


def resolve_broker(broker: SupportedBroker | str) -> SupportedBroker:
    """Normalize a broker enum, value, display name or alias to the enum."""
    if isinstance(broker, SupportedBroker):
        return broker
    key = broker.strip().lower()
    for candidate in SupportedBroker:
        if key in (candidate.value, candidate.display_name.lower()):
            return candidate
    if key in ALIASES:
        return ALIASES[key]
    raise UnsupportedBrokerError(broker)


def get_parser(broker: SupportedBroker | str, strict_numbers: bool = False) -> BrokerParser:
    """Instantiate the parser registered for `broker`.

    Raises:
        UnsupportedBrokerError: If the broker is unknown.
    """
    resolved = resolve_broker(broker)
    parser_cls = PARSERS.get(resolved)
    if parser_cls is None:
        raise UnsupportedBrokerError(resolved.value)
    logger.debug("Using %s for %s", parser_cls.__name__, resolved.display_name)
    return parser_cls(strict_numbers=strict_numbers)


def supported_brokers() -> list[SupportedBroker]:
    return list(PARSERS)
