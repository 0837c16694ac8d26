"""Parser exceptions.

Only container-level failures are raised. Problems with an individual row
never escape a parser: the row is dropped and, where it matters, a warning
string is returned alongside the trades.
"""

from __future__ import annotations


class ParserError(Exception):
    """Base exception for all broker parsing errors."""

    def __init__(self, broker: str, message: str) -> None:
        self.broker = broker
        self.message = message
        super().__init__(f"{broker}: {message}")


class InvalidContainerError(ParserError):
    """Raised when the file itself cannot be decoded.

    Covers empty input, bytes that are not UTF-8, malformed JSON, and a
    JSON document without a transaction array.
    """


class InvalidHeaderError(ParserError):
    """Raised when a CSV header does not match the broker's fixed layout."""

    def __init__(self, broker: str, expected: list[str], actual: list[str]) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            broker,
            f"invalid header. Expected: {', '.join(expected)}. Got: {', '.join(actual)}",
        )


class UnsupportedBrokerError(ParserError):
    """Raised when no parser is registered for the requested broker."""

    def __init__(self, broker: str) -> None:
        super().__init__(broker, "unsupported broker")
