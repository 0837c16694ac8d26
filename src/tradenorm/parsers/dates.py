"""Date parsing for broker exports.

Trade dates carry no time of day in either export. They are anchored at
the market open in New York so that every trade on the same calendar day
compares equal and day-level ordering is stable.
"""

from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

MARKET_TZ = ZoneInfo("America/New_York")
MARKET_OPEN = time(9, 30)


def at_market_open(day: date) -> datetime:
    return datetime.combine(day, MARKET_OPEN, tzinfo=MARKET_TZ)


def parse_date(text: str, fmt: str) -> date | None:
    """Parse `text` with a strptime format, returning None on mismatch."""
    try:
        return datetime.strptime(text.strip(), fmt).date()
    except ValueError:
        return None


def parse_schwab_date(text: str) -> datetime | None:
    """Parse 'MM/DD/YYYY' or 'MM/DD/YYYY as of MM/DD/YYYY'.

    The posting date (the first one) wins over the "as of" date.
    """
    primary = text.strip().split(" as of ", 1)[0]
    day = parse_date(primary, "%m/%d/%Y")
    return at_market_open(day) if day else None


def parse_firstrade_date(text: str) -> datetime | None:
    """Parse a Firstrade 'YYYY-MM-DD' trade date."""
    day = parse_date(text, "%Y-%m-%d")
    return at_market_open(day) if day else None
