"""Extractors for sub-structures embedded in free-text export fields.

Each function is total: it returns None (or False) when the text does not
match, and never raises.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from tradenorm.models import OptionInfo, OptionType
from tradenorm.money import clean_number
from tradenorm.parsers.dates import parse_date

# Schwab option symbol: "IMMR 02/20/2026 5.00 C"
_SCHWAB_OPTION = re.compile(
    r"^([A-Z]+(?:\.[A-Z]+)?)\s+(\d{2}/\d{2}/\d{4})\s+(\d+(?:\.\d+)?)\s+([CP])$",
    re.IGNORECASE,
)

# Firstrade option description: "PUT  HIMS   11/07/25    45     HIMS & HERS ..."
_FIRSTRADE_OPTION = re.compile(
    r"^[*\s]*(CALL|PUT)\s+([A-Z]+(?:\.[A-Z]+)?)\s+(\d{2}/\d{2}/\d{2})\s+(\d+(?:\.\d+)?)(?=\s|$)",
    re.IGNORECASE,
)

_TAX_WITHHELD = re.compile(r"TAX WITHHELD\s+\$\s*(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE)
_REINVEST_PRICE = re.compile(r"REIN\s*@\s*(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE)
_TRAILING_PARENS = re.compile(r"\(\s*([A-Z][A-Z0-9.]{0,9})\s*\)\s*$")

# Ordered markers at which a security description is cut down to the
# company name. Leading/trailing spaces are significant.
COMPANY_SUFFIXES = (
    " COM CL A",
    " COM CL B",
    " COM CL C",
    " COM CLASS A",
    " COM CLASS B",
    " COMMON",
    " COM ",
    " CL A",
    " CL B",
    " 1:1 EXC",
    " 1:1 EXCHANGE",
    " INC ",
    " CORP ",
    " LTD ",
    " LLC ",
    " AUTO REORG",
)
MIN_COMPANY_NAME_LENGTH = 3


def _to_decimal(text: str) -> Decimal | None:
    try:
        return Decimal(clean_number(text))
    except InvalidOperation:
        return None


def _build_option(
    ticker: str, kind: str, expiry: str, expiry_fmt: str, strike: str
) -> OptionInfo | None:
    expiration = parse_date(expiry, expiry_fmt)
    strike_price = _to_decimal(strike)
    if expiration is None or strike_price is None:
        return None
    option_type = OptionType.CALL if kind.upper().startswith("C") else OptionType.PUT
    return OptionInfo(
        underlying_ticker=ticker.upper(),
        option_type=option_type,
        strike_price=strike_price,
        expiration_date=expiration,
    )


def parse_schwab_option_symbol(symbol: str) -> OptionInfo | None:
    """Parse a Schwab option symbol like 'AAPL 01/17/2025 150.00 C'."""
    m = _SCHWAB_OPTION.match(symbol.strip())
    if not m:
        return None
    ticker, expiry, strike, kind = m.groups()
    return _build_option(ticker, kind, expiry, "%m/%d/%Y", strike)


def parse_firstrade_option_description(description: str) -> OptionInfo | None:
    """Parse a Firstrade option description like 'CALL AAPL 01/17/25 150 APPLE INC'."""
    m = _FIRSTRADE_OPTION.match(description)
    if not m:
        return None
    kind, ticker, expiry, strike = m.groups()
    return _build_option(ticker, kind, expiry, "%m/%d/%y", strike)


def extract_tax_withheld(description: str) -> Decimal | None:
    """Find 'TAX WITHHELD $1.58' in a description and return 1.58."""
    m = _TAX_WITHHELD.search(description)
    return _to_decimal(m.group(1)) if m else None


def extract_reinvest_price(description: str) -> Decimal | None:
    """Find 'REIN @ 70.8300' in a description and return 70.8300."""
    m = _REINVEST_PRICE.search(description)
    return _to_decimal(m.group(1)) if m else None


def extract_company_name(description: str) -> str | None:
    """Cut a security description down to a company-name join key.

    "CHURCHILL CAPITAL CORP IV COM CL A" -> "CHURCHILL CAPITAL"

    The result is only used to match CUSIP rows against ticker rows, never
    shown to users. Names shorter than three characters are rejected.
    """
    desc = description.upper()
    cut = len(desc)
    for suffix in COMPANY_SUFFIXES:
        pos = desc.find(suffix)
        if pos != -1 and pos < cut:
            cut = pos
    name = desc[:cut].strip()
    if len(name) < MIN_COMPANY_NAME_LENGTH:
        return None
    return name


def is_cusip(symbol: str) -> bool:
    """Heuristic: does this symbol field hold a CUSIP rather than a ticker?

    True when the symbol is all digits, or longer than five characters and
    contains a digit. Tickers are assumed to be at most five letters. This
    does not verify the CUSIP check digit.
    """
    s = symbol.strip()
    if not s:
        return False
    if s.isdigit():
        return True
    return len(s) > 5 and any(c.isdigit() for c in s)


def extract_parenthesized_symbol(description: str) -> str | None:
    """Return the ticker in a trailing '(XXXX)', e.g. 'W-8 WITHHOLDING (NVDA)'."""
    m = _TRAILING_PARENS.search(description.upper())
    return m.group(1) if m else None
