"""Tests for the free-text extractors."""

from datetime import date
from decimal import Decimal

from tradenorm.models import OptionType
from tradenorm.parsers.patterns import (
    extract_company_name,
    extract_parenthesized_symbol,
    extract_reinvest_price,
    extract_tax_withheld,
    is_cusip,
    parse_firstrade_option_description,
    parse_schwab_option_symbol,
)


class TestSchwabOptionSymbol:
    def test_call(self):
        option = parse_schwab_option_symbol("AAPL 01/17/2025 150.00 C")
        assert option is not None
        assert option.underlying_ticker == "AAPL"
        assert option.option_type is OptionType.CALL
        assert option.strike_price == Decimal("150.00")
        assert option.expiration_date == date(2025, 1, 17)

    def test_put_with_fractional_strike(self):
        option = parse_schwab_option_symbol("IMMR 02/20/2026 5.50 P")
        assert option.option_type is OptionType.PUT
        assert option.strike_price == Decimal("5.50")

    def test_dotted_ticker(self):
        option = parse_schwab_option_symbol("BRK.B 06/20/2025 400 C")
        assert option.underlying_ticker == "BRK.B"

    def test_plain_ticker_is_not_an_option(self):
        assert parse_schwab_option_symbol("AAPL") is None

    def test_invalid_calendar_date(self):
        assert parse_schwab_option_symbol("AAPL 02/30/2025 150 C") is None


class TestFirstradeOptionDescription:
    def test_put_with_padding(self):
        option = parse_firstrade_option_description(
            "PUT  HIMS   11/07/25    45     HIMS & HERS HEALTH INC CL A    UNSOLICITED"
        )
        assert option is not None
        assert option.underlying_ticker == "HIMS"
        assert option.option_type is OptionType.PUT
        assert option.strike_price == Decimal("45")
        assert option.expiration_date == date(2025, 11, 7)

    def test_call_fractional_strike(self):
        option = parse_firstrade_option_description("CALL LUMN   01/16/26     5.50  LUMEN TECHNOLOGIES")
        assert option.option_type is OptionType.CALL
        assert option.strike_price == Decimal("5.50")

    def test_leading_asterisks(self):
        option = parse_firstrade_option_description("***CALL AAPL 01/17/25 150 APPLE INC EXPIRED")
        assert option.underlying_ticker == "AAPL"

    def test_stock_description(self):
        assert parse_firstrade_option_description("APPLE INC") is None


class TestExtractors:
    def test_tax_withheld(self):
        desc = "COCA COLA CO CASH DIV ON 50 SHS NON-RES TAX WITHHELD $1.58"
        assert extract_tax_withheld(desc) == Decimal("1.58")

    def test_tax_withheld_missing(self):
        assert extract_tax_withheld("PAGSEGURO DIGITAL CASH DIV") is None

    def test_reinvest_price(self):
        desc = "COCA COLA COMPANY (THE) REIN @  70.8300 REC 09/15/25"
        assert extract_reinvest_price(desc) == Decimal("70.8300")

    def test_reinvest_price_missing(self):
        assert extract_reinvest_price("COCA COLA COMPANY") is None

    def test_parenthesized_symbol(self):
        assert extract_parenthesized_symbol("W-8 WITHHOLDING (NVDA)") == "NVDA"
        assert extract_parenthesized_symbol("W-8 WITHHOLDING") is None


class TestCompanyName:
    def test_cut_at_class_suffix(self):
        assert extract_company_name("LUCID GROUP INC COM CL A") == "LUCID GROUP"

    def test_corp_suffix_cuts_before_series(self):
        assert extract_company_name("CHURCHILL CAPITAL CORP IV COM CL A") == "CHURCHILL CAPITAL"

    def test_earliest_suffix_wins(self):
        assert extract_company_name("ACME INC COMMON STOCK") == "ACME"

    def test_no_suffix_keeps_whole_description(self):
        assert extract_company_name("apple inc") == "APPLE INC"

    def test_too_short(self):
        assert extract_company_name("AB COMMON") is None


class TestIsCusip:
    def test_nine_char_cusip(self):
        assert is_cusip("42984L105")

    def test_all_digits(self):
        assert is_cusip("123")

    def test_tickers(self):
        assert not is_cusip("AAPL")
        assert not is_cusip("BRK.B")
        assert not is_cusip("")
