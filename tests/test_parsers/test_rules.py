"""Tests for the ordered rule table."""

from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from tradenorm.models import Trade, TradeType
from tradenorm.parsers.rules import Rule, apply_rules, first_match


def _deposit(record: str, context: list[str]) -> Trade:
    context.append(record)
    return Trade(
        type=TradeType.DEPOSIT,
        ticker="",
        quantity=Decimal("0"),
        price=Decimal("0"),
        total_amount=Decimal("100"),
        trade_date=datetime(2025, 1, 2, 9, 30, tzinfo=ZoneInfo("America/New_York")),
        note=record,
    )


def _drop(record: str, context: list[str]) -> None:
    context.append(record)
    return None


RULES = [
    Rule("transfer", lambda r: "XFER" in r, _drop),
    Rule("deposit", lambda r: "DEPOSIT" in r, _deposit),
    Rule("catch-all deposit", lambda r: True, _deposit),
]


class TestFirstMatch:
    def test_first_rule_wins(self):
        assert first_match(RULES, "XFER DEPOSIT").name == "transfer"

    def test_falls_through_in_order(self):
        assert first_match(RULES, "ACH DEPOSIT").name == "deposit"

    def test_no_match(self):
        assert first_match(RULES[:2], "ATM") is None


class TestApplyRules:
    def test_handler_result_returned(self):
        seen: list[str] = []
        trade = apply_rules(RULES, "ACH DEPOSIT", seen)
        assert trade.type is TradeType.DEPOSIT
        assert trade.note == "ACH DEPOSIT"
        assert seen == ["ACH DEPOSIT"]

    def test_claimed_row_dropped_without_consulting_later_rules(self):
        seen: list[str] = []
        assert apply_rules(RULES, "XFER DEPOSIT", seen) is None
        assert seen == ["XFER DEPOSIT"]

    def test_unmatched_row_dropped(self):
        seen: list[str] = []
        assert apply_rules(RULES[:2], "ATM", seen) is None
        assert seen == []
