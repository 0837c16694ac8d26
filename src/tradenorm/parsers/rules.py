"""Ordered classification rules with first-match-wins semantics."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from tradenorm.models import Trade

R = TypeVar("R")
C = TypeVar("C")


@dataclass(frozen=True)
class Rule(Generic[R, C]):
    """A named (predicate, handler) pair.

    `handle` may return None to drop a row the rule claimed; later rules
    are not consulted in that case.
    """

    name: str
    matches: Callable[[R], bool]
    handle: Callable[[R, C], Trade | None]


def first_match(rules: Sequence[Rule[R, C]], record: R) -> Rule[R, C] | None:
    """Return the first rule whose predicate accepts `record`."""
    for rule in rules:
        if rule.matches(record):
            return rule
    return None


def apply_rules(rules: Sequence[Rule[R, C]], record: R, context: C) -> Trade | None:
    """Classify `record` with the first matching rule; None when nothing matches."""
    rule = first_match(rules, record)
    if rule is None:
        return None
    return rule.handle(record, context)
