"""Rule predicates.

Descriptions and patterns are compared after the same normalization
(trimmed, whitespace collapsed, case-folded). Regex rules are compiled
once, when the rule is loaded into the store; a pattern that does not
compile is kept but never matches.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from gastos.schemas.rule import Direction, MatchKind, Rule

logger = logging.getLogger(__name__)

# Fixed confidence per match kind.
CONFIDENCE_BY_KIND: dict[MatchKind, int] = {
    MatchKind.EXACT: 100,
    MatchKind.REGEX: 95,
    MatchKind.STARTS_WITH: 90,
    MatchKind.CONTAINS: 85,
    MatchKind.ENDS_WITH: 80,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_description(text: str | None) -> str:
    """Trim, collapse whitespace and case-fold a description or pattern."""
    return _WHITESPACE.sub(" ", (text or "").strip()).casefold()


def amount_sign(amount: Decimal | float | int | None) -> int:
    """Return 1 for income, -1 for expenses and 0 for zero or unusable amounts."""
    try:
        if amount > 0:
            return 1
        if amount < 0:
            return -1
    except (TypeError, InvalidOperation):
        pass
    return 0


@dataclass(frozen=True)
class CompiledRule:
    """A rule plus everything needed to evaluate it without recompiling."""

    rule: Rule
    sequence: int
    needle: str
    regex: re.Pattern[str] | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.rule.priority, self.sequence)

    @property
    def confidence(self) -> int:
        return CONFIDENCE_BY_KIND[self.rule.match_kind]

    def applies_to(self, account_id: str | None, amount: Decimal | None) -> bool:
        """Check the non-textual conditions: active flag, account scope, direction."""
        rule = self.rule
        if not rule.active:
            return False
        if rule.scope_account_id is not None and rule.scope_account_id != account_id:
            return False
        if rule.direction is Direction.INCOME and amount_sign(amount) <= 0:
            return False
        if rule.direction is Direction.EXPENSE and amount_sign(amount) >= 0:
            return False
        return True

    def matches(self, description: str) -> bool:
        """Evaluate the pattern against an already normalized description."""
        kind = self.rule.match_kind
        if kind is MatchKind.REGEX:
            return self.regex is not None and self.regex.search(description) is not None
        if not self.needle:
            return False
        if kind is MatchKind.CONTAINS:
            return self.needle in description
        if kind is MatchKind.STARTS_WITH:
            return description.startswith(self.needle)
        if kind is MatchKind.ENDS_WITH:
            return description.endswith(self.needle)
        if kind is MatchKind.EXACT:
            return description == self.needle
        return False


def compile_rule(rule: Rule, sequence: int = 0) -> CompiledRule:
    """Prepare a rule for evaluation.

    Args:
        rule: Rule definition
        sequence: Insertion order, used to break priority ties

    Returns:
        CompiledRule; regex rules with an invalid pattern get ``regex=None``
    """
    regex = None
    if rule.match_kind is MatchKind.REGEX:
        try:
            regex = re.compile(rule.pattern, re.IGNORECASE)
        except re.error as e:
            logger.warning(
                "Invalid regex in rule, it will never match",
                extra={"rule_id": rule.id, "rule_name": rule.name, "error": str(e)},
            )
    return CompiledRule(
        rule=rule,
        sequence=sequence,
        needle=normalize_description(rule.pattern),
        regex=regex,
    )


def is_valid_regex(pattern: str) -> bool:
    """Check whether a pattern compiles, without raising."""
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True
