"""Rule synthesis from manual category corrections.

When a user moves a transaction to a different category, a rule is
derived from its description so that similar transactions land in the
same place next time. Learned rules are only ever added: existing rules
are never removed or demoted.
"""

from __future__ import annotations

import logging
import re

from gastos.categorization.matching import normalize_description
from gastos.categorization.store import RuleStore
from gastos.config import settings
from gastos.schemas.rule import MatchKind, Rule, RuleOrigin
from gastos.schemas.transaction import RawTransaction, StoredTransaction

logger = logging.getLogger(__name__)

MIN_PATTERN_LENGTH = 3
MAX_SIGNIFICANT_WORDS = 3

STOP_WORDS = frozenset(
    {
        "de", "del", "la", "las", "el", "los", "en", "con", "por", "para", "una", "uno",
        "que", "sin", "sobre", "the", "and", "for", "with", "from",
        "pago", "compra", "tarjeta", "card", "payment", "fecha", "ref", "referencia",
        "concepto", "operacion", "operación", "movimiento",
    }
)

# Marker phrases mapped to a fixed pattern that the phrase itself matches.
# Longer phrases come first.
_MARKERS: list[tuple[re.Pattern[str], str, MatchKind]] = [
    (re.compile(r"\bbizum\b"), "BIZUM", MatchKind.CONTAINS),
    (re.compile(r"\bretirada cajero\b"), "RETIRADA CAJERO", MatchKind.CONTAINS),
    (re.compile(r"\bcash withdrawal\b"), "CASH WITHDRAWAL", MatchKind.CONTAINS),
    (re.compile(r"\bcajero\b"), "CAJERO", MatchKind.CONTAINS),
    (re.compile(r"\batm\b"), r"\bATM\b", MatchKind.REGEX),
    (re.compile(r"\btransferencia\b"), "TRANSFERENCIA", MatchKind.CONTAINS),
]

_MERCHANT = re.compile(r"\b(?:pago en|compra en|payment at)\s+([^\W_][\w&'.-]*)")
_WORD = re.compile(r"[^\W_]+")
_WORD_BOUNDARY = re.compile(r"\\b")


def extract_pattern(description: str | None) -> tuple[str, MatchKind] | None:
    """Derive a rule pattern from a transaction description.

    Heuristics, in order:
        1. Marker phrases (Bizum, cash withdrawal, bank transfer) map to a
           fixed pattern that the marker itself matches.
        2. "PAGO EN <merchant>", "COMPRA EN <merchant>" or
           "PAYMENT AT <merchant>" yields the merchant token.
        3. The first one to three significant words (longer than two
           characters, not stop words). One word gives a contains rule,
           several give a regex joining them with ``.*``.

    Returns:
        (pattern, match kind), or None when nothing of at least three
        characters can be extracted
    """
    text = normalize_description(description)
    if not text:
        return None

    for marker, pattern, kind in _MARKERS:
        if marker.search(text):
            return pattern, kind

    merchant = _MERCHANT.search(text)
    if merchant:
        token = merchant.group(1).strip(".-'").upper()
        if len(token) >= MIN_PATTERN_LENGTH:
            return token, MatchKind.CONTAINS

    words = [w for w in _WORD.findall(text) if len(w) > 2 and w not in STOP_WORDS]
    words = words[:MAX_SIGNIFICANT_WORDS]
    if not words:
        return None

    if len(words) == 1:
        pattern, kind = words[0].upper(), MatchKind.CONTAINS
    else:
        pattern, kind = ".*".join(re.escape(w.upper()) for w in words), MatchKind.REGEX

    if len(pattern) < MIN_PATTERN_LENGTH:
        return None
    return pattern, kind


class AutoLearner:
    """Generate and insert rules from user corrections."""

    def __init__(self, store: RuleStore, *, priority: int | None = None):
        self.store = store
        self.priority = priority if priority is not None else settings.auto_learn_priority

    def on_user_correction(
        self,
        transaction: RawTransaction | StoredTransaction,
        new_category: str,
        new_subcategory: str | None = None,
        account_id: str | None = None,
    ) -> Rule | None:
        """Learn a rule from a manual correction.

        Args:
            transaction: The corrected transaction
            new_category: Category chosen by the user
            new_subcategory: Subcategory chosen by the user
            account_id: Account the learned rule is scoped to; defaults to the
                transaction's own account when it has one

        Returns:
            The inserted rule, or None when no usable pattern was found or an
            identical learned rule already exists
        """
        if account_id is None:
            account_id = getattr(transaction, "account_id", None)

        extracted = extract_pattern(transaction.description)
        if extracted is None:
            logger.info(
                "No usable pattern in corrected transaction",
                extra={"account_id": account_id, "category": new_category},
            )
            return None
        pattern, kind = extracted

        existing = self._find_identical(pattern, kind, new_category, new_subcategory, account_id)
        if existing is not None:
            logger.debug("Identical learned rule already present", extra={"rule_id": existing.id})
            return None

        rule = Rule(
            name=f"Auto: {_display_name(pattern, kind)}",
            pattern=pattern,
            match_kind=kind,
            category=new_category,
            subcategory=new_subcategory,
            priority=self.priority,
            active=True,
            scope_account_id=account_id,
            origin=RuleOrigin.LEARNED,
        )
        added = self.store.add_rule(rule)
        if added is not None:
            logger.info(
                "Learned rule from correction",
                extra={
                    "rule_id": added.id,
                    "match_kind": kind.value,
                    "category": new_category,
                    "account_id": account_id,
                },
            )
        return added

    def _find_identical(
        self,
        pattern: str,
        kind: MatchKind,
        category: str,
        subcategory: str | None,
        account_id: str | None,
    ) -> Rule | None:
        for rule in self.store.get_rules():
            if (
                rule.origin is RuleOrigin.LEARNED
                and rule.match_kind is kind
                and rule.pattern.casefold() == pattern.casefold()
                and rule.category == category
                and rule.subcategory == subcategory
                and rule.scope_account_id == account_id
            ):
                return rule
        return None


def _display_name(pattern: str, kind: MatchKind) -> str:
    if kind is MatchKind.REGEX:
        parts = (_WORD_BOUNDARY.sub("", part) for part in pattern.split(".*"))
        return " ".join(part.replace("\\", "") for part in parts)
    return pattern
