"""Categorization engine.

Runs a transaction through an ordered chain of strategies (user rules,
bank category mapping, keyword heuristics, default bucket) and returns
the first decision, labelled with the rule or strategy that produced it.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Sequence

from gastos.categorization.matching import CompiledRule, compile_rule, normalize_description
from gastos.categorization.store import RuleStore
from gastos.categorization.strategies import (
    CategorizationStrategy,
    DefaultStrategy,
    build_context,
    default_strategies,
)
from gastos.schemas.results import CategorizationResult
from gastos.schemas.rule import Rule, RuleTestResult
from gastos.schemas.transaction import RawTransaction

logger = logging.getLogger(__name__)


class CategorizationEngine:
    """Assign category, subcategory and confidence to raw transactions.

    The engine holds no per-call state. Each call (or each batch) reads a
    single snapshot of the rule store, so a concurrent rule edit is either
    fully visible or not visible at all.
    """

    def __init__(
        self,
        store: RuleStore | None = None,
        strategies: Sequence[CategorizationStrategy] | None = None,
    ):
        self.store = store if store is not None else RuleStore()
        self.strategies: list[CategorizationStrategy] = list(strategies or default_strategies())
        self._fallback = DefaultStrategy()

    def categorize(
        self, transaction: RawTransaction, account_id: str | None = None
    ) -> CategorizationResult:
        """Categorize a single transaction.

        Args:
            transaction: Raw transaction to classify
            account_id: Account the transaction belongs to, for scoped rules

        Returns:
            CategorizationResult from the first strategy that matched
        """
        return self._run_chain(transaction, self.store.snapshot(), account_id)

    def categorize_batch(
        self, transactions: Iterable[RawTransaction], account_id: str | None = None
    ) -> list[CategorizationResult]:
        """Categorize a batch against one rule snapshot; output keeps input order."""
        rules = self.store.snapshot()
        results = [self._run_chain(txn, rules, account_id) for txn in transactions]
        logger.debug(
            "Categorized batch",
            extra={"count": len(results), "account_id": account_id, "rule_count": len(rules)},
        )
        return results

    def matching_rules(
        self, transaction: RawTransaction, account_id: str | None = None
    ) -> list[Rule]:
        """Every applicable rule whose pattern matches, in evaluation order."""
        description = normalize_description(transaction.description)
        return [
            compiled.rule
            for compiled in self.store.snapshot()
            if compiled.applies_to(account_id, transaction.amount) and compiled.matches(description)
        ]

    def test_rule(
        self, description: str, rule: Rule, amount: Decimal | None = None
    ) -> RuleTestResult:
        """Evaluate a rule that is not necessarily stored.

        The rule's active flag and account scope are ignored; its direction
        is only checked when an amount is given.
        """
        compiled = compile_rule(rule.model_copy(update={"active": True, "scope_account_id": None}))
        if amount is not None and not compiled.applies_to(None, amount):
            return RuleTestResult(matches=False)
        if compiled.matches(normalize_description(description)):
            return RuleTestResult(matches=True, confidence=compiled.confidence)
        return RuleTestResult(matches=False)

    def _run_chain(
        self,
        transaction: RawTransaction,
        rules: tuple[CompiledRule, ...],
        account_id: str | None,
    ) -> CategorizationResult:
        context = build_context(transaction, rules, account_id)
        for strategy in self.strategies:
            try:
                result = strategy.attempt(transaction, context)
            except Exception:
                logger.exception(
                    "Categorization strategy failed, trying next",
                    extra={"strategy": getattr(strategy, "name", type(strategy).__name__)},
                )
                continue
            if result is not None:
                return result
        return self._fallback.attempt(transaction, context)

