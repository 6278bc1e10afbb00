"""In-memory rule store.

The store is the only shared mutable state of the engine. Writers are
serialized with a lock and every mutation publishes a new, fully sorted
tuple of compiled rules; readers take that tuple with ``snapshot()`` and
never observe a partially applied change.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Iterable

from pydantic import ValidationError

from gastos.categorization.matching import CompiledRule, compile_rule
from gastos.categorization.seed import default_rules
from gastos.schemas.rule import Rule, RuleUpdate

logger = logging.getLogger(__name__)


class RuleStore:
    """Ordered, prioritized collection of categorization rules.

    Rules are ordered by ``(priority, insertion sequence)``; lower
    priority values are evaluated first and ties keep insertion order.
    """

    def __init__(self, initial_rules: Iterable[Rule] | None = None):
        self._lock = threading.RLock()
        self._sequence = itertools.count()
        self._by_id: dict[str, CompiledRule] = {}
        self._ordered: tuple[CompiledRule, ...] = ()

        rules = default_rules() if initial_rules is None else list(initial_rules)
        with self._lock:
            for rule in rules:
                if rule.id in self._by_id:
                    logger.warning("Skipping rule with repeated id", extra={"rule_id": rule.id})
                    continue
                self._by_id[rule.id] = compile_rule(rule, next(self._sequence))
            self._publish()

        logger.debug("Rule store initialized", extra={"rule_count": len(self._ordered)})

    def _publish(self) -> None:
        self._ordered = tuple(sorted(self._by_id.values(), key=lambda c: c.sort_key))

    def snapshot(self) -> tuple[CompiledRule, ...]:
        """Immutable, ordered view of the compiled rules."""
        return self._ordered

    def get_rules(self) -> list[Rule]:
        """All rules, active or not, in evaluation order."""
        return [compiled.rule for compiled in self._ordered]

    def get_rule(self, rule_id: str) -> Rule | None:
        compiled = self._by_id.get(rule_id)
        return compiled.rule if compiled else None

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def add_rule(self, rule: Rule) -> Rule | None:
        """Insert a rule.

        Returns:
            The stored rule, or None when a rule with the same id exists
        """
        with self._lock:
            if rule.id in self._by_id:
                logger.info("Rule id already present, not added", extra={"rule_id": rule.id})
                return None
            self._by_id[rule.id] = compile_rule(rule, next(self._sequence))
            self._publish()

        logger.info(
            "Rule added",
            extra={"rule_id": rule.id, "rule_name": rule.name, "priority": rule.priority},
        )
        return rule

    def update_rule(self, rule_id: str, changes: RuleUpdate | dict[str, Any]) -> Rule | None:
        """Merge the provided fields into an existing rule.

        Only fields explicitly present in ``changes`` are applied. The rule
        keeps its insertion sequence, so it only moves if its priority changed.

        Returns:
            The updated rule, or None when the id is unknown or the merged
            rule is invalid (the stored rule is left unchanged)
        """
        if isinstance(changes, RuleUpdate):
            changes = changes.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if k != "id"}

        with self._lock:
            current = self._by_id.get(rule_id)
            if current is None:
                return None
            try:
                merged = Rule.model_validate({**current.rule.model_dump(), **changes})
            except ValidationError as e:
                logger.warning(
                    "Rejected invalid rule update",
                    extra={"rule_id": rule_id, "fields": sorted(changes), "errors": e.error_count()},
                )
                return None
            self._by_id[rule_id] = compile_rule(merged, current.sequence)
            self._publish()

        logger.info("Rule updated", extra={"rule_id": rule_id, "fields": sorted(changes)})
        return merged

    def remove_rule(self, rule_id: str) -> bool:
        """Delete a rule. Returns False when the id is unknown."""
        with self._lock:
            if self._by_id.pop(rule_id, None) is None:
                return False
            self._publish()

        logger.info("Rule removed", extra={"rule_id": rule_id})
        return True

    def replace_all(self, rules: Iterable[Rule]) -> None:
        """Swap the whole rule set in one step (used when loading from storage)."""
        compiled: dict[str, CompiledRule] = {}
        with self._lock:
            for rule in rules:
                compiled[rule.id] = compile_rule(rule, next(self._sequence))
            self._by_id = compiled
            self._publish()
        logger.info("Rule store reloaded", extra={"rule_count": len(compiled)})
