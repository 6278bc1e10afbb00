"""Rule management and manual corrections.

Keeps the in-memory rule store and the ``categorization_rules`` table in
step: every change is applied to the store and saved, and the store is
rebuilt from seeds plus persisted rules at startup.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gastos.categorization.learning import AutoLearner
from gastos.categorization.matching import is_valid_regex
from gastos.categorization.seed import default_rules
from gastos.categorization.store import RuleStore
from gastos.config import settings
from gastos.core.exceptions import InvalidRuleError, RuleNotFoundError, TransactionNotFoundError
from gastos.repositories.rule import RuleRepository
from gastos.repositories.transaction import TransactionRepository
from gastos.schemas.rule import MatchKind, Rule, RuleCreate, RuleOrigin, RuleUpdate
from gastos.schemas.transaction import CategoryCorrectionResponse, StoredTransaction

logger = logging.getLogger(__name__)

MANUAL_RULE_NAME = "Manual"


def _ensure_valid_pattern(pattern: str, match_kind: MatchKind) -> None:
    if match_kind is MatchKind.REGEX and not is_valid_regex(pattern):
        raise InvalidRuleError("RULE_002", {"pattern": pattern}, http_status=400)


class RuleService:
    """Service for rule CRUD and learning from corrections."""

    def __init__(self, db: AsyncSession, store: RuleStore):
        self.db = db
        self.store = store
        self.rules = RuleRepository(db)
        self.transactions = TransactionRepository(db)

    async def load_store(self) -> int:
        """Rebuild the store from seed rules and persisted rules.

        A persisted rule with the id of a seed rule replaces it.

        Returns:
            Number of rules loaded
        """
        merged = {rule.id: rule for rule in default_rules()}
        persisted = await self.rules.list_rules()
        for rule in persisted:
            merged[rule.id] = rule
        self.store.replace_all(merged.values())
        logger.info(
            "Rule store loaded",
            extra={"rule_count": len(merged), "persisted": len(persisted)},
        )
        return len(merged)

    def list_rules(self) -> list[Rule]:
        return self.store.get_rules()

    async def create_rule(self, data: RuleCreate) -> Rule:
        """Validate, store and persist a new user rule.

        Raises:
            InvalidRuleError: RULE_002 for an invalid regex, RULE_003 for a taken id
        """
        _ensure_valid_pattern(data.pattern, data.match_kind)

        fields = data.model_dump(exclude_none=True)
        fields.setdefault("priority", settings.user_rule_priority)
        rule = Rule(**fields, origin=RuleOrigin.USER)

        if rule.id in self.store:
            raise InvalidRuleError("RULE_003", {"rule_id": rule.id}, http_status=409)

        await self.rules.save(rule)
        if self.store.add_rule(rule) is None:
            raise InvalidRuleError("RULE_003", {"rule_id": rule.id}, http_status=409)
        return rule

    async def update_rule(self, rule_id: str, changes: RuleUpdate) -> Rule:
        """Apply a partial update to a rule and persist it.

        Raises:
            RuleNotFoundError: If the id is unknown
            InvalidRuleError: If the resulting regex does not compile (RULE_002)
                or the merged rule is invalid (VAL_001)
        """
        current = self.store.get_rule(rule_id)
        if current is None:
            raise RuleNotFoundError(rule_id)

        patch = changes.model_dump(exclude_unset=True)
        _ensure_valid_pattern(
            patch.get("pattern", current.pattern),
            patch.get("match_kind") or current.match_kind,
        )

        updated = self.store.update_rule(rule_id, patch)
        if updated is None:
            if rule_id not in self.store:
                raise RuleNotFoundError(rule_id)
            raise InvalidRuleError("VAL_001", {"rule_id": rule_id}, http_status=400)
        await self.rules.save(updated)
        return updated

    async def delete_rule(self, rule_id: str) -> None:
        """Remove a rule from the store and from storage.

        Raises:
            RuleNotFoundError: If the id is unknown
        """
        if not self.store.remove_rule(rule_id):
            raise RuleNotFoundError(rule_id)
        await self.rules.delete(rule_id)

    async def apply_correction(
        self, transaction_id: UUID, category: str, subcategory: str | None = None
    ) -> CategoryCorrectionResponse:
        """Recategorize a stored transaction by hand and learn from it.

        A rule is only learned when the category or subcategory actually
        changes.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
        """
        txn = await self.transactions.get_by_id(transaction_id)
        if txn is None or txn.deleted_at is not None:
            raise TransactionNotFoundError(transaction_id)

        changed = (txn.category, txn.subcategory) != (category, subcategory)
        snapshot = StoredTransaction.model_validate(txn)

        txn.category = category
        txn.subcategory = subcategory
        txn.confidence = 100
        txn.applied_rule_name = MANUAL_RULE_NAME
        txn.is_manual = True
        await self.db.commit()

        learned = None
        if changed:
            learner = AutoLearner(self.store)
            learned = learner.on_user_correction(
                snapshot, category, subcategory, account_id=txn.account_id
            )
            if learned is not None:
                await self.rules.save(learned)

        logger.info(
            "Transaction recategorized",
            extra={
                "transaction_id": str(transaction_id),
                "changed": changed,
                "learned_rule_id": learned.id if learned else None,
            },
        )
        return CategoryCorrectionResponse(
            transaction_id=transaction_id,
            category=category,
            subcategory=subcategory,
            learned_rule_id=learned.id if learned else None,
        )
