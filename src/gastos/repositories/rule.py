"""Categorization rule repository."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastos.models.rule import CategorizationRule
from gastos.repositories.base import BaseRepository
from gastos.schemas.rule import Rule


class RuleRepository(BaseRepository[CategorizationRule]):
    """Load-at-startup / save-on-change storage for the rule store."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, CategorizationRule)

    async def list_rules(self) -> list[Rule]:
        """All persisted rules, in priority then creation order."""
        result = await self.db.execute(
            select(CategorizationRule).order_by(
                CategorizationRule.priority, CategorizationRule.created_at
            )
        )
        return [Rule.model_validate(row) for row in result.scalars().all()]

    async def save(self, rule: Rule) -> CategorizationRule:
        """Insert or overwrite the row for a rule."""
        data = rule.model_dump(mode="json")
        row = await self.get_by_id(rule.id)
        if row is None:
            row = CategorizationRule(**data)
            self.db.add(row)
        else:
            for key, value in data.items():
                setattr(row, key, value)
        await self.db.commit()
        await self.db.refresh(row)
        return row
