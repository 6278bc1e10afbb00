"""Primary-key access shared by the rule and transaction repositories."""
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from gastos.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Get, insert and delete one mapped model by primary key.

    Every write commits immediately.
    """

    def __init__(self, db: AsyncSession, model: type[ModelT]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: Any) -> ModelT | None:
        return await self.db.get(self.model, id)

    async def create(self, obj: ModelT) -> ModelT:
        """Insert a row and reload server-side defaults."""
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: Any) -> bool:
        """Delete a row; False when the key is unknown."""
        obj = await self.get_by_id(id)
        if obj is None:
            return False

        await self.db.delete(obj)
        await self.db.commit()
        return True
