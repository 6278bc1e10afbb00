"""Transaction repository with window and identity queries."""
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastos.models.transaction import Transaction
from gastos.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_by_account(
        self, account_id: str, skip: int = 0, limit: int = 100
    ) -> list[Transaction]:
        """Get all transactions for an account with pagination."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id, Transaction.deleted_at.is_(None))
            .order_by(Transaction.transaction_date.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_window(
        self, account_id: str, start_date: date, end_date: date, margin_days: int = 0
    ) -> list[Transaction]:
        """Transactions of an account between two dates, widened by a margin.

        This is the reference window handed to the duplicate detector.
        """
        result = await self.db.execute(
            select(Transaction)
            .where(
                Transaction.account_id == account_id,
                Transaction.deleted_at.is_(None),
                Transaction.transaction_date >= start_date - timedelta(days=margin_days),
                Transaction.transaction_date <= end_date + timedelta(days=margin_days),
            )
            .order_by(Transaction.transaction_date, Transaction.created_at)
        )
        return list(result.scalars().all())

    async def get_by_fingerprint(self, fingerprint: str) -> Transaction | None:
        result = await self.db.execute(
            select(Transaction).where(Transaction.fingerprint == fingerprint)
        )
        return result.scalar_one_or_none()
