"""Transaction model: one imported statement line."""
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from gastos.models.base import BaseModel


class Transaction(BaseModel):
    """Imported bank transaction with its categorization."""

    __tablename__ = "transactions"

    account_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    running_balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    bank_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    applied_rule_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_manual: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    __table_args__ = (
        Index("ix_transactions_account_id_transaction_date", "account_id", "transaction_date"),
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, description={self.description}, amount={self.amount})>"
