"""Persisted categorization rule."""
from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gastos.models.base import Base, TimestampMixin


class CategorizationRule(TimestampMixin, Base):
    """User-defined or learned rule, reloaded into the rule store at startup.

    Rules keep the string id they have in the store, so seed rules can be
    overridden by persisting a row with the same id.
    """

    __tablename__ = "categorization_rules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pattern: Mapped[str] = mapped_column(String(500), nullable=False)
    match_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="contains")
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=100, index=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    scope_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    direction: Mapped[str | None] = mapped_column(String(10), nullable=True)
    origin: Mapped[str] = mapped_column(String(10), nullable=False, default="user")

    def __repr__(self) -> str:
        return f"<CategorizationRule(id={self.id}, name={self.name}, priority={self.priority})>"
