"""Transaction schemas shared by the engine, the detector and the API.

Amounts are signed decimals in the account currency: negative for
expenses, positive for income.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawTransaction(BaseModel):
    """A single record as produced by a statement parser.

    Never mutated by the engine.
    """

    model_config = ConfigDict(frozen=True)

    transaction_date: date = Field(..., description="Booking date")
    description: str = Field("", description="Free-text description from the bank")
    amount: Decimal = Field(..., description="Signed amount (negative = expense)")
    running_balance: Decimal | None = Field(None, description="Balance after the movement")
    bank_category: str | None = Field(None, description="Category provided by the bank export")
    bank_subcategory: str | None = Field(None, description="Subcategory provided by the bank export")

    @field_validator("description", mode="before")
    @classmethod
    def description_as_text(cls, v: object) -> str:
        """Treat a missing description as empty text."""
        return "" if v is None else str(v)

    @property
    def is_income(self) -> bool:
        return self.amount > 0


class StoredTransaction(BaseModel):
    """An already persisted transaction, used as a duplicate-window entry."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID | str | None = None
    account_id: str | None = None
    transaction_date: date
    description: str = ""
    amount: Decimal
    fingerprint: str | None = None
    category: str | None = None
    subcategory: str | None = None


class CategoryCorrectionRequest(BaseModel):
    """Manual change of a stored transaction's category."""

    category: str = Field(..., min_length=1, description="New category")
    subcategory: str | None = Field(None, description="New subcategory")


class CategoryCorrectionResponse(BaseModel):
    """Result of a manual correction, including any rule learned from it."""

    transaction_id: UUID
    category: str
    subcategory: str | None
    learned_rule_id: str | None = Field(
        None, description="Id of the rule generated from this correction, if any"
    )
