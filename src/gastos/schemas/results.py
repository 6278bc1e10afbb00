"""Decision outputs of the categorization engine and the duplicate detector."""

from pydantic import BaseModel, Field

from gastos.schemas.transaction import StoredTransaction


class CategorizationResult(BaseModel):
    """Category decision for one transaction, with an audit label."""

    category: str
    subcategory: str | None = None
    confidence: int = Field(..., ge=0, le=100)
    applied_rule_name: str = Field(..., min_length=1, description="Rule name or strategy label")


class DuplicateResult(BaseModel):
    """Duplicate judgment for one candidate against the stored window."""

    is_duplicate: bool
    confidence: int = Field(..., ge=0, le=100)
    reason: str
    matched_transaction: StoredTransaction | None = None
