"""Import preview / commit schemas."""

from pydantic import BaseModel, Field

from gastos.schemas.results import CategorizationResult, DuplicateResult
from gastos.schemas.transaction import RawTransaction


class DecoratedTransaction(BaseModel):
    """A raw transaction with its categorization and duplicate verdict."""

    index: int = Field(..., ge=0, description="Position in the submitted batch")
    transaction: RawTransaction
    fingerprint: str
    categorization: CategorizationResult
    duplicate: DuplicateResult


class ImportStats(BaseModel):
    total: int = 0
    duplicates: int = 0
    high_confidence: int = Field(0, description="Confidence >= 80")
    medium_confidence: int = Field(0, description="Confidence 60-79")
    low_confidence: int = Field(0, description="Confidence < 60")


class ImportBatchResult(BaseModel):
    """Decorated batch returned for review before persistence."""

    account_id: str
    items: list[DecoratedTransaction]
    stats: ImportStats


class ImportPreviewRequest(BaseModel):
    account_id: str = Field(..., min_length=1)
    transactions: list[RawTransaction]


class ImportCommitRequest(BaseModel):
    account_id: str = Field(..., min_length=1)
    items: list[DecoratedTransaction]
    skip_threshold: int | None = Field(
        None, ge=0, le=100, description="Skip items whose duplicate confidence reaches this value"
    )


class ImportItemError(BaseModel):
    index: int
    description: str
    error: str


class ImportCommitResult(BaseModel):
    """Outcome of persisting a reviewed batch."""

    imported: int = 0
    skipped_duplicates: int = 0
    warned: int = Field(0, description="Imported despite a duplicate warning")
    total: int = 0
    errors: list[ImportItemError] = Field(default_factory=list)
