"""Categorization rule schemas."""

from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchKind(str, Enum):
    """How a rule pattern is compared against a description."""

    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXACT = "exact"
    REGEX = "regex"

    @classmethod
    def _missing_(cls, value):
        # Spanish names used by rule exports from the web dashboard.
        if isinstance(value, str):
            return _MATCH_KIND_ALIASES.get(value.strip().lower())
        return None


_MATCH_KIND_ALIASES = {
    "contiene": MatchKind.CONTAINS,
    "empieza": MatchKind.STARTS_WITH,
    "termina": MatchKind.ENDS_WITH,
    "exacto": MatchKind.EXACT,
    "startswith": MatchKind.STARTS_WITH,
    "endswith": MatchKind.ENDS_WITH,
}


class Direction(str, Enum):
    """Optional amount-sign condition carried as rule data."""

    INCOME = "income"
    EXPENSE = "expense"


class RuleOrigin(str, Enum):
    SEED = "seed"
    USER = "user"
    LEARNED = "learned"


class Rule(BaseModel):
    """A prioritized description pattern mapped to a category."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    pattern: str
    match_kind: MatchKind = MatchKind.CONTAINS
    category: str
    subcategory: str | None = None
    priority: int = 100
    active: bool = True
    scope_account_id: str | None = None
    direction: Direction | None = None
    origin: RuleOrigin = RuleOrigin.USER


class RuleCreate(BaseModel):
    """Request body for creating a rule."""

    id: str | None = Field(None, description="Optional explicit id")
    name: str = Field(..., min_length=1)
    pattern: str = Field(..., min_length=1)
    match_kind: MatchKind = MatchKind.CONTAINS
    category: str = Field(..., min_length=1)
    subcategory: str | None = None
    priority: int | None = Field(None, ge=1, description="Defaults to the user rule tier")
    active: bool = True
    scope_account_id: str | None = None
    direction: Direction | None = None

    @field_validator("name", "pattern", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class RuleUpdate(BaseModel):
    """Partial update: only fields explicitly set are applied."""

    name: str | None = None
    pattern: str | None = None
    match_kind: MatchKind | None = None
    category: str | None = None
    subcategory: str | None = None
    priority: int | None = Field(None, ge=1)
    active: bool | None = None
    scope_account_id: str | None = None
    direction: Direction | None = None

    @field_validator("name", "pattern", "match_kind", "category", "priority", "active")
    @classmethod
    def required_not_null(cls, v):
        # Omit a field to keep it; null only clears the optional ones.
        if v is None:
            raise ValueError("Value cannot be null")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Value cannot be blank")
        return v


class RuleListResult(BaseModel):
    rules: list[Rule]
    total: int


class RuleTestRequest(BaseModel):
    """Try the current rule set against a description."""

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(Decimal("-10.00"), description="Signed amount used for direction-aware rules")
    account_id: str | None = None


class RuleTestResult(BaseModel):
    """Whether a rule matches a description, and with which confidence."""

    matches: bool
    confidence: int | None = None


class RuleTestResponse(BaseModel):
    """Categorization of a sample description plus every rule that matches it."""

    category: str
    subcategory: str | None
    confidence: int
    applied_rule_name: str
    matching_rules: list[Rule]
