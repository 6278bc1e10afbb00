"""Database models."""
from gastos.models.rule import CategorizationRule
from gastos.models.transaction import Transaction

__all__ = ["CategorizationRule", "Transaction"]
