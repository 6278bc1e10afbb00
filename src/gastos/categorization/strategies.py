"""Categorization strategies.

Each strategy is one link of the fallback chain used by
``CategorizationEngine``. ``attempt`` returns a result on a hit and
``None`` to let the next strategy try.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from gastos.categorization.matching import CompiledRule, amount_sign, normalize_description
from gastos.schemas.results import CategorizationResult
from gastos.schemas.transaction import RawTransaction

BANK_MAPPING_CONFIDENCE = 60
HEURISTIC_CONFIDENCE = 60
DEFAULT_CONFIDENCE = 10

BANK_MAPPING_LABEL = "Mapeo ING"
HEURISTIC_LABEL = "Heurística"
DEFAULT_LABEL = "Por defecto"

UNCATEGORIZED_EXPENSE = "Otros Gastos"
UNCATEGORIZED_INCOME = "Ingresos"
UNCATEGORIZED_SUBCATEGORY = "Sin categorizar"


@dataclass(frozen=True)
class CategorizationContext:
    """Per-call inputs shared by every strategy in the chain."""

    rules: tuple[CompiledRule, ...] = ()
    account_id: str | None = None
    description: str = ""


class CategorizationStrategy(Protocol):
    name: str

    def attempt(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CategorizationResult | None: ...


class RuleStoreStrategy:
    """First matching active rule, in priority order."""

    name = "rules"

    def find_match(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CompiledRule | None:
        for compiled in context.rules:
            if not compiled.applies_to(context.account_id, transaction.amount):
                continue
            if compiled.matches(context.description):
                return compiled
        return None

    def attempt(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CategorizationResult | None:
        compiled = self.find_match(transaction, context)
        if compiled is None:
            return None
        rule = compiled.rule
        return CategorizationResult(
            category=rule.category,
            subcategory=rule.subcategory,
            confidence=compiled.confidence,
            applied_rule_name=rule.name,
        )


# ING export vocabulary -> (category, subcategory)
ING_CATEGORY_MAP: dict[str, tuple[str, str | None]] = {
    "COMPRAS": ("Compras Online", "General"),
    "SUPERMERCADOS": ("Alimentación", "Supermercado"),
    "GASOLINERAS": ("Transporte", "Gasolina"),
    "RESTAURANTES": ("Salidas", "Restaurantes"),
    "CAJEROS": ("Efectivo", "Cajero"),
    "TRANSFERENCIAS": ("Transferencias", "Transferencia"),
    "BIZUM": ("Bizum", None),
    "RECIBOS": ("Gastos Fijos", "Recibo"),
    "NOMINA": ("Ingresos", "Nómina"),
}


class BankCategoryStrategy:
    """Translate the category supplied by the bank export."""

    name = "bank_mapping"

    def __init__(self, mapping: dict[str, tuple[str, str | None]] | None = None):
        self.mapping = {k.upper(): v for k, v in (mapping or ING_CATEGORY_MAP).items()}

    def attempt(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CategorizationResult | None:
        bank_category = (transaction.bank_category or "").strip().upper()
        if not bank_category or bank_category not in self.mapping:
            return None

        category, subcategory = self.mapping[bank_category]
        if subcategory is None:
            # Bizum keeps whatever detail the bank gave us.
            subcategory = (transaction.bank_subcategory or "").strip() or "General"

        return CategorizationResult(
            category=category,
            subcategory=subcategory,
            confidence=BANK_MAPPING_CONFIDENCE,
            applied_rule_name=BANK_MAPPING_LABEL,
        )


_FUEL = re.compile(r"\b(gasolinera|carburante|estacion de servicio|estación de servicio|repsol|cepsa|galp)\b")
_PAYROLL = re.compile(r"\b(nomina|nómina|salario|payroll)\b")


class HeuristicStrategy:
    """Hard-coded keyword guesses that do not depend on user rules."""

    name = "heuristics"

    def attempt(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CategorizationResult | None:
        guess = self._guess(context.description, transaction.amount)
        if guess is None:
            return None
        category, subcategory = guess
        return CategorizationResult(
            category=category,
            subcategory=subcategory,
            confidence=HEURISTIC_CONFIDENCE,
            applied_rule_name=HEURISTIC_LABEL,
        )

    @staticmethod
    def _guess(description: str, amount: Decimal) -> tuple[str, str] | None:
        sign = amount_sign(amount)
        magnitude = abs(amount) if sign else Decimal("0")

        if "bizum" in description:
            return ("Bizum", "Recibido" if sign > 0 else "Enviado")

        if sign > 0 and _PAYROLL.search(description):
            return ("Ingresos", "Nómina")

        if sign < 0 and _FUEL.search(description):
            return ("Transporte", "Gasolina")

        if sign < 0 and magnitude < 100 and ("super" in description or "market" in description):
            return ("Alimentación", "Supermercado")

        if sign < 0 and 50 < magnitude < 200 and ("compra" in description or "online" in description):
            return ("Compras Online", "General")

        return None


class DefaultStrategy:
    """Terminal bucket, always produces a result."""

    name = "default"

    def attempt(
        self, transaction: RawTransaction, context: CategorizationContext
    ) -> CategorizationResult:
        category = UNCATEGORIZED_INCOME if transaction.is_income else UNCATEGORIZED_EXPENSE
        return CategorizationResult(
            category=category,
            subcategory=UNCATEGORIZED_SUBCATEGORY,
            confidence=DEFAULT_CONFIDENCE,
            applied_rule_name=DEFAULT_LABEL,
        )


def default_strategies() -> list[CategorizationStrategy]:
    """The standard chain: rules, bank mapping, heuristics, default."""
    return [RuleStoreStrategy(), BankCategoryStrategy(), HeuristicStrategy(), DefaultStrategy()]


def build_context(
    transaction: RawTransaction,
    rules: tuple[CompiledRule, ...],
    account_id: str | None = None,
) -> CategorizationContext:
    return CategorizationContext(
        rules=rules,
        account_id=account_id,
        description=normalize_description(transaction.description),
    )
