"""Unit tests for the categorization engine."""

from datetime import date
from decimal import Decimal

import pytest

from gastos.categorization.engine import CategorizationEngine
from gastos.categorization.store import RuleStore
from gastos.categorization.strategies import DefaultStrategy
from gastos.schemas.rule import Direction, MatchKind, Rule, RuleUpdate
from gastos.schemas.transaction import RawTransaction


def _txn(description: str, amount: str = "-45.67", **kwargs) -> RawTransaction:
    return RawTransaction(
        transaction_date=date(2024, 3, 15), description=description, amount=Decimal(amount), **kwargs
    )


class ExplodingStrategy:
    name = "exploding"

    def attempt(self, transaction, context):
        raise RuntimeError("boom")


class TestEndToEndScenarios:
    def test_mercadona_with_seed_rules(self):
        engine = CategorizationEngine()

        result = engine.categorize(_txn("MERCADONA VALENCIA CENTRO"))

        assert result.category == "Alimentación"
        assert result.subcategory == "Supermercado"
        assert result.confidence > 80
        assert "Mercadona" in result.applied_rule_name

    def test_custom_priority_beats_seed(self):
        store = RuleStore()
        store.add_rule(
            Rule(id="seeded-test", name="Seeded", pattern="TEST", category="Seed Category", priority=10)
        )
        store.add_rule(
            Rule(id="custom-test", name="Custom", pattern="DESCRIPTION", category="Custom Category", priority=1)
        )

        result = CategorizationEngine(store).categorize(_txn("TEST DESCRIPTION"))

        assert result.category == "Custom Category"
        assert result.applied_rule_name == "Custom"

    def test_unknown_description_falls_to_default(self):
        result = CategorizationEngine().categorize(_txn("SOMETHING COMPLETELY UNKNOWN"))

        assert result.category == "Otros Gastos"
        assert result.subcategory == "Sin categorizar"
        assert result.confidence == 10


class TestFallbackChain:
    def test_bank_category_used_when_no_rule_matches(self):
        result = CategorizationEngine().categorize(
            _txn("TPV 4432 LA PIZZERIA", bank_category="RESTAURANTES")
        )

        assert result.category == "Salidas"
        assert result.confidence == 60
        assert result.applied_rule_name == "Mapeo ING"

    def test_rule_beats_bank_category(self):
        result = CategorizationEngine().categorize(
            _txn("NETFLIX.COM", bank_category="COMPRAS")
        )

        assert result.category == "Suscripciones"
        assert result.applied_rule_name == "Netflix"

    def test_heuristic_after_bank_mapping(self):
        result = CategorizationEngine().categorize(_txn("SUPER BARRIO", "-12.00"))

        assert result.applied_rule_name == "Heurística"
        assert result.category == "Alimentación"

    def test_failing_strategy_is_skipped(self, caplog):
        engine = CategorizationEngine(strategies=[ExplodingStrategy(), DefaultStrategy()])

        result = engine.categorize(_txn("ANYTHING"))

        assert result.applied_rule_name == "Por defecto"
        assert "Categorization strategy failed" in caplog.text

    def test_chain_without_default_still_returns_result(self):
        engine = CategorizationEngine(strategies=[ExplodingStrategy()])

        assert engine.categorize(_txn("ANYTHING")).confidence == 10


class TestRuleBehaviour:
    def test_inactive_rule_falls_through(self):
        store = RuleStore()
        assert CategorizationEngine(store).categorize(_txn("MERCADONA")).applied_rule_name == "Mercadona"

        store.update_rule("mercadona", RuleUpdate(active=False))
        result = CategorizationEngine(store).categorize(_txn("MERCADONA"))

        assert result.applied_rule_name != "Mercadona"
        assert result.applied_rule_name == "Por defecto"

    def test_invalid_regex_never_reported(self):
        store = RuleStore(
            [Rule(id="bad", name="Broken", pattern="(MERCA", match_kind=MatchKind.REGEX, category="X", priority=1)]
        )

        result = CategorizationEngine(store).categorize(_txn("(MERCA"))

        assert result.applied_rule_name != "Broken"

    def test_payroll_seed_only_for_income(self):
        engine = CategorizationEngine()

        assert engine.categorize(_txn("NOMINA MARZO", "2100.00")).applied_rule_name == "Nómina"
        assert engine.categorize(_txn("NOMINA MARZO", "-20.00")).applied_rule_name != "Nómina"

    def test_account_scoped_rule(self):
        store = RuleStore([])
        store.add_rule(Rule(name="Gym", pattern="GYM", category="Deporte", scope_account_id="acc-1"))
        engine = CategorizationEngine(store)

        assert engine.categorize(_txn("GYM CENTER"), account_id="acc-1").category == "Deporte"
        assert engine.categorize(_txn("GYM CENTER"), account_id="acc-2").category == "Otros Gastos"

    @pytest.mark.parametrize(
        "kind,pattern,confidence",
        [
            (MatchKind.EXACT, "mercadona valencia", 100),
            (MatchKind.REGEX, "^MERCADONA", 95),
            (MatchKind.STARTS_WITH, "MERCADONA", 90),
            (MatchKind.CONTAINS, "VALENCIA", 85),
            (MatchKind.ENDS_WITH, "VALENCIA", 80),
        ],
    )
    def test_confidence_follows_match_kind(self, kind, pattern, confidence):
        store = RuleStore([Rule(name="r", pattern=pattern, match_kind=kind, category="C")])

        assert CategorizationEngine(store).categorize(_txn("MERCADONA VALENCIA")).confidence == confidence


class TestBatch:
    def test_batch_keeps_order(self):
        engine = CategorizationEngine()
        txns = [_txn("MERCADONA"), _txn("SOMETHING ELSE"), _txn("SPOTIFY P123")]

        results = engine.categorize_batch(txns)

        assert [r.applied_rule_name for r in results] == ["Mercadona", "Por defecto", "Spotify"]

    def test_batch_matches_single_calls(self):
        engine = CategorizationEngine()
        txns = [_txn("AMAZON EU"), _txn("BIZUM ENVIADO A LUIS"), _txn("")]

        assert engine.categorize_batch(txns) == [engine.categorize(t) for t in txns]

    def test_every_result_is_bounded_and_labelled(self):
        engine = CategorizationEngine()
        txns = [_txn(d, a) for d in ("", "   ", "RECIBO LUZ", "x" * 500) for a in ("-1", "0", "3000")]

        for result in engine.categorize_batch(txns):
            assert 0 <= result.confidence <= 100
            assert result.applied_rule_name


class TestInspection:
    def test_matching_rules_lists_all_matches(self):
        engine = CategorizationEngine()

        names = [r.name for r in engine.matching_rules(_txn("COMPRA AMAZON RECIBO"))]

        assert names == ["Amazon", "Recibo"]

    def test_test_rule_with_unsaved_rule(self):
        engine = CategorizationEngine()
        rule = Rule(name="Probe", pattern="LUZ", category="Hogar", active=False)

        hit = engine.test_rule("RECIBO LUZ IBERDROLA", rule)
        miss = engine.test_rule("RECIBO AGUA", rule)

        assert hit.matches is True
        assert hit.confidence == 85
        assert miss.matches is False
        assert miss.confidence is None

    def test_test_rule_checks_direction_only_with_amount(self):
        engine = CategorizationEngine()
        rule = Rule(name="Income", pattern="ABONO", category="Ingresos", direction=Direction.INCOME)

        assert engine.test_rule("ABONO", rule).matches is True
        assert engine.test_rule("ABONO", rule, amount=Decimal("-5")).matches is False
