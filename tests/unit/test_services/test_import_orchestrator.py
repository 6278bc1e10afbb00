"""Unit tests for the import orchestrator (no database)."""

from datetime import timedelta

from gastos.categorization.engine import CategorizationEngine
from gastos.dedup.fingerprint import fingerprint
from gastos.services.import_service import ImportOrchestrator


class TestProcessImportBatch:
    def test_clean_batch_is_categorized(self, make_raw):
        orchestrator = ImportOrchestrator(CategorizationEngine())
        batch = [make_raw(), make_raw(description="SOMETHING COMPLETELY UNKNOWN", amount="-3.00")]

        result = orchestrator.process_import_batch(batch, "acc-1", [])

        assert result.account_id == "acc-1"
        assert [item.index for item in result.items] == [0, 1]
        assert result.items[0].categorization.applied_rule_name == "Mercadona"
        assert result.items[1].categorization.confidence == 10
        assert result.stats.total == 2
        assert result.stats.duplicates == 0
        assert result.stats.high_confidence == 1
        assert result.stats.low_confidence == 1

    def test_duplicate_caps_confidence_but_keeps_category(self, make_raw, make_stored):
        orchestrator = ImportOrchestrator(CategorizationEngine())

        result = orchestrator.process_import_batch([make_raw()], "acc-1", [make_stored()])
        item = result.items[0]

        assert item.duplicate.is_duplicate is True
        assert item.duplicate.confidence == 100
        assert item.categorization.category == "Alimentación"
        assert item.categorization.confidence == 30
        assert item.categorization.applied_rule_name.startswith("Mercadona (possible duplicate: ")
        assert result.stats.duplicates == 1
        assert result.stats.low_confidence == 1

    def test_low_duplicate_confidence_leaves_categorization_alone(self, make_raw, make_stored):
        far = make_stored(description="RECIBO GIMNASIO", txn_date=make_raw().transaction_date - timedelta(days=30))
        orchestrator = ImportOrchestrator(CategorizationEngine())

        item = orchestrator.process_import_batch([make_raw()], "acc-1", [far]).items[0]

        assert item.duplicate.confidence <= 40
        assert item.categorization.confidence == 85
        assert item.categorization.applied_rule_name == "Mercadona"

    def test_thresholds_are_configurable(self, make_raw, make_stored):
        same_day_other_text = make_stored(description="RECIBO GIMNASIO")
        orchestrator = ImportOrchestrator(
            CategorizationEngine(), warning_threshold=20, confidence_cap=50
        )

        item = orchestrator.process_import_batch([make_raw()], "acc-1", [same_day_other_text]).items[0]

        assert item.duplicate.is_duplicate is False
        assert item.categorization.confidence == 50
        assert "possible duplicate" in item.categorization.applied_rule_name

    def test_detector_options_are_forwarded(self, make_raw, make_stored):
        orchestrator = ImportOrchestrator(
            CategorizationEngine(), detector_options={"threshold": 25}
        )

        item = orchestrator.process_import_batch(
            [make_raw()], "acc-1", [make_stored(description="RECIBO GIMNASIO")]
        ).items[0]

        assert item.duplicate.is_duplicate is True

    def test_items_carry_fingerprint(self, make_raw):
        raw = make_raw()
        item = ImportOrchestrator(CategorizationEngine()).process_import_batch([raw], "acc-1").items[0]

        assert item.fingerprint == fingerprint(raw.transaction_date, raw.amount, raw.description, "acc-1")

    def test_empty_batch(self):
        result = ImportOrchestrator(CategorizationEngine()).process_import_batch([], "acc-1", [])

        assert result.items == []
        assert result.stats.total == 0
