"""Unit tests for duplicate detection."""

from datetime import date, timedelta

import pytest

from gastos.dedup import detector as detector_module
from gastos.dedup.detector import DuplicateDetector, description_similarity
from gastos.dedup.fingerprint import fingerprint

DAY = date(2024, 3, 15)


class TestDescriptionSimilarity:
    def test_identical_after_normalization(self):
        assert description_similarity("Mercadona, Valencia", "MERCADONA  VALENCIA") == 1.0

    def test_containment(self):
        assert description_similarity("MERCADONA", "MERCADONA VALENCIA CENTRO") == 0.9

    def test_shared_three_word_prefix(self):
        assert description_similarity("COMPRA TARJETA MERCADONA 01", "COMPRA TARJETA MERCADONA 02") == 0.8

    def test_jaccard_otherwise(self):
        assert description_similarity("PAGO LUZ MARZO", "PAGO AGUA MARZO") == pytest.approx(2 / 4)

    def test_empty_against_text(self):
        assert description_similarity("", "ALGO") == 0.0
        assert description_similarity("", "") == 1.0


class TestDetect:
    def test_identical_transaction_is_certain_duplicate(self, make_raw, make_stored):
        detector = DuplicateDetector([make_stored()], "acc-1")

        result = detector.detect(make_raw())

        assert result.is_duplicate is True
        assert result.confidence == 100
        assert result.matched_transaction is not None

    def test_stored_fingerprint_is_used_when_present(self, make_raw, make_stored):
        stored = make_stored(
            description="other text",
            fingerprint=fingerprint(DAY, "-45.67", "MERCADONA VALENCIA CENTRO", "acc-1"),
        )

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert result.confidence == 100

    def test_empty_window(self, make_raw):
        result = DuplicateDetector([], "acc-1").detect(make_raw())

        assert result.is_duplicate is False
        assert result.confidence == 0
        assert result.reason == "No duplicates found"
        assert result.matched_transaction is None

    def test_same_day_amount_similar_description(self, make_raw, make_stored):
        detector = DuplicateDetector([make_stored(description="MERCADONA VALENCIA")], "acc-1")

        result = detector.detect(make_raw())

        assert 80 <= result.confidence <= 95
        assert result.is_duplicate is True

    def test_nearby_day_similar_description(self, make_raw, make_stored):
        stored = make_stored(description="MERCADONA VALENCIA", txn_date=DAY - timedelta(days=2))

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert 50 <= result.confidence < 80
        assert result.is_duplicate is True

    def test_same_day_amount_different_description(self, make_raw, make_stored):
        stored = make_stored(description="RECIBO GIMNASIO")

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert 30 <= result.confidence < 50
        assert result.is_duplicate is False

    def test_only_amount_matches_far_away(self, make_raw, make_stored):
        stored = make_stored(description="RECIBO GIMNASIO", txn_date=DAY - timedelta(days=20))

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert 10 <= result.confidence <= 20
        assert result.is_duplicate is False

    def test_different_amount_capped_below_threshold(self, make_raw, make_stored):
        stored = make_stored(amount="-12.00")

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert result.confidence <= 45
        assert result.is_duplicate is False

    def test_amount_epsilon(self, make_raw, make_stored):
        stored = make_stored(description="MERCADONA VALENCIA", amount="-45.675")

        result = DuplicateDetector([stored], "acc-1").detect(make_raw())

        assert result.confidence >= 80

    def test_custom_threshold(self, make_raw, make_stored):
        stored = make_stored(description="RECIBO GIMNASIO")
        detector = DuplicateDetector([stored], "acc-1", threshold=30)

        assert detector.detect(make_raw()).is_duplicate is True

    def test_best_entry_wins(self, make_raw, make_stored):
        weak = make_stored(description="RECIBO GIMNASIO")
        strong = make_stored(description="MERCADONA VALENCIA")

        result = DuplicateDetector([weak, strong], "acc-1").detect(make_raw())

        assert result.matched_transaction == strong

    def test_candidate_hashed_once_per_account(self, make_raw, make_stored, monkeypatch):
        window = [
            make_stored(description=f"RECIBO {n}", txn_date=DAY - timedelta(days=n)) for n in range(5)
        ]
        detector = DuplicateDetector(window, "acc-1")
        calls = []

        def counting(*args):
            calls.append(args)
            return fingerprint(*args)

        monkeypatch.setattr(detector_module, "fingerprint", counting)
        detector.detect(make_raw())

        assert len(calls) == 1

    def test_unbound_detector_uses_each_entry_account(self, make_raw, make_stored, monkeypatch):
        other = make_stored(account_id="acc-2", description="RECIBO GIMNASIO")
        same = make_stored(account_id="acc-3")
        detector = DuplicateDetector([other, same])
        calls = []

        def counting(*args):
            calls.append(args[-1])
            return fingerprint(*args)

        monkeypatch.setattr(detector_module, "fingerprint", counting)
        result = detector.detect(make_raw())

        assert calls == ["acc-2", "acc-3"]
        assert result.confidence == 100
        assert result.matched_transaction == same


class TestMonotonicity:
    def test_confidence_never_drops_as_signals_improve(self, make_raw, make_stored):
        candidate = make_raw(description="MERCADONA VALENCIA CENTRO")
        descriptions = [
            "RECIBO GIMNASIO",
            "PAGO MERCADONA ALBORAYA",
            "MERCADONA VALENCIA NORTE",
            "MERCADONA VALENCIA",
            "MERCADONA VALENCIA CENTRO",
        ]
        similarities = [description_similarity(candidate.description, d) for d in descriptions]
        assert similarities == sorted(similarities)

        for amount in ("-45.67", "-99.00"):
            previous_by_day = {}
            for description in descriptions:
                for days in (10, 3, 2, 1, 0):
                    stored = make_stored(
                        description=description, amount=amount, txn_date=DAY - timedelta(days=days)
                    )
                    confidence = DuplicateDetector([stored], "acc-1").detect(candidate).confidence
                    if days in previous_by_day:
                        assert confidence >= previous_by_day[days]
                    previous_by_day[days] = confidence

            for description in descriptions:
                confidences = [
                    DuplicateDetector(
                        [make_stored(description=description, amount=amount, txn_date=DAY - timedelta(days=d))],
                        "acc-1",
                    ).detect(candidate).confidence
                    for d in (10, 3, 2, 1, 0)
                ]
                assert confidences == sorted(confidences)


class TestBatch:
    def test_detect_batch_reports_every_index(self, make_raw, make_stored):
        detector = DuplicateDetector([make_stored()], "acc-1")
        candidates = [make_raw(), make_raw(description="AMAZON EU", amount="-10.00"), make_raw()]

        results = detector.detect_batch(candidates)

        assert sorted(results) == [0, 1, 2]
        assert results[0].confidence == 100
        assert results[2].confidence == 100
        assert results[1].is_duplicate is False

    def test_candidates_do_not_suppress_each_other(self, make_raw):
        detector = DuplicateDetector([], "acc-1")

        results = detector.detect_batch([make_raw(), make_raw()])

        assert not results[0].is_duplicate
        assert not results[1].is_duplicate

    def test_batch_order_does_not_matter(self, make_raw, make_stored):
        detector = DuplicateDetector([make_stored()], "acc-1")
        a = make_raw()
        b = make_raw(description="RECIBO LUZ", amount="-60.00")

        forward = detector.detect_batch([a, b])
        backward = detector.detect_batch([b, a])

        assert forward[0] == backward[1]
        assert forward[1] == backward[0]

    def test_partition(self, make_raw, make_stored):
        detector = DuplicateDetector([make_stored()], "acc-1")
        fresh = make_raw(description="AMAZON EU", amount="-10.00")

        clean, duplicates = detector.partition([make_raw(), fresh])

        assert clean == [fresh]
        assert duplicates == [make_raw()]
