"""Duplicate detection against a window of stored transactions.

Each candidate is compared with every stored transaction in the window on
three signals (date distance, amount equality, description similarity)
and the best scoring entry decides the verdict. Candidates are never
compared with each other, so the outcome for one transaction does not
depend on the rest of the batch.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from gastos.config import settings
from gastos.dedup.fingerprint import fingerprint
from gastos.schemas.results import DuplicateResult
from gastos.schemas.transaction import RawTransaction, StoredTransaction

logger = logging.getLogger(__name__)

NO_DUPLICATES_REASON = "No duplicates found"

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
PREFIX_WORDS = 3


def normalize_for_similarity(text: str | None) -> str:
    text = _PUNCTUATION.sub(" ", (text or "").casefold())
    return _WHITESPACE.sub(" ", text).strip()


def description_similarity(first: str | None, second: str | None) -> float:
    """Similarity of two descriptions in [0, 1].

    1.0 for identical normalized text, 0.9 when one contains the other,
    0.8 when the first three words agree, otherwise the Jaccard index of
    the word sets.
    """
    a = normalize_for_similarity(first)
    b = normalize_for_similarity(second)
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return 0.9

    words_a = a.split(" ")
    words_b = b.split(" ")
    if (
        len(words_a) >= PREFIX_WORDS
        and len(words_b) >= PREFIX_WORDS
        and words_a[:PREFIX_WORDS] == words_b[:PREFIX_WORDS]
    ):
        return 0.8

    set_a, set_b = set(words_a), set(words_b)
    return len(set_a & set_b) / len(set_a | set_b)


@dataclass(frozen=True)
class _Score:
    confidence: int
    reason: str


class DuplicateDetector:
    """Score candidates against a read-only window of stored transactions."""

    def __init__(
        self,
        existing: Iterable[StoredTransaction],
        account_id: str | None = None,
        *,
        threshold: int | None = None,
        date_tolerance_days: int | None = None,
        amount_epsilon: Decimal | None = None,
        similarity_threshold: float | None = None,
    ):
        self.existing: tuple[StoredTransaction, ...] = tuple(existing)
        self.account_id = account_id
        self.threshold = settings.duplicate_threshold if threshold is None else threshold
        self.date_tolerance_days = (
            settings.duplicate_date_tolerance_days if date_tolerance_days is None else date_tolerance_days
        )
        self.amount_epsilon = Decimal(
            str(settings.duplicate_amount_epsilon if amount_epsilon is None else amount_epsilon)
        )
        self.similarity_threshold = (
            settings.duplicate_similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self._existing_fingerprints = tuple(self._stored_fingerprint(e) for e in self.existing)

    def detect(self, candidate: RawTransaction) -> DuplicateResult:
        """Judge whether a candidate duplicates something in the window."""
        best: _Score | None = None
        best_match: StoredTransaction | None = None
        # One hash per account; a detector without an account takes each entry's.
        candidate_fingerprints: dict[str | None, str] = {}

        for entry, entry_fingerprint in zip(self.existing, self._existing_fingerprints):
            account = self.account_id if self.account_id is not None else entry.account_id
            if account not in candidate_fingerprints:
                candidate_fingerprints[account] = fingerprint(
                    candidate.transaction_date, candidate.amount, candidate.description, account
                )
            score = self._score(
                candidate, entry, candidate_fingerprints[account] == entry_fingerprint
            )
            if best is None or score.confidence > best.confidence:
                best, best_match = score, entry
            if best.confidence >= 100:
                break

        if best is None or best.confidence == 0:
            return DuplicateResult(is_duplicate=False, confidence=0, reason=NO_DUPLICATES_REASON)

        return DuplicateResult(
            is_duplicate=best.confidence >= self.threshold,
            confidence=best.confidence,
            reason=best.reason,
            matched_transaction=best_match,
        )

    def detect_batch(self, candidates: Sequence[RawTransaction]) -> dict[int, DuplicateResult]:
        """Judge every candidate independently; one entry per input index."""
        results = {index: self.detect(candidate) for index, candidate in enumerate(candidates)}
        flagged = sum(1 for r in results.values() if r.is_duplicate)
        logger.debug(
            "Duplicate detection finished",
            extra={
                "account_id": self.account_id,
                "candidates": len(results),
                "window_size": len(self.existing),
                "duplicates": flagged,
            },
        )
        return results

    def partition(
        self, candidates: Sequence[RawTransaction]
    ) -> tuple[list[RawTransaction], list[RawTransaction]]:
        """Split candidates into (clean, duplicates), preserving order."""
        results = self.detect_batch(candidates)
        clean: list[RawTransaction] = []
        duplicates: list[RawTransaction] = []
        for index, candidate in enumerate(candidates):
            (duplicates if results[index].is_duplicate else clean).append(candidate)
        return clean, duplicates

    def _stored_fingerprint(self, entry: StoredTransaction) -> str:
        if entry.fingerprint:
            return entry.fingerprint
        return fingerprint(
            entry.transaction_date,
            entry.amount,
            entry.description,
            entry.account_id if entry.account_id is not None else self.account_id,
        )

    def _score(
        self, candidate: RawTransaction, entry: StoredTransaction, same_fingerprint: bool
    ) -> _Score:
        if same_fingerprint:
            return _Score(100, "Exact match: same date, amount and description")

        days = abs((candidate.transaction_date - entry.transaction_date).days)
        tolerance = max(self.date_tolerance_days, 0)
        same_amount = abs(Decimal(candidate.amount) - Decimal(entry.amount)) < self.amount_epsilon
        similarity = description_similarity(candidate.description, entry.description)
        similar = similarity >= self.similarity_threshold

        # Proximity is 1.0 one day apart and falls linearly to 1/tolerance at the edge.
        within_tolerance = 1 <= days <= tolerance
        proximity = 1 - (days - 1) / tolerance if within_tolerance else 0.0

        if same_amount:
            if similar:
                strength = self._similar_strength(similarity)
                if days == 0:
                    return _Score(
                        _clamp(80 + 15 * strength),
                        "Same date and amount, similar description",
                    )
                if within_tolerance:
                    return _Score(
                        _clamp(50 + 29 * (strength + proximity) / 2),
                        f"Same amount and similar description, {days} day(s) apart",
                    )
            weak = self._dissimilar_strength(similarity)
            if days == 0:
                return _Score(_clamp(30 + 19 * weak), "Same date and amount, different description")
            if within_tolerance:
                return _Score(
                    _clamp(20 + 10 * weak * proximity),
                    f"Same amount, {days} day(s) apart, different description",
                )
            return _Score(_clamp(10 + 10 * similarity), f"Same amount, {days} days apart")

        date_signal = 20.0 if days == 0 else 10 * proximity
        confidence = min(45, _clamp(date_signal + 25 * similarity))
        if confidence == 0:
            return _Score(0, NO_DUPLICATES_REASON)
        return _Score(confidence, "Different amount, close date or similar description")

    def _similar_strength(self, similarity: float) -> float:
        if self.similarity_threshold >= 1:
            return 1.0
        return (similarity - self.similarity_threshold) / (1 - self.similarity_threshold)

    def _dissimilar_strength(self, similarity: float) -> float:
        if self.similarity_threshold <= 0:
            return 1.0
        return min(similarity / self.similarity_threshold, 1.0)


def _clamp(value: float) -> int:
    return max(0, min(100, int(round(value))))
