"""Import orchestration.

``ImportOrchestrator`` is the synchronous core: it runs duplicate
detection and categorization over a batch and merges both verdicts.
``ImportService`` wraps it for the API, loading the duplicate window from
the database and persisting reviewed batches.
"""

import asyncio
import logging
from typing import Any, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gastos.categorization.engine import CategorizationEngine
from gastos.config import settings
from gastos.core.exceptions import DuplicateTransactionError, EmptyBatchError
from gastos.dedup.detector import DuplicateDetector
from gastos.dedup.fingerprint import fingerprint
from gastos.models.transaction import Transaction
from gastos.repositories.transaction import TransactionRepository
from gastos.schemas.imports import (
    DecoratedTransaction,
    ImportBatchResult,
    ImportCommitResult,
    ImportItemError,
    ImportStats,
)
from gastos.schemas.results import CategorizationResult, DuplicateResult
from gastos.schemas.transaction import RawTransaction, StoredTransaction

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 60


class ImportOrchestrator:
    """Decorate a batch of raw transactions for review."""

    def __init__(
        self,
        engine: CategorizationEngine,
        *,
        warning_threshold: int | None = None,
        confidence_cap: int | None = None,
        detector_options: dict[str, Any] | None = None,
    ):
        self.engine = engine
        self.warning_threshold = (
            settings.duplicate_warning_threshold if warning_threshold is None else warning_threshold
        )
        self.confidence_cap = (
            settings.duplicate_confidence_cap if confidence_cap is None else confidence_cap
        )
        self.detector_options = dict(detector_options or {})

    def build_detector(
        self, existing: Sequence[StoredTransaction], account_id: str
    ) -> DuplicateDetector:
        return DuplicateDetector(existing, account_id, **self.detector_options)

    def process_import_batch(
        self,
        raw_transactions: Sequence[RawTransaction],
        account_id: str,
        existing: Sequence[StoredTransaction] = (),
    ) -> ImportBatchResult:
        """Detect duplicates, categorize and merge.

        Args:
            raw_transactions: Parsed statement lines
            account_id: Account the batch is imported into
            existing: Stored transactions of that account to compare against

        Returns:
            ImportBatchResult with one decorated item per input, same order
        """
        detector = self.build_detector(existing, account_id)
        duplicates = detector.detect_batch(raw_transactions)
        categorizations = self.engine.categorize_batch(raw_transactions, account_id)
        return self.merge(raw_transactions, account_id, categorizations, duplicates)

    def merge(
        self,
        raw_transactions: Sequence[RawTransaction],
        account_id: str,
        categorizations: Sequence[CategorizationResult],
        duplicates: dict[int, DuplicateResult],
    ) -> ImportBatchResult:
        """Combine both stages; suspected duplicates get a capped confidence."""
        items: list[DecoratedTransaction] = []
        stats = ImportStats(total=len(raw_transactions))

        for index, transaction in enumerate(raw_transactions):
            duplicate = duplicates[index]
            categorization = categorizations[index]

            if duplicate.confidence > self.warning_threshold:
                categorization = categorization.model_copy(
                    update={
                        "confidence": min(categorization.confidence, self.confidence_cap),
                        "applied_rule_name": (
                            f"{categorization.applied_rule_name} "
                            f"(possible duplicate: {duplicate.reason})"
                        ),
                    }
                )

            if duplicate.is_duplicate:
                stats.duplicates += 1
            if categorization.confidence >= HIGH_CONFIDENCE:
                stats.high_confidence += 1
            elif categorization.confidence >= MEDIUM_CONFIDENCE:
                stats.medium_confidence += 1
            else:
                stats.low_confidence += 1

            items.append(
                DecoratedTransaction(
                    index=index,
                    transaction=transaction,
                    fingerprint=fingerprint(
                        transaction.transaction_date,
                        transaction.amount,
                        transaction.description,
                        account_id,
                    ),
                    categorization=categorization,
                    duplicate=duplicate,
                )
            )

        return ImportBatchResult(account_id=account_id, items=items, stats=stats)


class ImportService:
    """Import preview and commit against the database."""

    def __init__(
        self,
        db: AsyncSession,
        engine: CategorizationEngine,
        orchestrator: ImportOrchestrator | None = None,
    ):
        self.db = db
        self.engine = engine
        self.orchestrator = orchestrator or ImportOrchestrator(engine)
        self.transactions = TransactionRepository(db)

    async def load_window(
        self, raw_transactions: Sequence[RawTransaction], account_id: str
    ) -> list[StoredTransaction]:
        """Stored transactions around the batch's date range."""
        dates = [t.transaction_date for t in raw_transactions]
        rows = await self.transactions.get_window(
            account_id, min(dates), max(dates), margin_days=settings.duplicate_window_days
        )
        return [StoredTransaction.model_validate(row) for row in rows]

    async def preview(
        self, raw_transactions: Sequence[RawTransaction], account_id: str
    ) -> ImportBatchResult:
        """Decorate a batch for review without persisting anything.

        Raises:
            EmptyBatchError: If the batch has no transactions
        """
        if not raw_transactions:
            raise EmptyBatchError()

        existing = await self.load_window(raw_transactions, account_id)
        detector = self.orchestrator.build_detector(existing, account_id)

        # Both stages are CPU-bound and independent of each other.
        duplicates, categorizations = await asyncio.gather(
            asyncio.to_thread(detector.detect_batch, raw_transactions),
            asyncio.to_thread(self.engine.categorize_batch, raw_transactions, account_id),
        )
        result = self.orchestrator.merge(raw_transactions, account_id, categorizations, duplicates)

        logger.info(
            "Import preview ready",
            extra={
                "account_id": account_id,
                "total": result.stats.total,
                "duplicates": result.stats.duplicates,
                "window_size": len(existing),
            },
        )
        return result

    async def commit(
        self,
        items: Sequence[DecoratedTransaction],
        account_id: str,
        skip_threshold: int | None = None,
    ) -> ImportCommitResult:
        """Persist a reviewed batch.

        Items whose duplicate confidence reaches ``skip_threshold`` are
        skipped; items in the warning band are imported and counted. A
        fingerprint that is already stored is a definite duplicate and is
        skipped too. A failing item is reported and does not stop the batch.

        Raises:
            EmptyBatchError: If there is nothing to commit
        """
        if not items:
            raise EmptyBatchError()
        if skip_threshold is None:
            skip_threshold = settings.duplicate_skip_threshold

        result = ImportCommitResult(total=len(items))

        for item in items:
            txn = item.transaction
            if item.duplicate.confidence >= skip_threshold:
                result.skipped_duplicates += 1
                continue

            key = fingerprint(txn.transaction_date, txn.amount, txn.description, account_id)
            if await self.transactions.get_by_fingerprint(key) is not None:
                result.skipped_duplicates += 1
                continue

            row = Transaction(
                account_id=account_id,
                transaction_date=txn.transaction_date,
                description=txn.description,
                amount=txn.amount,
                running_balance=txn.running_balance,
                bank_category=txn.bank_category,
                bank_subcategory=txn.bank_subcategory,
                category=item.categorization.category,
                subcategory=item.categorization.subcategory,
                confidence=item.categorization.confidence,
                applied_rule_name=item.categorization.applied_rule_name,
                fingerprint=key,
            )
            try:
                await self._insert(row)
            except DuplicateTransactionError:
                # Inserted concurrently by another import.
                result.skipped_duplicates += 1
                continue
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(
                    "Failed to store imported transaction",
                    extra={"account_id": account_id, "index": item.index, "error_type": type(e).__name__},
                )
                result.errors.append(
                    ImportItemError(
                        index=item.index,
                        description=txn.description,
                        error=type(e).__name__,
                    )
                )
                continue

            result.imported += 1
            if item.duplicate.confidence > self.orchestrator.warning_threshold:
                result.warned += 1

        logger.info(
            "Import committed",
            extra={
                "account_id": account_id,
                "imported": result.imported,
                "skipped_duplicates": result.skipped_duplicates,
                "warned": result.warned,
                "errors": len(result.errors),
            },
        )
        return result

    async def _insert(self, row: Transaction) -> Transaction:
        """Insert one transaction.

        Raises:
            DuplicateTransactionError: If its fingerprint is already stored
        """
        try:
            return await self.transactions.create(row)
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateTransactionError(row.fingerprint) from e
