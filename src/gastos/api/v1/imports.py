"""Import preview and commit endpoints."""

from fastapi import APIRouter, Depends

from gastos.api.deps import get_import_service
from gastos.schemas.imports import (
    ImportBatchResult,
    ImportCommitRequest,
    ImportCommitResult,
    ImportPreviewRequest,
)
from gastos.services.import_service import ImportService

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "/preview",
    response_model=ImportBatchResult,
    summary="Categorize a parsed statement and flag duplicates",
    description="""
    Nothing is stored. Each transaction comes back with its category,
    confidence, the rule or strategy that decided it, and a duplicate
    verdict against the account's stored transactions.

    Suspected duplicates keep their category but get a capped confidence
    and a note appended to `applied_rule_name`.
    """,
)
async def preview_import(
    payload: ImportPreviewRequest,
    service: ImportService = Depends(get_import_service),
) -> ImportBatchResult:
    return await service.preview(payload.transactions, payload.account_id)


@router.post(
    "/commit",
    response_model=ImportCommitResult,
    summary="Store a reviewed batch",
)
async def commit_import(
    payload: ImportCommitRequest,
    service: ImportService = Depends(get_import_service),
) -> ImportCommitResult:
    return await service.commit(payload.items, payload.account_id, payload.skip_threshold)
