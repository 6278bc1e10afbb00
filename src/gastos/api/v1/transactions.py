"""Transaction endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from gastos.api.deps import get_rule_service
from gastos.schemas.transaction import CategoryCorrectionRequest, CategoryCorrectionResponse
from gastos.services.rule_service import RuleService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.put(
    "/{transaction_id}/category",
    response_model=CategoryCorrectionResponse,
    summary="Change a transaction's category",
    description="""
    Set the category by hand. When the category differs from the stored
    one, a rule is learned from the description and scoped to the
    transaction's account.
    """,
)
async def correct_category(
    transaction_id: UUID,
    payload: CategoryCorrectionRequest,
    service: RuleService = Depends(get_rule_service),
) -> CategoryCorrectionResponse:
    return await service.apply_correction(transaction_id, payload.category, payload.subcategory)
