"""Categorization rule endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from gastos.api.deps import get_engine, get_rule_service
from gastos.categorization.engine import CategorizationEngine
from gastos.schemas.rule import (
    Rule,
    RuleCreate,
    RuleListResult,
    RuleTestRequest,
    RuleTestResponse,
    RuleUpdate,
)
from gastos.schemas.transaction import RawTransaction
from gastos.services.rule_service import RuleService

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get(
    "",
    response_model=RuleListResult,
    summary="List rules in evaluation order",
)
async def list_rules(
    active_only: Annotated[bool, Query(description="Hide inactive rules")] = False,
    service: RuleService = Depends(get_rule_service),
) -> RuleListResult:
    rules = service.list_rules()
    if active_only:
        rules = [r for r in rules if r.active]
    return RuleListResult(rules=rules, total=len(rules))


@router.post(
    "",
    response_model=Rule,
    status_code=status.HTTP_201_CREATED,
    summary="Create a rule",
    description="""
    Create a user rule. Regex patterns are compiled before the rule is
    accepted; an invalid pattern is rejected with `RULE_002`.

    Priority defaults to the user tier, so seeded and learned rules are
    evaluated first unless a lower value is given.
    """,
)
async def create_rule(
    payload: RuleCreate,
    service: RuleService = Depends(get_rule_service),
) -> Rule:
    return await service.create_rule(payload)


@router.post(
    "/test",
    response_model=RuleTestResponse,
    summary="Categorize a sample description",
)
async def test_rules(
    payload: RuleTestRequest,
    engine: CategorizationEngine = Depends(get_engine),
) -> RuleTestResponse:
    """Run the full chain on a description and list every rule that matches it."""
    sample = RawTransaction(
        transaction_date=date.today(),
        description=payload.description,
        amount=payload.amount,
    )
    result = engine.categorize(sample, payload.account_id)
    return RuleTestResponse(
        category=result.category,
        subcategory=result.subcategory,
        confidence=result.confidence,
        applied_rule_name=result.applied_rule_name,
        matching_rules=engine.matching_rules(sample, payload.account_id),
    )


@router.patch(
    "/{rule_id}",
    response_model=Rule,
    summary="Update some fields of a rule",
)
async def update_rule(
    rule_id: str,
    payload: RuleUpdate,
    service: RuleService = Depends(get_rule_service),
) -> Rule:
    return await service.update_rule(rule_id, payload)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a rule",
)
async def delete_rule(
    rule_id: str,
    service: RuleService = Depends(get_rule_service),
) -> Response:
    await service.delete_rule(rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
