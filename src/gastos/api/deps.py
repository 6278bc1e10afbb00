"""FastAPI dependency injection for the database and the rule engine."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gastos.categorization.engine import CategorizationEngine
from gastos.categorization.store import RuleStore
from gastos.db.session import get_db
from gastos.services.import_service import ImportService
from gastos.services.rule_service import RuleService


async def get_rule_store(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RuleStore:
    """
    Get the application's rule store, loading it on first use.

    Args:
        request: Incoming request (the store lives on ``app.state``)
        db: Database session used for the initial load

    Returns:
        Shared RuleStore instance
    """
    state = request.app.state
    store = getattr(state, "rule_store", None)
    if store is None:
        store = RuleStore()
        await RuleService(db, store).load_store()
        state.rule_store = store
    return store


async def get_engine(store: RuleStore = Depends(get_rule_store)) -> CategorizationEngine:
    return CategorizationEngine(store)


async def get_rule_service(
    db: AsyncSession = Depends(get_db),
    store: RuleStore = Depends(get_rule_store),
) -> RuleService:
    return RuleService(db, store)


async def get_import_service(
    db: AsyncSession = Depends(get_db),
    engine: CategorizationEngine = Depends(get_engine),
) -> ImportService:
    return ImportService(db, engine)
