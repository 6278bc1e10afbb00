"""API version 1 routes."""

from fastapi import APIRouter

from gastos.api.v1 import imports, rules, transactions

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(rules.router)
router.include_router(imports.router)
router.include_router(transactions.router)
