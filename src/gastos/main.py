from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from gastos.api.middleware.error_handler import (
    handle_gastos_error,
    handle_generic_error,
    handle_integrity_error,
    handle_validation_error,
)
from gastos.api.middleware.logging import RequestLoggingMiddleware
from gastos.api.v1 import router as v1_router
from gastos.api.v1.health import router as health_router
from gastos.config import settings
from gastos.core.exceptions import GastosError
from gastos.core.logger import setup_logging
from gastos.db.session import async_engine, create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield
    await async_engine.dispose()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title="Gastos Engine API",
        description="Bank transaction categorization and duplicate detection",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    # Loaded from the database by the first request that needs it.
    app.state.rule_store = None

    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(GastosError, handle_gastos_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
