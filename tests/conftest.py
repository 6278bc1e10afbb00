import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).parents[1] / "src"))

# Settings are read at import time; point them at SQLite before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from gastos.categorization.store import RuleStore
from gastos.db.session import get_db
from gastos.main import app
from gastos.models.base import Base
from gastos.models.transaction import Transaction
from gastos.schemas.transaction import RawTransaction, StoredTransaction

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def setup_database():
    """Create tables for tests that need the database, and drop them after.

    Not autouse, so pure engine tests never touch the database.
    """
    import gastos.models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(setup_database):
    """Provide test database session with fresh connection per test."""
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession):
    """Provide test client with database override and a fresh rule store."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rule_store = None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.rule_store = None


@pytest.fixture
def seeded_store() -> RuleStore:
    """Rule store holding only the predefined rules."""
    return RuleStore()


@pytest.fixture
def make_raw():
    """Factory for raw transactions with sensible defaults."""
    def _make(
        description: str = "MERCADONA VALENCIA CENTRO",
        amount: str = "-45.67",
        txn_date: date = date(2024, 3, 15),
        **kwargs,
    ) -> RawTransaction:
        return RawTransaction(
            transaction_date=txn_date,
            description=description,
            amount=Decimal(amount),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_stored():
    """Factory for stored (window) transactions."""
    def _make(
        description: str = "MERCADONA VALENCIA CENTRO",
        amount: str = "-45.67",
        txn_date: date = date(2024, 3, 15),
        account_id: str = "acc-1",
        **kwargs,
    ) -> StoredTransaction:
        return StoredTransaction(
            transaction_date=txn_date,
            description=description,
            amount=Decimal(amount),
            account_id=account_id,
            **kwargs,
        )

    return _make


@pytest.fixture
async def stored_transaction(db_session: AsyncSession) -> Transaction:
    """A persisted transaction categorized by the engine."""
    from gastos.dedup.fingerprint import fingerprint

    txn = Transaction(
        account_id="acc-1",
        transaction_date=date(2024, 3, 10),
        description="PAGO EN LA TAGLIATELLA VALENCIA",
        amount=Decimal("-32.50"),
        category="Otros Gastos",
        subcategory="Sin categorizar",
        confidence=10,
        applied_rule_name="Por defecto",
        fingerprint=fingerprint(date(2024, 3, 10), "-32.50", "PAGO EN LA TAGLIATELLA VALENCIA", "acc-1"),
    )
    db_session.add(txn)
    await db_session.commit()
    await db_session.refresh(txn)
    return txn
