"""
Test fixtures for the SecurePay risk engine.

Provides:
- Sample transactions (a routine payment, a drained large cash-out)
- In-memory slot store and a ReviewService on a fixed weekday clock
- SQLite in-memory session factory for the SQL slot store
- FastAPI test client bound to a pre-built service
"""

from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from securepay.db.engine import create_tables
from securepay.main import create_app
from securepay.schemas.transaction import TransactionRecord, TransactionType
from securepay.services.review import ReviewService, create_review_service
from securepay.storage.base import InMemoryKeyValueStore

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Wednesday afternoon: no night-shift or weekend adjustment
WEEKDAY_AFTERNOON = datetime(2026, 1, 7, 14, 0)


# ── Transactions ─────────────────────────────────────────────────────────


@pytest.fixture
def safe_payment() -> TransactionRecord:
    """Small payment with balances that move exactly by the amount."""
    return TransactionRecord(
        id="TXN-SAFE-0001",
        amount=400,
        type=TransactionType.PAYMENT,
        origin_balance_before=2200,
        origin_balance_after=1800,
        dest_balance_before=100,
        dest_balance_after=500,
        country="IN",
    )


@pytest.fixture
def drained_cash_out() -> TransactionRecord:
    """Large cash-out that empties the origin account."""
    return TransactionRecord(
        id="TXN-DRAIN-0001",
        amount=12000,
        type=TransactionType.CASH_OUT,
        origin_balance_before=12000,
        origin_balance_after=0,
        dest_balance_before=0,
        dest_balance_after=12000,
        country="US",
    )


# ── Storage & services ───────────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def review_service(store) -> ReviewService:
    """ReviewService over an empty store with a frozen weekday clock."""
    return create_review_service(store, clock=lambda: WEEKDAY_AFTERNOON)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ── API client ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(review_service) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test ReviewService."""
    app = create_app(review_service=review_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
