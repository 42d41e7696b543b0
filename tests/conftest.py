"""
Test Suite Configuration
"""
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count
from typing import AsyncGenerator, Dict, Optional, Union

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.auth.tokens import create_access_token
from src.config import Settings, get_settings
from src.database.connection import get_db_dependency
from src.database.models import Account, Base, PaymentStatus, Product, Purchase

# Fixed clock for engine tests; every fixture timestamp is relative to it
NOW = datetime(2024, 6, 15, 12, 0, 0)

SUPER_ADMIN_EMAIL = "owner@storefront.test"
JWT_SECRET = "test-secret-key-for-storefront-analytics-suite"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch) -> Settings:
    """Testing environment; settings are rebuilt per test"""
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    monkeypatch.setenv("SUPER_ADMIN_EMAIL", SUPER_ADMIN_EMAIL)
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine with the schema created"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


class StoreFactory:
    """Creates flushed accounts, products and purchases in the test session"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = count(1)

    async def account(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        created_at: Optional[datetime] = None,
        is_admin: bool = False,
    ) -> Account:
        n = next(self._seq)
        account = Account(
            name=name or f"Shopper {n}",
            email=email or f"shopper{n}@storefront.test",
            google_id=f"google-{n}",
            profile_image=f"https://img.storefront.test/{n}.png",
            is_admin=is_admin,
            created_at=created_at or NOW - timedelta(days=90),
        )
        self.session.add(account)
        await self.session.flush()
        return account

    async def product(
        self,
        name: Optional[str] = None,
        price: Union[str, int] = "10.00",
        created_at: Optional[datetime] = None,
    ) -> Product:
        n = next(self._seq)
        product = Product(
            name=name or f"Product {n}",
            description=f"Description {n}",
            price=Decimal(str(price)),
            image_url=f"https://img.storefront.test/p{n}.png",
            created_at=created_at or NOW - timedelta(days=120),
        )
        self.session.add(product)
        await self.session.flush()
        return product

    async def purchase(
        self,
        account: Account,
        product: Product,
        status: PaymentStatus = PaymentStatus.COMPLETED,
        amount: Union[str, int, None] = None,
        created_at: Optional[datetime] = None,
    ) -> Purchase:
        n = next(self._seq)
        purchase = Purchase(
            account=account,
            product=product,
            payment_status=status,
            amount=Decimal(str(amount)) if amount is not None else product.price,
            stripe_payment_id=f"pi_test_{n}",
            created_at=created_at or NOW - timedelta(days=1),
        )
        self.session.add(purchase)
        await self.session.flush()
        return purchase


@pytest.fixture
def store(test_db) -> StoreFactory:
    return StoreFactory(test_db)


@pytest.fixture
async def client(test_db) -> AsyncGenerator[AsyncClient, None]:
    """API client sharing the test session with the fixtures"""
    from src.serving.api.main import create_api_app

    app = create_api_app()

    async def override_db():
        yield test_db

    app.dependency_overrides[get_db_dependency] = override_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(account: Account) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(account.account_id)}"}


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    return auth_headers
