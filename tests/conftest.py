"""Shared fixtures: in-memory database, fixed clock, HTTP client, tokens"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime
from decimal import Decimal
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.security import SecurityUtils
from app.main import app
from app.models import Base, Product

FIXED_NOW = datetime(2026, 3, 15, 12, 0, 0)

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session

@pytest.fixture
def clock():
    return lambda: FIXED_NOW

@pytest.fixture
def make_product(session_factory):
    """Insert a product in its own session and return it detached"""
    async def _make(**overrides) -> Product:
        data = {
            "sku": f"SKU-{uuid.uuid4().hex[:8].upper()}",
            "name": "Organic Apples",
            "price": Decimal("10.00"),
            "discount_percentage": Decimal("0"),
            "stock": 10,
            "image": "https://cdn.example.com/apples.jpg",
            "is_active": True,
        }
        data.update(overrides)
        async with session_factory() as session:
            product = Product(**data)
            session.add(product)
            await session.commit()
        return product

    return _make

@pytest.fixture
def stock_of(session_factory):
    """Live stock read that never touches a test session's identity map"""
    async def _stock(product_id: uuid.UUID):
        async with session_factory() as session:
            return await session.scalar(select(Product.stock).where(Product.id == product_id))

    return _stock

@pytest.fixture
def update_product(session_factory):
    async def _update(product_id: uuid.UUID, **values) -> None:
        async with session_factory() as session:
            product = await session.get(Product, product_id)
            for key, value in values.items():
                setattr(product, key, value)
            await session.commit()

    return _update

@pytest.fixture
def user_id():
    return uuid.uuid4()

@pytest.fixture
def customer(user_id):
    return {"id": user_id, "role": "customer"}

@pytest.fixture
def admin():
    return {"id": uuid.uuid4(), "role": "admin"}

@pytest.fixture
def auth_headers():
    def _headers(user_id: uuid.UUID, role: str = "customer") -> dict:
        token = SecurityUtils.create_access_token({"sub": str(user_id), "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers

@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
