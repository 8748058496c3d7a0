import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import app.models.db  # noqa: F401
from app.database import Base
from app.repository import PlanRepository
from app.seed import SAMPLE_PRODUCTS, SAMPLE_RULES


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory(tmp_path):
    """Fresh SQLite file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_db(db):
    repo = PlanRepository()
    for rule in SAMPLE_RULES:
        await repo.add_rule(db, rule)
    await repo.add_products(db, SAMPLE_PRODUCTS)
    return db
