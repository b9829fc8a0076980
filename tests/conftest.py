import os

# Keep test runs from writing error.log into the working tree
os.environ.setdefault("LOG_FILE", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskboard.database import Base, get_db
from taskboard.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(tmp_path):
    """API client bound to a fresh SQLite database per test."""
    # Overlapping requests wait on the SQLite write lock instead of failing
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}", connect_args={"timeout": 30}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    TestingSessionLocal = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    async def override_get_db():
        async with TestingSessionLocal() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api") as ac:
        yield ac
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
def make_user(client):
    async def _make_user(name="Alice Llama", email="alice@llama.io", **extra):
        response = await client.post("/users", json={"name": name, "email": email, **extra})
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _make_user


@pytest.fixture
def make_task(client):
    async def _make_task(name="Shear the llama", deadline="2030-01-01T00:00:00Z", **extra):
        response = await client.post("/tasks", json={"name": name, "deadline": deadline, **extra})
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _make_task


@pytest.fixture
def fetch(client):
    async def _fetch(resource, record_id):
        response = await client.get(f"/{resource}/{record_id}")
        assert response.status_code == 200, response.text
        return response.json()["data"]
    return _fetch
