import asyncio
import json

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskboard.database import Base, get_db
from taskboard.main import app
from taskboard.scripts.db_clean import clean
from taskboard.scripts.db_fill import fill


def test_fill_then_clean(tmp_path):
    # NullPool: connections must not outlive the loop that opened them
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scripts.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with SessionLocal() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        client = TestClient(app, base_url="http://testserver/api")

        assert fill(client, 5, 30) == (5, 30)

        users = client.get("/users").json()["data"]
        for user in users:
            where = json.dumps({"assignedUser": user["_id"], "completed": False})
            open_tasks = client.get("/tasks", params={"where": where}).json()["data"]
            assert sorted(user["pendingTasks"]) == sorted(t["_id"] for t in open_tasks)

        assert clean(client) == {"users": 5, "tasks": 30}
        assert client.get("/tasks", params={"count": "true"}).json()["data"] == 0
        assert client.get("/users", params={"count": "true"}).json()["data"] == 0
    finally:
        app.dependency_overrides.clear()
