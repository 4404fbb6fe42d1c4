from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import erp.core.models  # noqa: F401
from erp.db.session import Base, get_db
from erp.main import app

from erp.api.v1.students.schemas import StudentCreate
from erp.api.v1.students.service import create_student
from erp.api.v1.hostel.schemas import RoomCreate
from erp.api.v1.hostel.service import create_room


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """One in-memory SQLite database per test, shared by every connection through StaticPool."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def student(db_session: AsyncSession):
    return await create_student(
        db_session,
        StudentCreate(
            student_id="S1",
            first_name="Asha",
            last_name="Rao",
            email="asha@example.com",
            programme_id="CS1",
            programme_name="CS",
        ),
    )


@pytest.fixture()
async def rooms(db_session: AsyncSession):
    """Two available rooms, R1 and R2, in the same block."""
    created = []
    for room_id, room_no in (("R1", "101"), ("R2", "102")):
        created.append(
            await create_room(
                db_session,
                RoomCreate(room_id=room_id, hostel="North", block="A", floor="1", room_no=room_no),
            )
        )
    return created
