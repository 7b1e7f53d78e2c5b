"""
Test fixtures - in-memory SQLite database, seeded users/projects and
authenticated HTTP clients for each role
"""
from contextlib import asynccontextmanager
from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from buildtrack.database import Base, create_tables, enable_sqlite_foreign_keys, get_db
from buildtrack.main import app
from buildtrack.api.auth import get_password_hash, create_access_token
from buildtrack.dashboard.client import ApiClient
from buildtrack.models.project import Project, ProjectStatus
from buildtrack.models.user import User, UserRole


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(engine)
    await create_tables(engine)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Baseline data: one user per role, plus a second manager with their own project"""
    admin = User(email="admin@buildtrack.io", full_name="Ada Admin",
                 hashed_password=get_password_hash("adminpass"), role=UserRole.ADMIN.value)
    manager = User(email="manager@buildtrack.io", full_name="Max Manager",
                   hashed_password=get_password_hash("managerpass"), role=UserRole.MANAGER.value)
    other_manager = User(email="other@buildtrack.io", full_name="Olga Other",
                         hashed_password=get_password_hash("otherpass"), role=UserRole.MANAGER.value)
    client = User(email="client@buildtrack.io", full_name="Cleo Client",
                  hashed_password=get_password_hash("clientpass"), role=UserRole.CLIENT.value)
    db_session.add_all([admin, manager, other_manager, client])
    await db_session.flush()

    today = date.today()
    project = Project(
        title="Harbour View Apartment",
        site_address="12 Quay Street",
        status=ProjectStatus.IN_PROGRESS.value,
        start_date=today - timedelta(days=30),
        end_date=today + timedelta(days=60),
        manager_id=manager.id,
        client_id=client.id,
    )
    other_project = Project(
        title="Hillside Villa",
        status=ProjectStatus.PLANNING.value,
        manager_id=other_manager.id,
    )
    db_session.add_all([project, other_project])
    await db_session.commit()

    return {
        "admin": admin,
        "manager": manager,
        "other_manager": other_manager,
        "client": client,
        "project": project,
        "other_project": other_project,
    }


@asynccontextmanager
async def _http_client(db_session, user=None):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        if user is not None:
            token = create_access_token(data={"sub": user.email, "role": user.role})
            ac.headers["Authorization"] = f"Bearer {token}"
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(db_session, seed_data):
    """Authenticated admin client bound to the FastAPI app"""
    async with _http_client(db_session, seed_data["admin"]) as ac:
        yield ac


@pytest_asyncio.fixture()
async def manager_client(db_session, seed_data):
    async with _http_client(db_session, seed_data["manager"]) as ac:
        yield ac


@pytest_asyncio.fixture()
async def other_manager_client(db_session, seed_data):
    """Manager with no access to the seeded project"""
    async with _http_client(db_session, seed_data["other_manager"]) as ac:
        yield ac


@pytest_asyncio.fixture()
async def client_client(db_session, seed_data):
    """Authenticated as the project's client (homeowner) role"""
    async with _http_client(db_session, seed_data["client"]) as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauth_client(db_session):
    """Unauthenticated httpx AsyncClient"""
    async with _http_client(db_session) as ac:
        yield ac


@pytest_asyncio.fixture()
async def dashboard_api(db_session, seed_data):
    """Dashboard ApiClient talking to the real app as the project manager"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    token = create_access_token(data={"sub": seed_data["manager"].email})
    api = ApiClient(base_url="http://test/api", token=token, transport=ASGITransport(app=app))
    yield api
    await api.aclose()
    app.dependency_overrides.clear()


@pytest.fixture()
def upload_root(tmp_path, monkeypatch):
    """Point file storage at a temporary directory"""
    from buildtrack.services.storage_service import storage_service

    monkeypatch.setattr(storage_service, "root", str(tmp_path))
    return tmp_path
