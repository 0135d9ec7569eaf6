# This project was developed with assistance from AI tools.
"""Fixtures for tests against a real PostgreSQL and MinIO.

Both containers start once per run and the schema is built by the Alembic
migrations. Each test works inside one outer transaction that is rolled
back afterwards, so commits made by the API never reach other tests.
"""

import os

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.minio import MinioContainer
from testcontainers.postgres import PostgresContainer

pytestmark = pytest.mark.integration

_DB_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "db")


def _pg_url(container, driver: str = "") -> str:
    host = container.get_container_host_ip()
    port = container.get_exposed_port(5432)
    return f"postgresql{driver}://audres:audres@{host}:{port}/audres"


@pytest.fixture(scope="session")
def pg_container():
    with PostgresContainer(
        image="postgres:16",
        username="audres",
        password="audres",
        dbname="audres",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def minio_container():
    with MinioContainer() as mc:
        yield mc


@pytest.fixture(scope="session")
def db_url(pg_container):
    return _pg_url(pg_container, "+asyncpg")


@pytest.fixture(scope="session")
def sync_db_url(pg_container):
    """psycopg2 URL; Alembic runs synchronously."""
    return _pg_url(pg_container)


@pytest.fixture(scope="session", autouse=True)
def _run_migrations(sync_db_url):
    from alembic import command
    from alembic.config import Config

    os.environ["DATABASE_URL"] = sync_db_url
    cfg = Config(os.path.join(_DB_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(_DB_DIR, "alembic"))
    cfg.set_main_option("sqlalchemy.url", sync_db_url)
    command.upgrade(cfg, "head")


@pytest.fixture(scope="session")
def async_engine(db_url, _run_migrations):
    yield create_async_engine(db_url, poolclass=NullPool)


@pytest.fixture(scope="session", autouse=True)
def _init_storage(minio_container):
    """Send proof uploads to the test MinIO bucket."""
    from audres_api.services import storage as storage_mod

    host = minio_container.get_container_host_ip()
    port = minio_container.get_exposed_port(9000)
    storage_mod._service = storage_mod.StorageService(
        endpoint=f"http://{host}:{port}",
        access_key=minio_container.access_key,
        secret_key=minio_container.secret_key,
        bucket="test-proofs",
    )


@pytest_asyncio.fixture
async def db_session(async_engine):
    """Session whose commits only release savepoints of the outer test transaction."""
    conn = await async_engine.connect()
    outer = await conn.begin()
    session = AsyncSession(
        bind=conn,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        await session.close()
        await outer.rollback()
        await conn.close()


@pytest.fixture
def client_factory(db_session, async_engine):
    """``client_factory(user)`` returns an httpx client whose requests run as ``user``."""
    from audres_db import DatabaseService, get_db, get_db_service

    from audres_api.main import app
    from audres_api.middleware.auth import get_current_user

    def _make(user):
        async def _session():
            yield db_session

        async def _caller():
            return user

        app.dependency_overrides[get_db] = _session
        app.dependency_overrides[get_current_user] = _caller
        app.dependency_overrides[get_db_service] = lambda: DatabaseService(engine=async_engine)
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )

    yield _make
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded_catalog(db_session):
    """Default price list, as the app seeds it on startup."""
    from audres_api.services.catalog import seed_default_catalog

    await seed_default_catalog(db_session)
