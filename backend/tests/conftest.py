"""
Shared fixtures for all tests.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src import config
from src.auth import session as session_module
from src.auth.storage import JsonFileStore
from src.auth.sql_storage import SqlAlchemyStore
from src.models.db import Base
from src.models import auth_models  # noqa: F401

# In-memory SQLite database for the SQL store tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Development mode, a fixed secret and no SMTP for every test."""
    monkeypatch.setattr(config, "APP_ENV", "development")
    monkeypatch.setattr(config, "IS_PRODUCTION", False)
    monkeypatch.setattr(config, "IS_DEVELOPMENT", True)
    monkeypatch.setattr(config, "AUTH_SECRET", TEST_SECRET)
    monkeypatch.setattr(config, "AUTH_STORE_BACKEND", "file")
    monkeypatch.setattr(config, "SMTP_HOST", "")
    monkeypatch.setattr(config, "SMTP_PORT", 0)
    monkeypatch.setattr(config, "SMTP_USER", "")
    monkeypatch.setattr(config, "SMTP_PASSWORD", "")
    monkeypatch.setattr(session_module, "_warned_dev_secret", False)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "db.json"


@pytest.fixture
def store(db_path):
    return JsonFileStore(db_path)


@pytest.fixture(scope="function")
def db():
    """
    Fresh database per test: tables are created up front and dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_store(db):
    return SqlAlchemyStore(db)


@pytest.fixture(scope="function")
def client(store, tmp_path):
    """
    FastAPI test client using the JSON file store in a temporary directory.
    """
    from main import app
    from src.db import get_application_storage_path, get_auth_store, get_job_storage_path

    app.dependency_overrides[get_auth_store] = lambda: store
    app.dependency_overrides[get_job_storage_path] = lambda: tmp_path / "jobs.json"
    app.dependency_overrides[get_application_storage_path] = lambda: tmp_path / "applications.json"

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def sql_client(db, monkeypatch):
    """
    Test client running the SQL store on the in-memory database.
    """
    monkeypatch.setattr(config, "AUTH_STORE_BACKEND", "sql")

    import main
    from src.db import get_db

    # Startup creates tables on the test engine, not on the configured database
    monkeypatch.setattr(main, "engine", engine)
    app = main.app

    def override_get_db():
        try:
            yield db
        finally:
            # The db fixture closes the session
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
