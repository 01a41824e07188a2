from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_email_adapter, get_settings
from src.api.main import app
from src.config.models import (
    ApplicationSettings,
    DatabaseSettings,
    EmailClientSettings,
    Settings,
)


@pytest.fixture
def db_path(tmp_path) -> str:
    """A migrated SQLite database in a temporary directory."""
    path = str(tmp_path / "newsletter.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def test_settings(db_path: str) -> Settings:
    return Settings(
        application=ApplicationSettings(base_url="http://testserver"),
        database=DatabaseSettings(path=db_path, run_migrations_on_startup=False),
        email_client=EmailClientSettings(sender_email="newsletter@example.com"),
    )


@pytest.fixture
def email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter(sender="newsletter@example.com")


@pytest.fixture
def client(
    test_settings: Settings, email_adapter: DevEmailAdapter
) -> Generator[TestClient, None, None]:
    """API client wired to the temporary database and an in-memory mailbox."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_email_adapter] = lambda: email_adapter

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
