"""Test configuration and fixtures."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from photoseek.database import build_session_factory
from photoseek.metadata import Base
from photoseek.settings import Settings
from photoseek.storage import LocalImageStore
from photoseek.store import PhotoStore

from tests.fakes import FakeTaggingService


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at an in-memory database and a temporary image directory."""
    return Settings(
        database_url="sqlite://",
        images_dir=str(tmp_path / "images"),
        upload_embed_timeout_seconds=0.2,
        search_embed_timeout_seconds=0.2,
        search_fallback_timeout_seconds=0.2,
    )


@pytest.fixture
def test_engine():
    """Create test database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def store(test_engine, test_settings: Settings) -> PhotoStore:
    return PhotoStore(build_session_factory(test_engine), test_settings)


@pytest.fixture
def files(test_settings: Settings) -> LocalImageStore:
    return LocalImageStore(test_settings.images_dir)


@pytest.fixture
def tagger() -> FakeTaggingService:
    return FakeTaggingService()
