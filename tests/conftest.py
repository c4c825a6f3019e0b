"""Shared fixtures: temporary database, fake clock, engine with stub embeddings."""

from pathlib import Path

import pytest

from helpers import FakeClock, StubEmbeddingProvider
from memoria.core.config import Settings
from memoria.memory.database import Database
from memoria.memory.engine import MemoryEngine


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def db(tmp_path: Path):
    """Connected database in a temporary directory."""
    database = Database(tmp_path / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        db_name="engine.db",
        embedding_provider="hash",
        _env_file=None,  # Don't load .env in tests
    )


@pytest.fixture
def embedder() -> StubEmbeddingProvider:
    return StubEmbeddingProvider()


@pytest.fixture
async def engine(settings: Settings, embedder: StubEmbeddingProvider, clock: FakeClock):
    """Connected engine with stub embeddings and a fake clock."""
    memory_engine = MemoryEngine.create(settings, embedder=embedder, clock=clock)
    await memory_engine.connect()
    yield memory_engine
    await memory_engine.close()
