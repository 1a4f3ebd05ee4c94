"""Shared fixtures."""

from pathlib import Path

import pytest

from mmp.memory.local import LocalBackend
from mmp.memory.storage import SQLiteKVStore


@pytest.fixture
async def kv(tmp_path: Path):
    """Connected key-value store on a temporary database."""
    store = SQLiteKVStore(tmp_path / "test.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
async def backend(tmp_path: Path):
    """Connected local backend on a temporary database."""
    local = LocalBackend(tmp_path / "test.db")
    await local.connect()
    yield local
    await local.close()


@pytest.fixture
async def memory_id(backend: LocalBackend) -> str:
    """Id of a freshly created collection."""
    collection = await backend.create_collection("Test", "Test collection")
    return collection.id
