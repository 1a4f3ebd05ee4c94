"""Tests for configuration module."""

from pathlib import Path

from mmp.core.config import Settings


def test_default_settings():
    """Settings load with defaults."""
    settings = Settings(
        _env_file=None,  # Don't load .env in tests
    )
    assert settings.data_dir == Path("data")
    assert settings.rpc_endpoint == ""
    assert settings.default_memory_id == ""
    assert settings.rpc_timeout == 30.0
    assert not settings.use_rpc


def test_db_path():
    """Database path combines data_dir and db_name."""
    settings = Settings(
        data_dir=Path("/tmp/test"),
        db_name="test.db",
        _env_file=None,
    )
    assert settings.db_path == Path("/tmp/test/test.db")


def test_env_prefix(monkeypatch):
    """MMP_ environment variables are picked up."""
    monkeypatch.setenv("MMP_RPC_ENDPOINT", "http://localhost:18080/rpc")
    monkeypatch.setenv("MMP_DEFAULT_MEMORY_ID", "mm-default")
    settings = Settings(_env_file=None)
    assert settings.use_rpc
    assert settings.rpc_endpoint == "http://localhost:18080/rpc"
    assert settings.default_memory_id == "mm-default"
