"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: MMP_
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MMP_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage (local backend)
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="mmp.db", description="SQLite database name")

    # Remote backend
    rpc_endpoint: str = Field(
        default="",
        description="JSON-RPC endpoint; when set, every operation is forwarded to it",
    )
    rpc_timeout: float = Field(default=30.0, description="Remote request timeout in seconds")

    # Collections
    default_memory_id: str = Field(
        default="",
        description="Default collection id, takes precedence over caller-supplied ids",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def use_rpc(self) -> bool:
        return bool(self.rpc_endpoint)


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
