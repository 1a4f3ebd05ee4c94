"""
Core module - configuration, logging, errors.

Components:
- config: Settings management via pydantic-settings
- logging: Logging setup
- errors: Discriminated error taxonomy shared by every backend
"""

from mmp.core.config import Settings
from mmp.core.errors import (
    ConfigurationError,
    ConflictError,
    MMPError,
    NotFoundError,
    StorageError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "Settings",
    "MMPError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "ConfigurationError",
    "UpstreamError",
    "StorageError",
]
