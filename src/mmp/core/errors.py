"""
Error taxonomy.

Every failure raised by the memory core carries a machine-readable ``kind``
so adapters can map it onto their own protocol without string matching.
"""

from typing import Any


class MMPError(Exception):
    """Base exception for memory operations.

    Attributes:
        message: Human-readable error message
        kind: Error discriminator (not_found, conflict, validation, configuration,
            upstream, storage)
        context: Additional context about the failing call
    """

    kind: str = "error"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "context": self.context}


class NotFoundError(MMPError):
    """Collection or node does not exist."""

    kind = "not_found"


class ConflictError(MMPError):
    """Duplicate path on create, or children present on a non-recursive delete."""

    kind = "conflict"


class ValidationError(MMPError):
    """Input rejected before any write happened."""

    kind = "validation"


class ConfigurationError(MMPError):
    """No collection id resolvable, or a required endpoint is missing."""

    kind = "configuration"


class UpstreamError(MMPError):
    """Remote transport, HTTP or JSON-RPC level failure."""

    kind = "upstream"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        status_code: int | None = None,
        rpc_code: int | None = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code
        self.rpc_code = rpc_code


class StorageError(MMPError):
    """Local storage medium failed to read or write."""

    kind = "storage"
