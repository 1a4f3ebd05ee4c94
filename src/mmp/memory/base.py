"""
Memory data model and backend interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from mmp.core.errors import MMPError, ValidationError


class ContentType(Enum):
    JSON = "json"
    MARKDOWN = "markdown"
    XML = "xml"
    PLAINTEXT = "plaintext"

    @classmethod
    def parse(cls, value: "str | ContentType") -> "ContentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValidationError(
                f"Unknown content type '{value}' (expected one of: {allowed})",
                {"type": value},
            ) from None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    # fromisoformat() accepts a trailing "Z" from 3.11 on
    return datetime.fromisoformat(str(value))


@dataclass
class MemoryCollection:
    """Named container holding an independent namespace of node paths."""

    id: str
    name: str
    description: str
    created_at: datetime
    updated_at: datetime | None = None
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryCollection":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            created_at=parse_timestamp(data.get("createdAt")) or utcnow(),
            updated_at=parse_timestamp(data.get("updatedAt")),
            metadata=data.get("metadata"),
        )


@dataclass
class MemoryNode:
    """Single addressable unit of content at a path within a collection.

    The owning collection id is not part of the node; it only partitions
    storage keys.
    """

    path: str
    name: str
    type: ContentType = ContentType.PLAINTEXT
    description: str | None = None
    attention: str | None = None
    need_init: bool | None = None
    format: str | None = None
    content: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire form, omitting unset fields."""
        data: dict[str, Any] = {
            "path": self.path,
            "name": self.name,
            "description": self.description,
            "attention": self.attention,
            "needInit": self.need_init,
            "format": self.format,
            "type": self.type.value,
            "content": self.content,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryNode":
        if not data.get("path"):
            raise ValidationError("Node path is required")
        return cls(
            path=data["path"],
            name=data.get("name", ""),
            type=ContentType.parse(data.get("type", ContentType.PLAINTEXT.value)),
            description=data.get("description"),
            attention=data.get("attention"),
            need_init=data.get("needInit"),
            format=data.get("format"),
            content=data.get("content"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class TemplateNode:
    """Node definition inside a bootstrap template; ``need_init`` is mandatory."""

    path: str
    name: str
    need_init: bool
    type: ContentType = ContentType.PLAINTEXT
    description: str | None = None
    attention: str | None = None
    format: str | None = None
    content: str | None = None

    def to_node(self) -> MemoryNode:
        return MemoryNode(
            path=self.path,
            name=self.name,
            type=self.type,
            description=self.description,
            attention=self.attention,
            need_init=self.need_init,
            format=self.format,
            content=self.content,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.to_node().to_dict()
        data["needInit"] = self.need_init
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TemplateNode":
        if "needInit" not in data:
            raise ValidationError(
                f"Template entry '{data.get('path', '')}' is missing needInit",
                {"path": data.get("path")},
            )
        node = MemoryNode.from_dict(data)
        return cls(
            path=node.path,
            name=node.name,
            need_init=bool(data["needInit"]),
            type=node.type,
            description=node.description,
            attention=node.attention,
            format=node.format,
            content=node.content,
        )


# Wire name -> attribute for fields an update may touch
UPDATABLE_FIELDS: dict[str, str] = {
    "name": "name",
    "description": "description",
    "content": "content",
    "attention": "attention",
    "format": "format",
    "needInit": "need_init",
    "type": "type",
}


@dataclass
class NodeFilter:
    """Exact-field filters; ``path`` is a plain string prefix."""

    path: str | None = None
    type: ContentType | None = None
    need_init: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.path:
            data["path"] = self.path
        if self.type is not None:
            data["type"] = self.type.value
        if self.need_init is not None:
            data["needInit"] = self.need_init
        return data


@dataclass
class NodeSummary:
    """Listing entry for a node."""

    path: str
    name: str
    description: str = ""
    attention: str = ""

    @classmethod
    def from_node(cls, node: MemoryNode) -> "NodeSummary":
        return cls(
            path=node.path,
            name=node.name,
            description=node.description or "",
            attention=node.attention or "",
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeSummary":
        return cls(
            path=data["path"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            attention=data.get("attention") or "",
        )


@dataclass
class NodeListing:
    """One page of a filtered listing; ``total`` counts the whole match set."""

    total: int
    nodes: list[NodeSummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "nodes": [
                {"path": n.path, "name": n.name, "description": n.description}
                for n in self.nodes
            ],
        }


@dataclass
class UpdateResult:
    path: str
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "updatedAt": format_timestamp(self.updated_at)}


@dataclass
class DeleteResult:
    deleted_count: int

    @property
    def success(self) -> bool:
        return self.deleted_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "deletedCount": self.deleted_count}


@dataclass
class CreatedNode:
    path: str
    need_init: bool


@dataclass
class ApplyTemplateResult:
    memory_id: str
    created_nodes: list[CreatedNode] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "memoryId": self.memory_id,
            "success": self.success,
            "createdNodes": [
                {"path": c.path, "needInit": c.need_init} for c in self.created_nodes
            ],
        }


@dataclass
class BatchRequest:
    memory_id: str | None
    path: str


@dataclass
class BatchItem:
    """Per-request outcome of a batch read."""

    memory_id: str
    path: str
    node: MemoryNode | None = None
    error: MMPError | None = None

    @property
    def ok(self) -> bool:
        return self.node is not None


class MemoryBackend(ABC):
    """Storage delegate behind the memory service.

    Implementations receive already-resolved collection ids.
    """

    async def connect(self) -> None:
        """Acquire resources. No-op by default."""
        return None

    async def close(self) -> None:
        """Release resources. No-op by default."""
        return None

    @abstractmethod
    async def create_collection(
        self,
        name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryCollection:
        """Create a collection with a fresh id."""
        ...

    @abstractmethod
    async def get_collection(self, memory_id: str) -> MemoryCollection:
        """Describe a collection. Raises NotFoundError if absent."""
        ...

    @abstractmethod
    async def list_collections(self) -> list[MemoryCollection]:
        """Enumerate known collections."""
        ...

    @abstractmethod
    async def add_node(self, memory_id: str, node: MemoryNode) -> str:
        """Create a node, return its path. Raises ConflictError on duplicates."""
        ...

    @abstractmethod
    async def get_node(self, memory_id: str, path: str) -> MemoryNode:
        """Fetch a node. Raises NotFoundError if absent."""
        ...

    @abstractmethod
    async def update_node(
        self, memory_id: str, path: str, updates: dict[str, Any]
    ) -> UpdateResult:
        """Apply partial updates (wire field names) to an existing node."""
        ...

    @abstractmethod
    async def delete_node(
        self, memory_id: str, path: str, recursive: bool = False
    ) -> DeleteResult:
        """Delete a node and, when recursive, all of its descendants."""
        ...

    @abstractmethod
    async def list_nodes(
        self,
        memory_id: str,
        node_filter: NodeFilter | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> NodeListing:
        """Filtered, paginated listing."""
        ...

    @abstractmethod
    async def get_init_nodes(
        self, memory_id: str, path_prefix: str | None = None
    ) -> list[NodeSummary]:
        """Nodes flagged needInit, optionally under a path prefix."""
        ...

    @abstractmethod
    async def apply_template(
        self, memory_id: str, template: list[TemplateNode]
    ) -> ApplyTemplateResult:
        """Bulk-create template nodes, skipping existing paths."""
        ...

    @abstractmethod
    async def batch_get(self, requests: list[BatchRequest]) -> list[BatchItem]:
        """Read several nodes; one item per request, failures recorded not raised."""
        ...
