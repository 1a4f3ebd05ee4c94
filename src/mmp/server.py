"""MMP MCP server implementation using FastMCP.

Thin adapter: validates argument shapes, forwards to MemoryService and turns
MMPError into ToolError. Tool arguments use the camelCase names of the MMP
wire schema (memoryId, outputFormat, needInit).
"""

from collections.abc import Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mmp.core.config import Settings, get_settings
from mmp.core.errors import MMPError
from mmp.core.logging import get_logger
from mmp.memory.base import BatchRequest, ContentType, MemoryNode, NodeFilter, TemplateNode
from mmp.memory.render import render_node
from mmp.service import MemoryService, create_service

logger = get_logger("server")

ContentTypeName = Literal["json", "markdown", "xml", "plaintext"]

# Global service instance
_service: MemoryService | None = None
_settings: Settings | None = None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeInput(_WireModel):
    name: str = Field(description="Node name")
    path: str = Field(description="Node path, slash-delimited hierarchy")
    type: ContentTypeName = Field(description="Content type")
    content: str | None = Field(default=None, description="Node content")
    description: str | None = Field(default=None, description="Node description")
    attention: str | None = Field(default=None, description="Special notes for the reader")
    need_init: bool | None = Field(default=None, description="Content still to be filled in")
    format: str | None = Field(default=None, description="Format requirements for child nodes")

    def to_node(self) -> MemoryNode:
        return MemoryNode.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class TemplateNodeInput(NodeInput):
    need_init: bool = Field(description="If true, content must not be empty")

    def to_template_node(self) -> TemplateNode:
        return TemplateNode.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class NodeUpdates(_WireModel):
    name: str | None = None
    description: str | None = None
    content: str | None = None
    attention: str | None = None
    format: str | None = None
    need_init: bool | None = None
    type: ContentTypeName | None = None

    def to_updates(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BatchRequestInput(_WireModel):
    memory_id: str | None = Field(default=None, description="Collection id")
    path: str = Field(description="Node path")


class PathFilterInput(_WireModel):
    path: str | None = Field(default=None, description="Path prefix filter")


class ListFilterInput(PathFilterInput):
    type: ContentTypeName | None = Field(default=None, description="Content type filter")
    need_init: bool | None = Field(default=None, description="needInit flag filter")

    def to_filter(self) -> NodeFilter:
        return NodeFilter(
            path=self.path,
            type=ContentType(self.type) if self.type else None,
            need_init=self.need_init,
        )


class PaginationInput(_WireModel):
    offset: int = Field(default=0, ge=0, description="Offset")
    limit: int = Field(default=50, ge=0, description="Maximum number of nodes")


def get_service() -> MemoryService:
    """Get the global memory service instance."""
    if _service is None:
        raise RuntimeError("Memory service not initialized. Server not started properly.")
    return _service


@contextmanager
def translate_errors() -> Iterator[None]:
    try:
        yield
    except MMPError as e:
        raise ToolError(f"{e.kind}: {e.message}") from e


@asynccontextmanager
async def lifespan(_app: FastMCP):  # type: ignore[no-untyped-def]
    """Manage server lifecycle."""
    global _service, _settings

    logger.info("Starting MMP server")
    _settings = get_settings()
    _service = create_service(_settings)
    await _service.connect()
    if _settings.default_memory_id:
        logger.info(f"Default memory id: {_settings.default_memory_id}")

    yield

    logger.info("Shutting down MMP server")
    await _service.close()
    _service = None


mcp = FastMCP(
    "MMP-MCP",
    version="1.0.0",
    instructions="Model-Memory-Protocol: hierarchical memory storage for AI models",
    lifespan=lifespan,
)


@mcp.tool(
    name="memory-get-init-nodes",
    description="Retrieve all nodes that need initialization",
)
async def get_init_nodes(
    memoryId: str | None = None, filter: PathFilterInput | None = None
) -> dict:
    """Retrieve all nodes that still need initialization.

    Args:
        memoryId: Target collection id (mm-{uuid})
        filter: Optional path prefix filter
    """
    with translate_errors():
        nodes = await get_service().get_init_nodes(memoryId, filter.path if filter else None)
    return {
        "nodes": [
            {
                "path": n.path,
                "name": n.name,
                "description": n.description,
                "attention": n.attention,
            }
            for n in nodes
        ]
    }


@mcp.tool(name="memory-add", description="Add a new memory node to the specified memory tree")
async def add_node(node: NodeInput, memoryId: str | None = None) -> dict:
    """Add a memory node to the memory tree."""
    with translate_errors():
        path = await get_service().add_node(node.to_node(), memoryId)
    return {"path": path}


@mcp.tool(name="memory-get", description="Get the content of the node at a path")
async def get_node(
    path: str,
    memoryId: str | None = None,
    outputFormat: Literal["xml", "json", "text"] = "text",
) -> str:
    """Retrieve the node at a path, rendered as text, json or xml."""
    with translate_errors():
        node = await get_service().get_node(path, memoryId)
    return render_node(node, outputFormat)


@mcp.tool(name="memory-list", description="List memory nodes matching the given criteria")
async def list_nodes(
    memoryId: str | None = None,
    filter: ListFilterInput | None = None,
    pagination: PaginationInput | None = None,
) -> dict:
    """List nodes matching a path prefix, type and needInit flag."""
    node_filter = filter.to_filter() if filter else None
    page = pagination or PaginationInput()
    with translate_errors():
        listing = await get_service().list_nodes(
            memoryId, node_filter, page.offset, page.limit
        )
    return listing.to_dict()


@mcp.tool(name="memory-update", description="Update the node at a path")
async def update_node(path: str, updates: NodeUpdates, memoryId: str | None = None) -> dict:
    """Update fields of an existing node."""
    with translate_errors():
        result = await get_service().update_node(path, updates.to_updates(), memoryId)
    return result.to_dict()


@mcp.tool(name="memory-delete", description="Delete the memory node at a path")
async def delete_node(path: str, recursive: bool = False, memoryId: str | None = None) -> dict:
    """Delete a node; recursive=true also deletes its children."""
    with translate_errors():
        result = await get_service().delete_node(path, recursive, memoryId)
    return result.to_dict()


@mcp.tool(name="memory-batch-get", description="Batch retrieve memory nodes")
async def batch_get_nodes(requests: list[BatchRequestInput]) -> list[dict]:
    """Retrieve several nodes. Nodes that cannot be read are left out."""
    with translate_errors():
        nodes = await get_service().batch_get_nodes(
            [BatchRequest(memory_id=r.memory_id, path=r.path) for r in requests]
        )
    return [node.to_dict() for node in nodes]


@mcp.tool(name="memcollection-create", description="Create a new memory collection id")
async def create_memory(
    name: str, description: str, metadata: dict[str, Any] | None = None
) -> dict:
    """Create a new memory collection with a unique id."""
    with translate_errors():
        collection = await get_service().create_memory(name, description, metadata)
    data = collection.to_dict()
    return {key: data[key] for key in ("id", "name", "description", "createdAt")}


@mcp.tool(
    name="memcollection-apply-template",
    description="Apply a memory node template to a memory collection",
)
async def apply_template(
    template: list[TemplateNodeInput], memoryId: str | None = None
) -> dict:
    """Apply a node template to a collection; existing paths are skipped."""
    with translate_errors():
        result = await get_service().apply_template(
            [entry.to_template_node() for entry in template], memoryId
        )
    return result.to_dict()


def usage_guide(default_memory_id: str = "", rpc_endpoint: str = "") -> str:
    info = """# Model-Memory-Protocol (MMP)

MMP is an open protocol for AI model memory management, supporting hierarchical
structured memory storage and retrieval. Memories are organized as nodes at
slash-delimited paths inside a collection, so knowledge persists across sessions
and context-window limits."""

    if default_memory_id:
        info += f"\n\n## Default Memory ID\n\nCurrent default Memory ID: `{default_memory_id}`"
        info += "\n\nThe default Memory ID is used even when a call names another one."
    if rpc_endpoint:
        info += f"\n\n## RPC Endpoint\n\nCurrent RPC endpoint: `{rpc_endpoint}`"

    info += """

## Available Tools

- memory-get-init-nodes: Retrieve all nodes that need initialization
- memory-add: Add a memory node to the specified memory tree
- memory-get: Retrieve a memory node from the specified path
- memory-list: List memory nodes matching specified criteria
- memory-update: Update an existing memory node
- memory-delete: Delete a memory node with optional recursive deletion
- memory-batch-get: Batch retrieve multiple memory nodes
- memcollection-create: Create a new memory collection with unique ID
- memcollection-apply-template: Apply a memory node template to a memory collection

## Example Workflow

### Create a new memory collection
1. Use `memcollection-create` to create a new memory collection
2. Use `memory-add` to add memory nodes
3. Browse the memory tree with `memory-list`, read nodes with `memory-get`

### Apply a memory node template
1. Use `memcollection-apply-template` to bootstrap a collection
2. Use `memory-get-init-nodes` to find nodes waiting for content
3. Use `memory-update` to fill them in
"""
    return info


@mcp.tool(name="how-to-use-mmp", description="Get information about Model-Memory-Protocol")
async def how_to_use() -> str:
    """Get information about Model-Memory-Protocol."""
    settings = _settings or get_settings()
    return usage_guide(settings.default_memory_id, settings.rpc_endpoint)


def run() -> None:
    mcp.run(transport="stdio")
