"""
Memory service - the entry point every adapter calls.

Resolves the collection id for each call and delegates to the configured
backend. Precedence: a configured default collection id always wins over the
id supplied by the caller; the caller's id is only used when no default is set.
"""

from typing import Any

from mmp.core.config import Settings
from mmp.core.errors import ConfigurationError
from mmp.core.logging import get_logger
from mmp.memory.base import (
    ApplyTemplateResult,
    BatchItem,
    BatchRequest,
    DeleteResult,
    MemoryBackend,
    MemoryCollection,
    MemoryNode,
    NodeFilter,
    NodeListing,
    NodeSummary,
    TemplateNode,
    UpdateResult,
)

logger = get_logger("service")


class MemoryService:
    def __init__(self, backend: MemoryBackend, default_memory_id: str = ""):
        self.backend = backend
        self.default_memory_id = default_memory_id

    async def connect(self) -> None:
        await self.backend.connect()

    async def close(self) -> None:
        await self.backend.close()

    def resolve_memory_id(self, memory_id: str | None = None) -> str:
        resolved = self.default_memory_id or memory_id
        if not resolved:
            raise ConfigurationError("No memoryId provided and no default memoryId set")
        return resolved

    # Collections

    async def create_memory(
        self,
        name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryCollection:
        return await self.backend.create_collection(name, description, metadata)

    async def get_memory(self, memory_id: str | None = None) -> MemoryCollection:
        return await self.backend.get_collection(self.resolve_memory_id(memory_id))

    async def list_memories(self) -> list[MemoryCollection]:
        return await self.backend.list_collections()

    async def apply_template(
        self, template: list[TemplateNode], memory_id: str | None = None
    ) -> ApplyTemplateResult:
        return await self.backend.apply_template(self.resolve_memory_id(memory_id), template)

    # Nodes

    async def get_init_nodes(
        self, memory_id: str | None = None, path_prefix: str | None = None
    ) -> list[NodeSummary]:
        return await self.backend.get_init_nodes(self.resolve_memory_id(memory_id), path_prefix)

    async def add_node(self, node: MemoryNode, memory_id: str | None = None) -> str:
        return await self.backend.add_node(self.resolve_memory_id(memory_id), node)

    async def get_node(self, path: str, memory_id: str | None = None) -> MemoryNode:
        return await self.backend.get_node(self.resolve_memory_id(memory_id), path)

    async def list_nodes(
        self,
        memory_id: str | None = None,
        node_filter: NodeFilter | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> NodeListing:
        return await self.backend.list_nodes(
            self.resolve_memory_id(memory_id), node_filter, offset, limit
        )

    async def update_node(
        self, path: str, updates: dict[str, Any], memory_id: str | None = None
    ) -> UpdateResult:
        return await self.backend.update_node(self.resolve_memory_id(memory_id), path, updates)

    async def delete_node(
        self, path: str, recursive: bool = False, memory_id: str | None = None
    ) -> DeleteResult:
        return await self.backend.delete_node(
            self.resolve_memory_id(memory_id), path, recursive
        )

    async def batch_get(self, requests: list[BatchRequest]) -> list[BatchItem]:
        """Read several nodes, one status item per request.

        Every request must resolve to a collection id before anything is read.
        """
        resolved = [
            BatchRequest(memory_id=self.resolve_memory_id(r.memory_id), path=r.path)
            for r in requests
        ]
        return await self.backend.batch_get(resolved)

    async def batch_get_nodes(self, requests: list[BatchRequest]) -> list[MemoryNode]:
        """Successful reads only.

        Failed items are dropped, so callers cannot tell a missing node from a
        transport failure; use batch_get() for per-item status.
        """
        nodes = []
        for item in await self.batch_get(requests):
            if item.node is not None:
                nodes.append(item.node)
            else:
                logger.warning(
                    f"Batch read dropped {item.memory_id}:{item.path}: {item.error}"
                )
        return nodes


def create_backend(settings: Settings) -> MemoryBackend:
    """Local backend unless an RPC endpoint is configured."""
    if settings.use_rpc:
        from mmp.memory.remote import RemoteBackend

        logger.info(f"Using remote backend: {settings.rpc_endpoint}")
        return RemoteBackend(
            settings.rpc_endpoint,
            timeout=settings.rpc_timeout,
            default_memory_id=settings.default_memory_id,
        )

    from mmp.memory.local import LocalBackend

    logger.info(f"Using local backend: {settings.db_path}")
    return LocalBackend(settings.db_path)


def create_service(settings: Settings) -> MemoryService:
    return MemoryService(create_backend(settings), settings.default_memory_id)
