"""Local backend: collections and nodes persisted in SQLite."""

from dataclasses import replace
from pathlib import Path
from typing import Any

import aiosqlite

from mmp.core.errors import (
    ConflictError,
    MMPError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from mmp.core.logging import get_logger
from mmp.memory.base import (
    UPDATABLE_FIELDS,
    ApplyTemplateResult,
    BatchItem,
    BatchRequest,
    ContentType,
    DeleteResult,
    MemoryBackend,
    MemoryCollection,
    MemoryNode,
    NodeFilter,
    NodeListing,
    NodeSummary,
    TemplateNode,
    UpdateResult,
    utcnow,
)
from mmp.memory.nodes import NodeStore
from mmp.memory.registry import CollectionRegistry
from mmp.memory.storage import SQLiteKVStore
from mmp.memory.templates import TemplateApplier
from mmp.memory.tree import TreeOperations

logger = get_logger("memory.local")


class LocalBackend(MemoryBackend):
    """Composes registry, node store, tree operations and template applier.

    Every node mutation bumps the owning collection's updatedAt.
    """

    def __init__(self, db_path: Path):
        self.kv = SQLiteKVStore(db_path)
        self.registry = CollectionRegistry(self.kv)
        self.nodes = NodeStore(self.kv)
        self.tree = TreeOperations(self.nodes)
        self.templates = TemplateApplier(self.nodes)

    async def connect(self) -> None:
        await self.kv.connect()

    async def close(self) -> None:
        await self.kv.close()

    async def _require_collection(self, memory_id: str) -> None:
        if not await self.registry.exists(memory_id):
            raise NotFoundError(
                f"Memory collection '{memory_id}' not found", {"memoryId": memory_id}
            )

    # Collections

    async def create_collection(
        self,
        name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryCollection:
        return await self.registry.create(name, description, metadata)

    async def get_collection(self, memory_id: str) -> MemoryCollection:
        return await self.registry.get(memory_id)

    async def list_collections(self) -> list[MemoryCollection]:
        return await self.registry.list_all()

    # Nodes

    async def add_node(self, memory_id: str, node: MemoryNode) -> str:
        await self._require_collection(memory_id)
        if await self.tree.exists(memory_id, node.path):
            raise ConflictError(
                f"Node path '{node.path}' already exists in memory '{memory_id}'",
                {"memoryId": memory_id, "path": node.path},
            )

        now = utcnow()
        await self.nodes.put(memory_id, replace(node, created_at=now, updated_at=now))
        await self.registry.touch(memory_id, now)
        logger.debug(f"Added node '{node.path}' to {memory_id}")
        return node.path

    async def get_node(self, memory_id: str, path: str) -> MemoryNode:
        return await self.nodes.get(memory_id, path)

    async def update_node(
        self, memory_id: str, path: str, updates: dict[str, Any]
    ) -> UpdateResult:
        node = await self.nodes.get(memory_id, path)

        unknown = sorted(set(updates) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(unknown)}", {"fields": unknown}
            )

        for wire_name, value in updates.items():
            if wire_name == "type":
                value = ContentType.parse(value)
            setattr(node, UPDATABLE_FIELDS[wire_name], value)

        now = utcnow()
        node.updated_at = now
        await self.nodes.put(memory_id, node)
        await self.registry.touch(memory_id, now)
        logger.debug(f"Updated node '{path}' in {memory_id}: {sorted(updates)}")
        return UpdateResult(path=path, updated_at=now)

    async def delete_node(
        self, memory_id: str, path: str, recursive: bool = False
    ) -> DeleteResult:
        result = await self.tree.delete_subtree(memory_id, path, recursive)
        if result.deleted_count:
            await self.registry.touch(memory_id, utcnow())
        return result

    async def list_nodes(
        self,
        memory_id: str,
        node_filter: NodeFilter | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> NodeListing:
        page = await self.tree.filtered_list(memory_id, node_filter, offset, limit)
        return NodeListing(
            total=page.total,
            nodes=[NodeSummary.from_node(node) for node in page.items],
        )

    async def get_init_nodes(
        self, memory_id: str, path_prefix: str | None = None
    ) -> list[NodeSummary]:
        nodes = await self.tree.matching(
            memory_id, NodeFilter(path=path_prefix, need_init=True)
        )
        return [NodeSummary.from_node(node) for node in nodes]

    async def apply_template(
        self, memory_id: str, template: list[TemplateNode]
    ) -> ApplyTemplateResult:
        await self._require_collection(memory_id)
        result = await self.templates.apply(memory_id, template)
        if result.created_nodes:
            await self.registry.touch(memory_id, utcnow())
        return result

    async def batch_get(self, requests: list[BatchRequest]) -> list[BatchItem]:
        items = []
        for request in requests:
            item = BatchItem(memory_id=request.memory_id or "", path=request.path)
            try:
                item.node = await self.nodes.get(item.memory_id, request.path)
            except MMPError as e:
                item.error = e
            except aiosqlite.Error as e:
                logger.error(f"Batch read of '{request.path}' failed: {e}")
                item.error = StorageError(
                    f"Storage error: {e}",
                    {"memoryId": item.memory_id, "path": request.path},
                )
            items.append(item)
        return items
