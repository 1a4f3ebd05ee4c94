"""Node store: exact-key primitives, no hierarchy."""

from mmp.core.errors import NotFoundError
from mmp.memory.base import MemoryNode
from mmp.memory.storage import SQLiteKVStore, node_key, node_key_prefix


class NodeStore:
    """Stores nodes under ``node:{id}:{path}``."""

    def __init__(self, kv: SQLiteKVStore):
        self.kv = kv

    async def find(self, memory_id: str, path: str) -> MemoryNode | None:
        data = await self.kv.get(node_key(memory_id, path))
        return MemoryNode.from_dict(data) if data else None

    async def get(self, memory_id: str, path: str) -> MemoryNode:
        node = await self.find(memory_id, path)
        if node is None:
            raise NotFoundError(
                f"Node '{path}' not found in memory '{memory_id}'",
                {"memoryId": memory_id, "path": path},
            )
        return node

    async def put(self, memory_id: str, node: MemoryNode) -> MemoryNode:
        """Upsert; create-vs-update rules belong to the caller."""
        await self.kv.set(node_key(memory_id, node.path), node.to_dict())
        return node

    async def remove(self, memory_id: str, path: str) -> bool:
        """Idempotent delete; False when nothing was stored at path."""
        return await self.kv.delete(node_key(memory_id, path))

    async def list_all(self, memory_id: str) -> list[MemoryNode]:
        return [
            MemoryNode.from_dict(value)
            for _, value in await self.kv.items(node_key_prefix(memory_id))
        ]
