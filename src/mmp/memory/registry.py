"""Collection registry: CRUD for collection descriptors."""

from datetime import datetime
from typing import Any

from mmp.core.errors import NotFoundError
from mmp.core.logging import get_logger
from mmp.memory.base import MemoryCollection, utcnow
from mmp.memory.ids import new_collection_id
from mmp.memory.storage import SQLiteKVStore, collection_key

logger = get_logger("memory.registry")


class CollectionRegistry:
    """Stores collection descriptors under ``memory:{id}``."""

    def __init__(self, kv: SQLiteKVStore):
        self.kv = kv

    async def create(
        self,
        name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryCollection:
        collection = MemoryCollection(
            id=new_collection_id(),
            name=name,
            description=description,
            created_at=utcnow(),
            metadata=metadata,
        )
        await self.kv.set(collection_key(collection.id), collection.to_dict())
        logger.info(f"Created collection {collection.id} ({name})")
        return collection

    async def get(self, memory_id: str) -> MemoryCollection:
        data = await self.kv.get(collection_key(memory_id))
        if data is None:
            raise NotFoundError(
                f"Memory collection '{memory_id}' not found", {"memoryId": memory_id}
            )
        return MemoryCollection.from_dict(data)

    async def exists(self, memory_id: str) -> bool:
        return await self.kv.get(collection_key(memory_id)) is not None

    async def touch(self, memory_id: str, timestamp: datetime) -> None:
        """Bump updatedAt after a node mutation. Missing collections are ignored."""
        data = await self.kv.get(collection_key(memory_id))
        if data is None:
            return
        collection = MemoryCollection.from_dict(data)
        collection.updated_at = timestamp
        await self.kv.set(collection_key(memory_id), collection.to_dict())

    async def list_all(self) -> list[MemoryCollection]:
        return [
            MemoryCollection.from_dict(value)
            for _, value in await self.kv.items(collection_key(""))
        ]
