"""Hierarchy semantics derived from slash-delimited node paths.

Two different prefix tests are in play and must stay distinct:
- children of ``p`` are paths starting with ``p + "/"`` (strict descendants)
- a listing filter ``p`` matches any path starting with ``p`` (including ``p`` itself
  and siblings such as ``p-archive``)
"""

from dataclasses import dataclass, field

from mmp.core.errors import ConflictError, NotFoundError
from mmp.core.logging import get_logger
from mmp.memory.base import DeleteResult, MemoryNode, NodeFilter
from mmp.memory.nodes import NodeStore

logger = get_logger("memory.tree")

PATH_SEPARATOR = "/"


def is_descendant(path: str, parent_path: str) -> bool:
    return path.startswith(parent_path + PATH_SEPARATOR)


def matches_filter(node: MemoryNode, node_filter: NodeFilter) -> bool:
    if node_filter.path and not node.path.startswith(node_filter.path):
        return False
    if node_filter.type is not None and node.type != node_filter.type:
        return False
    if node_filter.need_init is not None and node.need_init != node_filter.need_init:
        return False
    return True


@dataclass
class NodePage:
    total: int
    items: list[MemoryNode] = field(default_factory=list)


class TreeOperations:
    """Prefix queries and recursive delete over a NodeStore.

    Every query scans the collection snapshot returned by ``list_all``;
    concurrent writers may make that snapshot slightly stale.
    """

    def __init__(self, nodes: NodeStore):
        self.nodes = nodes

    async def exists(self, memory_id: str, path: str) -> bool:
        return await self.nodes.find(memory_id, path) is not None

    async def child_paths(self, memory_id: str, parent_path: str) -> list[str]:
        return [
            node.path
            for node in await self.nodes.list_all(memory_id)
            if is_descendant(node.path, parent_path)
        ]

    async def matching(
        self, memory_id: str, node_filter: NodeFilter | None = None
    ) -> list[MemoryNode]:
        """Full match set, ordered by path."""
        node_filter = node_filter or NodeFilter()
        nodes = [
            node
            for node in await self.nodes.list_all(memory_id)
            if matches_filter(node, node_filter)
        ]
        return sorted(nodes, key=lambda n: n.path)

    async def filtered_list(
        self,
        memory_id: str,
        node_filter: NodeFilter | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> NodePage:
        matching = await self.matching(memory_id, node_filter)
        start = max(offset, 0)
        end = start + max(limit, 0)
        return NodePage(total=len(matching), items=matching[start:end])

    async def delete_subtree(
        self, memory_id: str, path: str, recursive: bool = False
    ) -> DeleteResult:
        if not await self.exists(memory_id, path):
            raise NotFoundError(
                f"Node '{path}' not found in memory '{memory_id}'",
                {"memoryId": memory_id, "path": path},
            )

        children = await self.child_paths(memory_id, path)
        if children and not recursive:
            raise ConflictError(
                f"Node '{path}' has {len(children)} children, recursive flag required",
                {"memoryId": memory_id, "path": path, "children": len(children)},
            )

        deleted = 0
        for target in [path, *children]:
            if await self.nodes.remove(memory_id, target):
                deleted += 1

        logger.debug(f"Deleted {deleted} node(s) at '{path}' in {memory_id}")
        return DeleteResult(deleted_count=deleted)
