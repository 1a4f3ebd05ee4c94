"""Remote backend - forwards every operation to a JSON-RPC 2.0 service over HTTP."""

import json
from typing import Any
from uuid import uuid4

import httpx

from mmp.core.errors import ConfigurationError, MMPError, NotFoundError, UpstreamError
from mmp.core.logging import get_logger
from mmp.memory.base import (
    ApplyTemplateResult,
    BatchItem,
    BatchRequest,
    CreatedNode,
    DeleteResult,
    MemoryBackend,
    MemoryCollection,
    MemoryNode,
    NodeFilter,
    NodeListing,
    NodeSummary,
    TemplateNode,
    UpdateResult,
    parse_timestamp,
    utcnow,
)
from mmp.memory.templates import validate_template

logger = get_logger("memory.remote")


class RemoteBackend(MemoryBackend):
    """JSON-RPC delegate.

    No retries: a transport failure surfaces as UpstreamError for that call.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        default_memory_id: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not endpoint:
            raise ConfigurationError("RPC endpoint not configured")
        self.endpoint = endpoint
        self.timeout = timeout
        self.default_memory_id = default_memory_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, params: dict[str, Any]) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid4()),
            "method": method,
            "params": params,
        }
        logger.debug(f"RPC -> {method}")

        try:
            response = await self.client.post(self.endpoint, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"RPC request failed for method {method}: HTTP {status}")
            raise UpstreamError(
                f"HTTP error: {status}", {"method": method}, status_code=status
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"RPC request failed for method {method}: {e}")
            raise UpstreamError(f"RPC transport error: {e}", {"method": method}) from e
        except ValueError as e:
            logger.error(f"RPC request failed for method {method}: invalid JSON response")
            raise UpstreamError("Invalid JSON-RPC response", {"method": method}) from e

        if not isinstance(data, dict):
            raise UpstreamError("Invalid JSON-RPC response", {"method": method})

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or json.dumps(error)
                detail, code = error.get("data"), error.get("code")
            else:
                message, detail, code = str(error), None, None
            logger.error(f"RPC error for method {method}: {message}")
            raise UpstreamError(
                f"RPC error: {message}",
                {"method": method, "data": detail},
                rpc_code=code if isinstance(code, int) else None,
            )
        return data.get("result")

    async def call_object(
        self, method: str, params: dict[str, Any], required: bool = False
    ) -> dict[str, Any]:
        """Like ``call`` but the result must be a JSON object.

        An empty result reads as ``{}`` unless ``required`` is set.
        """
        result = await self.call(method, params)
        if not result and not required:
            return {}
        if not isinstance(result, dict):
            logger.error(f"RPC result for method {method} is not an object")
            raise UpstreamError("Invalid JSON-RPC response", {"method": method})
        return result

    # Collections

    async def create_collection(
        self,
        name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryCollection:
        params: dict[str, Any] = {"name": name, "description": description}
        if metadata is not None:
            params["metadata"] = metadata
        result = await self.call_object("memManager.Create", params, required=True)
        if not result.get("id"):
            raise UpstreamError("Invalid JSON-RPC response", {"method": "memManager.Create"})
        return MemoryCollection.from_dict(result)

    async def get_collection(self, memory_id: str) -> MemoryCollection:
        # The service has no describe method: probe that the id is usable,
        # then return a placeholder descriptor.
        await self.call("memory.List", {"memoryId": memory_id, "pagination": {"limit": 1}})
        return MemoryCollection(
            id=memory_id,
            name=f"Memory {memory_id}",
            description="Accessed via RPC",
            created_at=utcnow(),
        )

    async def list_collections(self) -> list[MemoryCollection]:
        if not self.default_memory_id:
            return []
        return [await self.get_collection(self.default_memory_id)]

    # Nodes

    async def add_node(self, memory_id: str, node: MemoryNode) -> str:
        result = await self.call_object(
            "memory.Add", {"memoryId": memory_id, "node": node.to_dict()}
        )
        return result.get("path") or node.path

    async def get_node(self, memory_id: str, path: str) -> MemoryNode:
        result = await self.call_object("memory.Get", {"memoryId": memory_id, "path": path})
        if not result:
            raise NotFoundError(
                f"Node '{path}' not found in memory '{memory_id}'",
                {"memoryId": memory_id, "path": path},
            )
        return MemoryNode.from_dict(result)

    async def update_node(
        self, memory_id: str, path: str, updates: dict[str, Any]
    ) -> UpdateResult:
        result = await self.call_object(
            "memory.Update", {"memoryId": memory_id, "path": path, "updates": updates}
        )
        return UpdateResult(
            path=result.get("path", path),
            updated_at=parse_timestamp(result.get("updatedAt")) or utcnow(),
        )

    async def delete_node(
        self, memory_id: str, path: str, recursive: bool = False
    ) -> DeleteResult:
        result = await self.call_object(
            "memory.Delete", {"memoryId": memory_id, "path": path, "recursive": recursive}
        )
        return DeleteResult(deleted_count=int(result.get("deletedCount", 0)))

    async def list_nodes(
        self,
        memory_id: str,
        node_filter: NodeFilter | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> NodeListing:
        params: dict[str, Any] = {
            "memoryId": memory_id,
            "pagination": {"offset": offset, "limit": limit},
        }
        if node_filter is not None and node_filter.to_dict():
            params["filter"] = node_filter.to_dict()
        result = await self.call_object("memory.List", params)
        return NodeListing(
            total=int(result.get("total", 0)),
            nodes=[NodeSummary.from_dict(n) for n in result.get("nodes", [])],
        )

    async def get_init_nodes(
        self, memory_id: str, path_prefix: str | None = None
    ) -> list[NodeSummary]:
        params: dict[str, Any] = {"memoryId": memory_id}
        if path_prefix:
            params["filter"] = {"path": path_prefix}
        result = await self.call_object("memory.GetInitNodes", params)
        return [NodeSummary.from_dict(n) for n in result.get("nodes", [])]

    async def apply_template(
        self, memory_id: str, template: list[TemplateNode]
    ) -> ApplyTemplateResult:
        validate_template(template)
        result = await self.call_object(
            "memManager.ApplyTemplate",
            {"memoryId": memory_id, "template": [entry.to_dict() for entry in template]},
        )
        return ApplyTemplateResult(
            memory_id=result.get("memoryId", memory_id),
            success=bool(result.get("success", True)),
            created_nodes=[
                CreatedNode(path=c["path"], need_init=bool(c.get("needInit")))
                for c in result.get("createdNodes", [])
            ],
        )

    async def batch_get(self, requests: list[BatchRequest]) -> list[BatchItem]:
        items = [BatchItem(memory_id=r.memory_id or "", path=r.path) for r in requests]
        try:
            result = await self.call(
                "memory.Batch",
                {"requests": [{"memoryId": i.memory_id, "path": i.path} for i in items]},
            ) or []
            if not isinstance(result, list):
                raise UpstreamError("Invalid JSON-RPC response", {"method": "memory.Batch"})
        except MMPError as e:
            for item in items:
                item.error = e
            return items

        # The service omits failed items and returns nodes without their
        # collection id, so results are matched back by path in request order.
        returned: dict[str, list[MemoryNode]] = {}
        for data in result:
            if not isinstance(data, dict):
                logger.warning(f"Skipping malformed batch entry: {data!r}")
                continue
            try:
                node = MemoryNode.from_dict(data)
            except MMPError as e:
                logger.warning(f"Skipping malformed batch entry for '{data.get('path')}': {e}")
                continue
            returned.setdefault(node.path, []).append(node)

        for item in items:
            candidates = returned.get(item.path)
            if candidates:
                item.node = candidates.pop(0)
            else:
                item.error = NotFoundError(
                    f"Node '{item.path}' not returned by batch read",
                    {"memoryId": item.memory_id, "path": item.path},
                )
        return items
