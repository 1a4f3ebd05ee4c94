"""Tests for the MCP tool adapter."""

import pytest
from fastmcp.exceptions import ToolError
from pydantic import ValidationError as PydanticValidationError

from mmp import server
from mmp.core.errors import ConflictError
from mmp.memory.local import LocalBackend
from mmp.server import (
    BatchRequestInput,
    ListFilterInput,
    PaginationInput,
    PathFilterInput,
    NodeInput,
    NodeUpdates,
    TemplateNodeInput,
    translate_errors,
    usage_guide,
)
from mmp.service import MemoryService


@pytest.fixture
def service(backend: LocalBackend, monkeypatch) -> MemoryService:
    """Install a service backed by the temporary local store."""
    svc = MemoryService(backend)
    monkeypatch.setattr(server, "_service", svc)
    return svc


def test_get_service_before_start(monkeypatch):
    """Tools fail clearly when the lifespan has not run."""
    monkeypatch.setattr(server, "_service", None)
    with pytest.raises(RuntimeError):
        server.get_service()


def test_translate_errors():
    """MMPError becomes a ToolError carrying the kind."""
    with pytest.raises(ToolError) as exc:
        with translate_errors():
            raise ConflictError("duplicate")
    assert str(exc.value) == "conflict: duplicate"


def test_node_input_accepts_camel_case():
    """Inputs validate the wire field names."""
    node = NodeInput.model_validate(
        {"name": "A", "path": "a", "type": "json", "content": "{}", "needInit": True}
    ).to_node()
    assert node.need_init is True
    assert node.type.value == "json"


def test_template_input_requires_need_init():
    """Template entries must state needInit."""
    with pytest.raises(PydanticValidationError):
        TemplateNodeInput.model_validate({"name": "A", "path": "a", "type": "json"})


def test_node_updates_only_sets_given_fields():
    """Unset update fields are not forwarded."""
    updates = NodeUpdates.model_validate({"content": "x", "needInit": False}).to_updates()
    assert updates == {"content": "x", "needInit": False}


def test_usage_guide_mentions_configuration():
    """Usage guide lists tools and the active configuration."""
    guide = usage_guide("mm-d", "http://rpc.test/rpc")
    assert "`mm-d`" in guide
    assert "http://rpc.test/rpc" in guide
    assert "memory-batch-get" in guide
    assert "Default Memory ID" not in usage_guide()


@pytest.mark.asyncio
async def test_tool_flow(service: MemoryService, memory_id: str):
    """Tools create, read, list, update and delete nodes."""
    added = await server.add_node.fn(
        NodeInput(name="Goals", path="goals", type="markdown", content="- v1"),
        memoryId=memory_id,
    )
    assert added == {"path": "goals"}

    text = await server.get_node.fn("goals", memoryId=memory_id)
    assert "Path: goals" in text

    listing = await server.list_nodes.fn(memoryId=memory_id, filter=ListFilterInput(path="go"))
    assert listing["total"] == 1

    updated = await server.update_node.fn(
        "goals", NodeUpdates(content="- v2"), memoryId=memory_id
    )
    assert updated["path"] == "goals"

    batch = await server.batch_get_nodes.fn(
        [
            BatchRequestInput(memory_id=memory_id, path="goals"),
            BatchRequestInput(memory_id=memory_id, path="missing"),
        ]
    )
    assert [n["content"] for n in batch] == ["- v2"]

    deleted = await server.delete_node.fn("goals", memoryId=memory_id)
    assert deleted == {"success": True, "deletedCount": 1}


@pytest.mark.asyncio
async def test_tool_errors_become_tool_errors(service: MemoryService, memory_id: str):
    """Core errors surface as ToolError."""
    with pytest.raises(ToolError, match="not_found"):
        await server.get_node.fn("missing", memoryId=memory_id)


@pytest.mark.asyncio
async def test_create_and_template_tools(service: MemoryService):
    """Collection creation and template application through the tools."""
    created = await server.create_memory.fn("Project", "desc")
    assert set(created) == {"id", "name", "description", "createdAt"}

    result = await server.apply_template.fn(
        [TemplateNodeInput(name="A", path="a", type="plaintext", needInit=True, content="x")],
        memoryId=created["id"],
    )
    assert result["createdNodes"] == [{"path": "a", "needInit": True}]

    init_nodes = await server.get_init_nodes.fn(memoryId=created["id"])
    assert [n["path"] for n in init_nodes["nodes"]] == ["a"]


def test_tools_registered_by_name():
    """Every tool is registered under its protocol name."""
    assert server.get_node.name == "memory-get"
    assert server.apply_template.name == "memcollection-apply-template"
    assert server.how_to_use.name == "how-to-use-mmp"


def test_tool_arguments_use_camel_case():
    """Top-level tool arguments follow the camelCase wire names."""
    assert set(server.get_node.parameters["properties"]) == {"path", "memoryId", "outputFormat"}
    assert "memoryId" in server.list_nodes.parameters["properties"]


def test_list_inputs_accept_wire_names():
    """Filter and pagination inputs validate the wire field names."""
    node_filter = ListFilterInput.model_validate(
        {"path": "docs", "type": "markdown", "needInit": False}
    ).to_filter()
    assert node_filter.path == "docs"
    assert node_filter.type.value == "markdown"
    assert node_filter.need_init is False
    assert PaginationInput().limit == 50
    with pytest.raises(PydanticValidationError):
        PaginationInput(offset=-1)


@pytest.mark.asyncio
async def test_list_and_init_tools_take_filters(service: MemoryService, memory_id: str):
    """Filters and pagination reach the service."""
    for path in ("docs/a", "docs/b", "other"):
        await server.add_node.fn(
            NodeInput(name=path, path=path, type="plaintext", content="x", needInit=True),
            memoryId=memory_id,
        )

    listing = await server.list_nodes.fn(
        memoryId=memory_id,
        filter=ListFilterInput(path="docs"),
        pagination=PaginationInput(offset=1, limit=1),
    )
    assert listing["total"] == 2
    assert [n["path"] for n in listing["nodes"]] == ["docs/b"]

    init_nodes = await server.get_init_nodes.fn(
        memoryId=memory_id, filter=PathFilterInput(path="docs")
    )
    assert [n["path"] for n in init_nodes["nodes"]] == ["docs/a", "docs/b"]


@pytest.mark.asyncio
async def test_get_tool_output_format(service: MemoryService, memory_id: str):
    """outputFormat selects the rendering."""
    await server.add_node.fn(
        NodeInput(name="A", path="a", type="plaintext", content="x"), memoryId=memory_id
    )
    rendered = await server.get_node.fn("a", memoryId=memory_id, outputFormat="json")
    assert '"path": "a"' in rendered
