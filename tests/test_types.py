"""Tests for memory data model."""

from datetime import datetime, timezone

import pytest

from mmp.core.errors import ValidationError
from mmp.memory.base import (
    ContentType,
    DeleteResult,
    MemoryCollection,
    MemoryNode,
    NodeFilter,
    TemplateNode,
)
from mmp.memory.ids import new_collection_id


def test_collection_id_format():
    """Collection ids carry the mm- prefix and a uuid."""
    memory_id = new_collection_id()
    assert memory_id.startswith("mm-")
    assert len(memory_id) == len("mm-") + 36


def test_collection_ids_unique():
    """Generated ids do not repeat."""
    ids = {new_collection_id() for _ in range(100)}
    assert len(ids) == 100


def test_node_to_dict_omits_unset_fields():
    """Wire form uses camelCase and drops None values."""
    node = MemoryNode(path="a/b", name="B", type=ContentType.MARKDOWN, need_init=False)
    assert node.to_dict() == {
        "path": "a/b",
        "name": "B",
        "type": "markdown",
        "needInit": False,
    }


def test_node_from_dict():
    """Node parses wire form including timestamps."""
    node = MemoryNode.from_dict(
        {
            "path": "notes",
            "name": "Notes",
            "type": "json",
            "content": "{}",
            "needInit": True,
            "createdAt": "2025-01-01T00:00:00Z",
        }
    )
    assert node.type == ContentType.JSON
    assert node.need_init is True
    assert node.created_at == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert node.updated_at is None


def test_node_unknown_type_rejected():
    """Content type outside the enum is a validation error."""
    with pytest.raises(ValidationError):
        MemoryNode.from_dict({"path": "x", "name": "X", "type": "yaml"})


def test_node_missing_path_rejected():
    """Nodes require a path."""
    with pytest.raises(ValidationError):
        MemoryNode.from_dict({"name": "X", "type": "plaintext"})


def test_template_node_requires_need_init():
    """Template entries must state needInit."""
    with pytest.raises(ValidationError):
        TemplateNode.from_dict({"path": "x", "name": "X", "type": "plaintext"})

    entry = TemplateNode.from_dict(
        {"path": "x", "name": "X", "type": "plaintext", "needInit": False}
    )
    assert entry.need_init is False
    assert entry.to_dict()["needInit"] is False


def test_collection_round_trip():
    """Collection descriptor survives serialization."""
    collection = MemoryCollection(
        id="mm-1",
        name="Project",
        description="Project memory",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        metadata={"owner": "agent"},
    )
    restored = MemoryCollection.from_dict(collection.to_dict())
    assert restored == collection


def test_delete_result_success():
    """Delete succeeds only when something was removed."""
    assert DeleteResult(deleted_count=2).success
    assert not DeleteResult(deleted_count=0).success
    assert DeleteResult(deleted_count=1).to_dict() == {"success": True, "deletedCount": 1}


def test_filter_to_dict_skips_empty():
    """Unset filter fields are not sent."""
    assert NodeFilter().to_dict() == {}
    assert NodeFilter(path="a", need_init=False).to_dict() == {"path": "a", "needInit": False}


def test_error_to_dict():
    """Errors expose a discriminated kind."""
    from mmp.core.errors import ConflictError, UpstreamError

    assert ConflictError("dup", {"path": "a"}).to_dict() == {
        "kind": "conflict",
        "message": "dup",
        "context": {"path": "a"},
    }
    err = UpstreamError("HTTP error: 502", status_code=502)
    assert err.kind == "upstream"
    assert err.status_code == 502
