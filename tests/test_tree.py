"""Tests for hierarchy operations over path prefixes."""

import pytest

from mmp.core.errors import ConflictError, NotFoundError
from mmp.memory.base import ContentType, MemoryNode, NodeFilter
from mmp.memory.nodes import NodeStore
from mmp.memory.storage import SQLiteKVStore
from mmp.memory.tree import TreeOperations, is_descendant

MID = "mm-tree"


@pytest.fixture
async def tree(kv: SQLiteKVStore):
    """Tree operations over a small hierarchy.

    a, a/b, a/b/c, ab, a-archive, x (markdown, needInit)
    """
    nodes = NodeStore(kv)
    for path in ("a", "a/b", "a/b/c", "ab", "a-archive"):
        await nodes.put(MID, MemoryNode(path=path, name=path))
    await nodes.put(
        MID, MemoryNode(path="x", name="x", type=ContentType.MARKDOWN, need_init=True)
    )
    return TreeOperations(nodes)


def test_is_descendant():
    """Descendant test requires the separator."""
    assert is_descendant("a/b", "a")
    assert is_descendant("a/b/c", "a")
    assert not is_descendant("a", "a")
    assert not is_descendant("ab", "a")


@pytest.mark.asyncio
async def test_exists(tree: TreeOperations):
    """exists() checks the exact path."""
    assert await tree.exists(MID, "a/b")
    assert not await tree.exists(MID, "a/")


@pytest.mark.asyncio
async def test_child_paths_strict(tree: TreeOperations):
    """Children are strict descendants, not string-prefix siblings."""
    assert sorted(await tree.child_paths(MID, "a")) == ["a/b", "a/b/c"]
    assert await tree.child_paths(MID, "a/b/c") == []


@pytest.mark.asyncio
async def test_filter_prefix_includes_siblings(tree: TreeOperations):
    """Listing prefix is a plain string prefix: includes the node itself and ab, a-archive."""
    page = await tree.filtered_list(MID, NodeFilter(path="a"))
    assert [n.path for n in page.items] == ["a", "a-archive", "a/b", "a/b/c", "ab"]
    assert page.total == 5


@pytest.mark.asyncio
async def test_filter_type_and_need_init(tree: TreeOperations):
    """Type and needInit filters match exactly."""
    page = await tree.filtered_list(MID, NodeFilter(type=ContentType.MARKDOWN))
    assert [n.path for n in page.items] == ["x"]

    page = await tree.filtered_list(MID, NodeFilter(need_init=True))
    assert [n.path for n in page.items] == ["x"]

    # Nodes that never set needInit do not match an explicit false
    page = await tree.filtered_list(MID, NodeFilter(need_init=False))
    assert page.total == 0

    await tree.nodes.put(MID, MemoryNode(path="y", name="y", need_init=False))
    page = await tree.filtered_list(MID, NodeFilter(need_init=False))
    assert [n.path for n in page.items] == ["y"]


@pytest.mark.asyncio
async def test_pagination(kv: SQLiteKVStore):
    """Total counts the whole match set; items are the requested slice."""
    nodes = NodeStore(kv)
    for i in range(5):
        await nodes.put(MID, MemoryNode(path=f"n{i}", name=f"n{i}"))
    tree = TreeOperations(nodes)

    full = await tree.matching(MID)
    page = await tree.filtered_list(MID, offset=2, limit=2)

    assert page.total == 5
    assert [n.path for n in page.items] == [n.path for n in full[2:4]]


@pytest.mark.asyncio
async def test_pagination_clipped(tree: TreeOperations):
    """Out-of-range slices are clipped, not errors."""
    page = await tree.filtered_list(MID, offset=100, limit=10)
    assert page.total == 6
    assert page.items == []

    page = await tree.filtered_list(MID, offset=4, limit=50)
    assert len(page.items) == 2


@pytest.mark.asyncio
async def test_delete_missing(tree: TreeOperations):
    """Deleting an absent node is NotFound."""
    with pytest.raises(NotFoundError):
        await tree.delete_subtree(MID, "missing")


@pytest.mark.asyncio
async def test_delete_with_children_requires_recursive(tree: TreeOperations):
    """Non-recursive delete of a parent is a conflict and removes nothing."""
    with pytest.raises(ConflictError):
        await tree.delete_subtree(MID, "a", recursive=False)

    assert await tree.exists(MID, "a")
    assert await tree.exists(MID, "a/b")


@pytest.mark.asyncio
async def test_delete_recursive(tree: TreeOperations):
    """Recursive delete removes the subtree only."""
    result = await tree.delete_subtree(MID, "a", recursive=True)

    assert result.deleted_count == 3
    assert result.success
    for path in ("a", "a/b", "a/b/c"):
        assert not await tree.exists(MID, path)
    assert await tree.exists(MID, "ab")
    assert await tree.exists(MID, "a-archive")


@pytest.mark.asyncio
async def test_delete_leaf(tree: TreeOperations):
    """A leaf deletes without the recursive flag."""
    result = await tree.delete_subtree(MID, "a/b/c")
    assert result.deleted_count == 1
