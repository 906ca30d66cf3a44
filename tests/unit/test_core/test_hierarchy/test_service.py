"""Integration tests for MaterializedPathTree on in-memory SQLite."""

from __future__ import annotations

from typing import ClassVar

import pytest
from sqlalchemy import Integer, String, select
from sqlalchemy.orm import Mapped, mapped_column

from pathtree.core.database import (
    Base,
    ConfigurationError,
    IntegerPKMixin,
    MaterializedPathMixin,
    MaterializedPathTree,
    TreeNode,
    TreeOptions,
    TreeReferenceError,
)
from pathtree.core.database.exceptions import StoreError
from pathtree.core.settings import TreeSettings
from pathtree.features.categories import Category
from pathtree.infra.logging import clear_log_context, get_log_context, set_log_context

# ============================================================================
# Test Models
# ============================================================================


class Folder(Base, IntegerPKMixin, MaterializedPathMixin):
    """Tree model with database-assigned integer ids."""

    __tablename__ = "test_folders"
    __parent_type__: ClassVar = Integer()

    name: Mapped[str] = mapped_column(String(255))


class Page(Base, MaterializedPathMixin):
    """Tree model using "/" as path separator."""

    __tablename__ = "test_pages"
    __path_separator__: ClassVar[str] = "/"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)


async def add(tree, id_, parent=None):
    return await tree.save(Category(id=id_, name=id_.upper(), parent=parent))


async def build_abc(tree):
    """Root A (A), child B (A#B), grandchild C (A#B#C)."""
    a = await add(tree, "A")
    b = await add(tree, "B", "A")
    c = await add(tree, "C", b)
    return a, b, c


async def all_ids(session):
    result = await session.execute(select(Category.id).order_by(Category.id))
    return list(result.scalars())


# ============================================================================
# save
# ============================================================================


@pytest.mark.unit
class TestSave:
    """Test suite for MaterializedPathTree.save."""

    async def test_paths_assigned_on_create(self, tree):
        a, b, c = await build_abc(tree)

        assert (a.path, b.path, c.path) == ("A", "A#B", "A#B#C")
        assert c.parent == "B"
        assert tree.level(c) == 3
        assert c.level == 3

    async def test_reparent_scenario(self, tree, db_session):
        """Moving B under D rewrites B and C."""
        _, b, c = await build_abc(tree)
        await add(tree, "D")

        b.parent = "D"
        await tree.save(b)
        await db_session.refresh(c)

        assert b.path == "D#B"
        assert c.path == "D#B#C"
        assert c.parent == "B"

    async def test_move_to_root(self, tree, db_session):
        _, b, c = await build_abc(tree)

        b.parent = None
        await tree.save(b)
        await db_session.refresh(c)

        assert b.path == "B"
        assert c.path == "B#C"

    async def test_save_without_parent_change_does_not_cascade(self, tree, db_session):
        _, b, c = await build_abc(tree)

        b.name = "Renamed"
        await tree.save(b)
        await db_session.refresh(b)
        await db_session.refresh(c)

        assert b.name == "Renamed"
        assert b.path == "A#B"
        assert c.path == "A#B#C"

    async def test_missing_parent_not_persisted(self, tree, db_session):
        with pytest.raises(TreeReferenceError) as exc_info:
            await add(tree, "Z", "nope")

        assert exc_info.value.model_name == "Category"
        assert await all_ids(db_session) == []

    async def test_pending_node_with_missing_parent_is_discarded(self, tree, db_session):
        orphan = Category(id="Z", name="Z", parent="nope")
        db_session.add(orphan)

        with pytest.raises(TreeReferenceError):
            await tree.save(orphan)

        assert orphan not in db_session
        assert await all_ids(db_session) == []

    async def test_move_to_missing_parent_keeps_stored_parent(self, tree, db_session):
        a, b, _ = await build_abc(tree)

        b.parent = "MISSING"
        with pytest.raises(TreeReferenceError):
            await tree.save(b)

        assert b.parent == "A"
        # a later query autoflushes the session
        assert [n.id for n in await tree.get_children(a)] == ["B"]
        result = await db_session.execute(select(Category.parent, Category.path).where(Category.id == "B"))
        assert result.one() == ("A", "A#B")

    async def test_unflushed_parent_instance_rejected(self, db_session):
        folders = MaterializedPathTree(db_session, Folder, TreeSettings())
        draft = Folder(name="draft")

        with pytest.raises(TreeReferenceError):
            await folders.save(Folder(name="child", parent=draft))

        result = await db_session.execute(select(Folder))
        assert result.scalars().all() == []

    async def test_integer_ids_assigned_by_store(self, db_session):
        folders = MaterializedPathTree(db_session, Folder, TreeSettings())

        root = await folders.save(Folder(name="root"))
        child = await folders.save(Folder(name="child", parent=root))
        grandchild = await folders.save(Folder(name="grandchild", parent=child.id))

        assert root.path == str(root.id)
        assert child.path == f"{root.id}#{child.id}"
        assert grandchild.path == f"{root.id}#{child.id}#{grandchild.id}"
        assert [f.id for f in await folders.get_ancestors(grandchild)] == [root.id, child.id]

    async def test_integer_model_missing_parent(self, db_session):
        folders = MaterializedPathTree(db_session, Folder, TreeSettings())

        with pytest.raises(TreeReferenceError):
            await folders.save(Folder(name="orphan", parent=999))

        result = await db_session.execute(select(Folder))
        assert result.scalars().all() == []

    async def test_custom_separator(self, db_session):
        pages = MaterializedPathTree(db_session, Page, TreeSettings(path_separator="/"))

        await pages.save(Page(id="docs"))
        guide = await pages.save(Page(id="guide", parent="docs"))

        assert guide.path == "docs/guide"
        assert pages.level(guide) == 2

    async def test_separator_mismatch_rejected(self, db_session):
        with pytest.raises(ConfigurationError) as exc_info:
            MaterializedPathTree(db_session, Page, TreeSettings())

        assert exc_info.value.details == {"setting": "path_separator"}

    async def test_default_settings_loaded(self, db_session, monkeypatch):
        monkeypatch.setenv("TREE_NUM_WORKERS", "7")

        categories = MaterializedPathTree(db_session, Category)

        assert categories.settings.num_workers == 7


# ============================================================================
# delete
# ============================================================================


@pytest.mark.unit
class TestDelete:
    """Test suite for MaterializedPathTree.delete."""

    async def test_delete_removes_subtree(self, tree, db_session):
        """DELETE policy removes B and C, leaves A alone."""
        _, b, _ = await build_abc(tree)

        await tree.delete(b)

        assert await all_ids(db_session) == ["A"]

    async def test_delete_leaves_unrelated_rows(self, tree, db_session):
        _, b, _ = await build_abc(tree)
        await add(tree, "BB", "A")
        await add(tree, "Q", "BB")
        await add(tree, "X")

        await tree.delete(b)

        assert await all_ids(db_session) == ["A", "BB", "Q", "X"]

    async def test_reparent_scenario(self, reparenting_tree, db_session):
        """REPARENT policy moves C to A#C with parent A."""
        _, b, c = await build_abc(reparenting_tree)

        await reparenting_tree.delete(b)
        await db_session.refresh(c)

        assert c.parent == "A"
        assert c.path == "A#C"
        assert await all_ids(db_session) == ["A", "C"]

    async def test_reparent_keeps_every_descendant_reachable(self, reparenting_tree, db_session):
        a, b, _ = await build_abc(reparenting_tree)
        await add(reparenting_tree, "E", "C")
        await add(reparenting_tree, "F", "B")

        await reparenting_tree.delete(b)

        descendants = await reparenting_tree.get_children(a, recursive=True)
        assert {d.id: d.path for d in descendants} == {"C": "A#C", "E": "A#C#E", "F": "A#F"}
        assert all("B" not in d.path.split("#") for d in descendants)

    async def test_reparent_root_promotes_children_to_roots(self, reparenting_tree, db_session):
        a, b, c = await build_abc(reparenting_tree)

        await reparenting_tree.delete(a)
        await db_session.refresh(b)
        await db_session.refresh(c)

        assert b.parent is None
        assert (b.path, c.path) == ("B", "B#C")


# ============================================================================
# Queries
# ============================================================================


@pytest.mark.unit
class TestQueries:
    """Test suite for the read-side operations."""

    async def test_get_children(self, tree):
        a, b, c = await build_abc(tree)
        await add(tree, "E", "A")

        direct = await tree.get_children(a)
        everything = await tree.get_children(a, recursive=True)

        assert [n.id for n in direct] == ["B", "E"]
        assert [n.id for n in everything] == ["B", "C", "E"]

    async def test_get_children_filters_and_order(self, tree):
        a, _, _ = await build_abc(tree)
        await add(tree, "E", "A")

        filtered = await tree.get_children(a, filters=[Category.id != "B"])
        ordered = await tree.get_children(a, order_by=Category.id.desc())

        assert [n.id for n in filtered] == ["E"]
        assert [n.id for n in ordered] == ["E", "B"]

    async def test_get_parent(self, tree):
        a, b, _ = await build_abc(tree)

        assert await tree.get_parent(b) is a
        assert await tree.get_parent(a) is None

    async def test_get_ancestors_root_first(self, tree):
        a, b, c = await build_abc(tree)

        assert await tree.get_ancestors(c) == [a, b]
        assert await tree.get_ancestors(a) == []
        assert await tree.get_ancestors(c, filters=[Category.id != "A"]) == [b]

    async def test_path_prefix_and_level_invariants(self, tree):
        """Every path extends each ancestor's path; level = ancestors + 1."""
        nodes = [await add(tree, "n0")]
        for i in range(1, 10):
            nodes.append(await add(tree, f"n{i}", f"n{i - 1}"))

        for node in nodes:
            ancestors = await tree.get_ancestors(node)
            assert tree.level(node) == len(ancestors) + 1 == len(node.path.split("#"))
            for ancestor in ancestors:
                assert node.path.startswith(ancestor.path + "#")


# ============================================================================
# get_children_tree
# ============================================================================


@pytest.mark.unit
class TestChildrenTree:
    """Test suite for MaterializedPathTree.get_children_tree."""

    async def test_forest_scenario(self, tree):
        """[A, A#B, X] gives A with child B, and X with no children."""
        await add(tree, "A")
        await add(tree, "B", "A")
        await add(tree, "X")

        forest = await tree.get_children_tree()

        assert [entry["id"] for entry in forest] == ["A", "X"]
        assert [child["id"] for child in forest[0]["children"]] == ["B"]
        assert forest[1]["children"] == []
        assert forest[0]["name"] == "A"

    async def test_lean_fields_always_include_tree_columns(self, tree):
        await build_abc(tree)

        forest = await tree.get_children_tree(options=TreeOptions(fields=("name",)))

        assert set(forest[0]) == {"name", "id", "parent", "path", "children"}

    async def test_unknown_field_rejected(self, tree):
        with pytest.raises(ConfigurationError):
            await tree.get_children_tree(options=TreeOptions(fields=("nope",)))

    async def test_scoped_to_root(self, tree):
        a, _, _ = await build_abc(tree)
        await add(tree, "X")

        forest = await tree.get_children_tree(a)

        assert [entry["id"] for entry in forest] == ["B"]
        assert [child["id"] for child in forest[0]["children"]] == ["C"]

    async def test_non_recursive(self, tree):
        a, _, _ = await build_abc(tree)
        await add(tree, "X")

        below_a = await tree.get_children_tree(a, TreeOptions(recursive=False))
        roots = await tree.get_children_tree(options=TreeOptions(recursive=False))

        assert [entry["id"] for entry in below_a] == ["B"]
        assert below_a[0]["children"] == []
        assert [entry["id"] for entry in roots] == ["A", "X"]

    async def test_filtered_parent_drops_descendants(self, tree):
        await build_abc(tree)
        await add(tree, "E", "A")

        forest = await tree.get_children_tree(options=TreeOptions(filters=[Category.id != "B"]))

        assert [child["id"] for child in forest[0]["children"]] == ["E"]

    async def test_without_empty_children(self, tree):
        await add(tree, "A")
        await add(tree, "B", "A")

        forest = await tree.get_children_tree(options=TreeOptions(allow_empty_children=False))

        assert "children" not in forest[0]["children"][0]

    async def test_min_level(self, tree):
        await build_abc(tree)

        forest = await tree.get_children_tree(options=TreeOptions(min_level=2))

        assert [entry["id"] for entry in forest] == ["B"]

    async def test_non_lean_wraps_instances(self, tree):
        a, b, _ = await build_abc(tree)

        forest = await tree.get_children_tree(options=TreeOptions(lean=False))

        assert isinstance(forest[0], TreeNode)
        assert forest[0].record is a
        assert forest[0].children[0].record is b

    async def test_round_trip_matches_stored_parents(self, tree):
        """The reconstructed shape equals the relation stored in parent."""
        edges = [
            ("r1", None), ("r2", None), ("a", "r1"), ("b", "r1"), ("c", "a"),
            ("d", "c"), ("e", "r2"), ("f", "e"), ("g", "b"), ("h", "a"),
        ]
        for id_, parent in edges:
            await add(tree, id_, parent)

        forest = await tree.get_children_tree()

        def collect(entries, parent=None):
            pairs = []
            for entry in entries:
                pairs.append((entry["id"], parent))
                pairs.extend(collect(entry["children"], entry["id"]))
            return pairs

        assert sorted(collect(forest), key=str) == sorted(edges, key=str)


# ============================================================================
# Logging context
# ============================================================================


@pytest.mark.unit
class TestLogContext:
    """Tree operations tag their logs without leaking the tags afterwards."""

    @pytest.fixture(autouse=True)
    def _clean_context(self):
        clear_log_context()
        yield
        clear_log_context()

    async def test_save_restores_context(self, tree):
        _, b, _ = await build_abc(tree)
        await add(tree, "D")
        set_log_context(request_id="r1")

        b.parent = "D"
        await tree.save(b)

        assert get_log_context() == {"request_id": "r1"}

    async def test_delete_restores_context(self, reparenting_tree):
        _, b, _ = await build_abc(reparenting_tree)

        await reparenting_tree.delete(b)

        assert get_log_context() == {}

    async def test_failed_cascade_restores_context(self, tree, monkeypatch):
        _, b, _ = await build_abc(tree)
        await add(tree, "D")

        async def broken_update(*args):
            raise StoreError("disk full", operation="update_field")

        monkeypatch.setattr(tree.store, "update_field", broken_update)
        b.parent = "D"
        with pytest.raises(StoreError):
            await tree.save(b)

        assert get_log_context() == {}
