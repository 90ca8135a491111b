"""Tests for perch.data.store — deep-reconciling storage."""

from collections import Counter
from types import MappingProxyType
from typing import NamedTuple

import pytest

from perch.data.store import DeepReconcilingCell, ReconcileOptions, clone
from perch.reactive.scheduler import batch


class PathCounter:
    """Per-path change counter."""

    def __init__(self) -> None:
        self.counts: Counter[tuple] = Counter()

    def __call__(self, path: tuple) -> None:
        self.counts[path] += 1

    def watch(self, cell: DeepReconcilingCell, *paths: tuple, deep: bool = False) -> "PathCounter":
        for path in paths:
            cell.subscribe(path, self, deep=deep)
        return self


class Point(NamedTuple):
    x: int
    y: int


PAYLOAD = {
    "user": {"name": "ada", "posts": 3},
    "settings": {"theme": "dark"},
    "tags": ["a", "b"],
}


class TestReadWrite:
    def test_read_initial(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        assert cell.read() == {"a": 1}

    def test_initial_value_is_copied(self) -> None:
        source = {"a": [1]}
        cell = DeepReconcilingCell(source)
        source["a"].append(2)
        assert cell.read() == {"a": [1]}

    def test_write_returns_stored_value(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        assert cell.write({"a": 2}) == {"a": 2}
        assert cell.read() == {"a": 2}

    def test_updater_receives_plain_copy(self) -> None:
        cell = DeepReconcilingCell({"count": 1})
        seen = []

        def bump(previous):
            seen.append(previous)
            return {"count": previous["count"] + 1}

        cell.write(bump)
        assert seen == [{"count": 1}]
        assert seen[0] is not cell.read()
        assert cell.read() == {"count": 2}

    def test_scalar_value(self) -> None:
        cell = DeepReconcilingCell(1)
        assert cell.write(2) == 2

    def test_none_initial(self) -> None:
        cell = DeepReconcilingCell()
        assert cell.read() is None
        assert cell.write({"a": 1}) == {"a": 1}


class TestStructuralEquality:
    def test_equal_write_keeps_references(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        user = cell.read()["user"]
        tags = cell.read()["tags"]
        cell.write(clone(PAYLOAD))
        assert cell.read()["user"] is user
        assert cell.read()["tags"] is tags

    def test_equal_write_notifies_nobody(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        counter = PathCounter().watch(cell, (), ("user",), ("user", "name"), ("tags",))
        counter.watch(cell, (), deep=True)
        cell.write(clone(PAYLOAD))
        assert counter.counts == Counter()

    def test_leaf_change_notifies_only_that_leaf(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        counter = PathCounter().watch(
            cell, (), ("user",), ("user", "name"), ("user", "posts"), ("settings", "theme")
        )
        cell.write({**clone(PAYLOAD), "user": {"name": "ada", "posts": 4}})
        assert counter.counts == Counter({("user", "posts"): 1})

    def test_leaf_change_keeps_parent_reference(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        user = cell.read()["user"]
        cell.write({**clone(PAYLOAD), "user": {"name": "grace", "posts": 3}})
        assert cell.read()["user"] is user
        assert user["name"] == "grace"

    def test_deep_subscriber_sees_descendant_change(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        counter = PathCounter().watch(cell, ("user",), ("settings",), deep=True)
        cell.write({**clone(PAYLOAD), "user": {"name": "grace", "posts": 3}})
        assert counter.counts == Counter({("user",): 1})

    def test_deep_subscriber_fires_once_per_write(self) -> None:
        cell = DeepReconcilingCell(PAYLOAD)
        counter = PathCounter().watch(cell, (), deep=True)
        cell.write({"user": {"name": "x", "posts": 0}, "settings": {"theme": "light"}, "tags": []})
        assert counter.counts == Counter({(): 1})


class TestShapeChanges:
    def test_added_key_notifies_container_and_key(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        counter = PathCounter().watch(cell, (), ("a",), ("b",))
        cell.write({"a": 1, "b": 2})
        assert counter.counts == Counter({(): 1, ("b",): 1})

    def test_removed_key(self) -> None:
        cell = DeepReconcilingCell({"a": 1, "b": 2})
        counter = PathCounter().watch(cell, (), ("a",), ("b",))
        cell.write({"a": 1})
        assert cell.read() == {"a": 1}
        assert counter.counts == Counter({(): 1, ("b",): 1})

    def test_replaced_container_notifies_descendants(self) -> None:
        cell = DeepReconcilingCell({"user": {"name": "ada"}})
        counter = PathCounter().watch(cell, ("user", "name"))
        cell.write({"user": "anonymous"})
        assert cell.read() == {"user": "anonymous"}
        assert counter.counts == Counter({("user", "name"): 1})

    def test_list_growth(self) -> None:
        cell = DeepReconcilingCell({"tags": ["a"]})
        counter = PathCounter().watch(cell, ("tags",), ("tags", 0), ("tags", 1))
        cell.write({"tags": ["a", "b"]})
        assert cell.read() == {"tags": ["a", "b"]}
        assert counter.counts == Counter({("tags",): 1, ("tags", 1): 1})

    def test_list_shrink(self) -> None:
        cell = DeepReconcilingCell(["a", "b", "c"])
        counter = PathCounter().watch(cell, (), (0,), (2,))
        cell.write(["a"])
        assert cell.read() == ["a"]
        assert counter.counts == Counter({(): 1, (2,): 1})

    def test_positional_item_change(self) -> None:
        cell = DeepReconcilingCell(["a", "b"])
        counter = PathCounter().watch(cell, (), (0,), (1,))
        cell.write(["a", "c"])
        assert counter.counts == Counter({(1,): 1})


class TestKeyedLists:
    def test_reorder_keeps_record_identity(self) -> None:
        cell = DeepReconcilingCell([{"id": 1, "title": "a"}, {"id": 2, "title": "b"}])
        first, second = cell.read()
        cell.write([{"id": 2, "title": "b"}, {"id": 1, "title": "a"}])
        assert cell.read()[0] is second
        assert cell.read()[1] is first

    def test_reorder_notifies_moved_indices(self) -> None:
        cell = DeepReconcilingCell([{"id": 1, "title": "a"}, {"id": 2, "title": "b"}])
        counter = PathCounter().watch(cell, (), (0,), (1,), (1, "title"))
        cell.write([{"id": 2, "title": "b"}, {"id": 1, "title": "a"}])
        assert counter.counts == Counter({(0,): 1, (1,): 1, (1, "title"): 1})

    def test_insert_at_front_keeps_existing_records(self) -> None:
        cell = DeepReconcilingCell([{"id": 1}, {"id": 2}])
        first, second = cell.read()
        cell.write([{"id": 0}, {"id": 1}, {"id": 2}])
        assert cell.read()[1] is first
        assert cell.read()[2] is second

    def test_keyed_field_edit(self) -> None:
        cell = DeepReconcilingCell([{"id": 1, "done": False}])
        item = cell.read()[0]
        counter = PathCounter().watch(cell, (0,), (0, "done"))
        cell.write([{"id": 1, "done": True}])
        assert cell.read()[0] is item
        assert counter.counts == Counter({(0, "done"): 1})

    def test_changed_identity_replaces_record(self) -> None:
        cell = DeepReconcilingCell({"user": {"id": 1, "name": "ada"}})
        before = cell.read()["user"]
        counter = PathCounter().watch(cell, ("user",))
        cell.write({"user": {"id": 2, "name": "ada"}})
        assert cell.read()["user"] is not before
        assert counter.counts == Counter({("user",): 1})

    def test_merge_patches_in_place(self) -> None:
        cell = DeepReconcilingCell({"user": {"id": 1, "name": "ada"}}, options=ReconcileOptions(merge=True))
        before = cell.read()["user"]
        counter = PathCounter().watch(cell, ("user",), ("user", "id"))
        cell.write({"user": {"id": 2, "name": "ada"}})
        assert cell.read()["user"] is before
        assert counter.counts == Counter({("user", "id"): 1})

    def test_key_none_is_positional(self) -> None:
        cell = DeepReconcilingCell(
            [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}],
            options=ReconcileOptions(key=None),
        )
        first = cell.read()[0]
        cell.write([{"id": 2, "title": "b"}, {"id": 1, "title": "a"}])
        assert cell.read()[0] is first
        assert cell.read() == [{"id": 2, "title": "b"}, {"id": 1, "title": "a"}]

    def test_custom_key(self) -> None:
        cell = DeepReconcilingCell(
            [{"slug": "x", "n": 1}, {"slug": "y", "n": 2}],
            options=ReconcileOptions(key="slug"),
        )
        x = cell.read()[0]
        cell.write([{"slug": "y", "n": 2}, {"slug": "x", "n": 1}])
        assert cell.read()[1] is x


class TestLeaves:
    def test_tuple_keeps_its_type(self) -> None:
        cell = DeepReconcilingCell()
        cell.write({"coords": (1, 2)})
        assert cell.read() == {"coords": (1, 2)}
        assert type(cell.read()["coords"]) is tuple

    def test_named_tuple_root_is_stored_as_given(self) -> None:
        cell = DeepReconcilingCell()
        point = Point(1, 2)
        assert cell.write(point) is point
        assert cell.read().x == 1

    def test_equal_leaf_is_not_replaced(self) -> None:
        cell = DeepReconcilingCell({"coords": (1, 2)})
        stored = cell.read()["coords"]
        counter = PathCounter().watch(cell, ("coords",))
        cell.write({"coords": (1, 2)})
        assert cell.read()["coords"] is stored
        assert counter.counts == Counter()

    def test_unequal_leaf_is_replaced_whole(self) -> None:
        cell = DeepReconcilingCell({"coords": (1, 2)})
        counter = PathCounter().watch(cell, ("coords",), ("coords", 0))
        cell.write({"coords": (1, 3)})
        assert cell.read()["coords"] == (1, 3)
        assert counter.counts == Counter({("coords",): 1, ("coords", 0): 1})

    def test_tuple_to_named_tuple_is_a_replacement(self) -> None:
        cell = DeepReconcilingCell({"at": (1, 2)})
        counter = PathCounter().watch(cell, ("at",))
        cell.write({"at": Point(1, 2)})
        assert type(cell.read()["at"]) is Point
        assert counter.counts == Counter({("at",): 1})

    def test_other_mappings_are_leaves(self) -> None:
        env = MappingProxyType({"region": "eu"})
        cell = DeepReconcilingCell()
        cell.write({"env": env})
        assert cell.read()["env"] is env

    def test_list_to_tuple_is_a_replacement(self) -> None:
        cell = DeepReconcilingCell({"tags": ["a", "b"]})
        counter = PathCounter().watch(cell, ("tags",))
        cell.write({"tags": ("a", "b")})
        assert cell.read()["tags"] == ("a", "b")
        assert counter.counts == Counter({("tags",): 1})


class TestRootIdentity:
    def test_root_id_change_patches_fields(self) -> None:
        cell = DeepReconcilingCell({"id": 1, "name": "ada", "posts": 3})
        root = cell.read()
        counter = PathCounter().watch(cell, ("id",), ("name",), ("posts",))
        cell.write({"id": 2, "name": "ada", "posts": 3})
        assert cell.read() is root
        assert counter.counts == Counter({("id",): 1})

    def test_nested_id_change_still_replaces(self) -> None:
        cell = DeepReconcilingCell({"user": {"id": 1, "name": "ada"}})
        counter = PathCounter().watch(cell, ("user", "name"))
        cell.write({"user": {"id": 2, "name": "ada"}})
        assert counter.counts == Counter({("user", "name"): 1})


class TestSubscriptions:
    def test_unsubscribe(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        counter = PathCounter()
        unsubscribe = cell.subscribe(("a",), counter)
        unsubscribe()
        unsubscribe()
        cell.write({"a": 2})
        assert counter.counts == Counter()

    def test_batch_coalesces(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        counter = PathCounter().watch(cell, ("a",))
        with batch():
            cell.write({"a": 2})
            cell.write({"a": 3})
            assert counter.counts == Counter()
        assert counter.counts == Counter({("a",): 1})
        assert cell.read() == {"a": 3}

    def test_clear_drops_value_and_subscribers(self) -> None:
        cell = DeepReconcilingCell({"a": 1})
        counter = PathCounter().watch(cell, ("a",))
        cell.clear()
        assert cell.read() is None
        cell.write({"a": 2})
        assert counter.counts == Counter()


class TestFactory:
    def test_factory_builds_cells_with_options(self) -> None:
        make = DeepReconcilingCell.factory(ReconcileOptions(key="slug"))
        cell = make({"a": 1})
        assert isinstance(cell, DeepReconcilingCell)
        assert cell.read() == {"a": 1}


@pytest.mark.parametrize(
    ("old", "new"),
    [
        ({"a": 1}, {"a": "1"}),
        ({"a": True}, {"a": 1}),
        ({"a": None}, {"a": 0}),
    ],
)
def test_kind_change_is_a_replacement(old: dict, new: dict) -> None:
    cell = DeepReconcilingCell(old)
    counter = PathCounter().watch(cell, ("a",))
    cell.write(new)
    assert cell.read() == new
    assert counter.counts == Counter({("a",): 1})
