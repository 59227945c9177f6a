"""Tests for KeyedCollection and EntityCollection."""

from dataclasses import dataclass

import pytest

from recordkit.core.collection import ChangeAction, KeyedCollection, discover_key_field
from recordkit.core.entity import Entity, EntityReference
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.enums import DataType
from recordkit.core.errors import SchemaError, ValidationError


@dataclass
class Tag:
    label: str
    weight: int = 0


class Untyped:
    def __init__(self, value):
        self.value = value


@pytest.fixture
def tags() -> KeyedCollection:
    return KeyedCollection([Tag("a", 1), Tag("b", 2), Tag("c", 3)])


class TestKeyDiscovery:
    """Test key attribute discovery."""

    def test_first_attribute_of_key_type(self):
        assert discover_key_field(Tag, str) == "label"
        assert discover_key_field(Tag, int) == "weight"

    def test_typed_property(self):
        class Named:
            def __init__(self, name):
                self._name = name

            @property
            def name(self) -> str:
                return self._name

        assert KeyedCollection([Named("x")]).get_by("x").name == "x"

    def test_missing_key_attribute(self):
        with pytest.raises(SchemaError):
            KeyedCollection([Untyped(1)])

    def test_explicit_key_field(self):
        items = KeyedCollection([Untyped(1), Untyped(2)], key_field="value")
        assert items.get_by(2).value == 2


class TestKeyedCollection:
    """Test lookup, uniqueness and deletion tracking."""

    def test_get_by(self, tags):
        assert tags.get_by("b").weight == 2
        assert tags.get_by("z") is None
        assert tags.contains_key("c")
        assert tags.keys() == ["a", "b", "c"]

    def test_int_key_type(self):
        items = KeyedCollection([Tag("a", 1), Tag("b", 2)], key_type=int)
        assert items.get_by(2).label == "b"

    def test_duplicate_rejected(self, tags):
        with pytest.raises(ValidationError, match="Duplicate key 'a'"):
            tags.append(Tag("a"))
        assert len(tags) == 3

    def test_duplicates_allowed_when_not_unique(self):
        items = KeyedCollection([Tag("a", 1), Tag("a", 2)], unique=False)
        assert items.get_by("a").weight == 1

    def test_empty_keys_not_indexed(self):
        items = KeyedCollection([Tag(""), Tag("")])
        assert len(items) == 2
        assert items.get_by("") is None

    def test_insert_keeps_index_consistent(self, tags):
        tags.insert(0, Tag("z"))
        assert tags.get_by("a") is tags[1]
        assert tags.get_by("z") is tags[0]
        tags.insert(-1, Tag("y"))
        assert tags.keys() == ["z", "a", "b", "y", "c"]
        assert tags.get_by("c") is tags[4]

    def test_key_drift_resyncs(self, tags):
        tags[0].label = "renamed"
        assert tags.get_by("renamed") is tags[0]
        assert tags.get_by("a") is None

    def test_remove_tracks_deleted(self, tags):
        removed = tags[0]
        del tags[0]
        assert tags.deleting == [removed]
        assert tags.get_by("b") is tags[0]
        tags.accept_deletions()
        assert tags.deleting == []

    def test_replace_tracks_old(self, tags):
        old = tags[1]
        tags[1] = Tag("q")
        assert tags.deleting == [old]
        assert tags.get_by("q") is tags[1]
        assert tags.get_by("b") is None

    def test_replace_with_duplicate_rejected(self, tags):
        with pytest.raises(ValidationError):
            tags[1] = Tag("a")

    def test_replace_with_equal_is_no_op(self, tags):
        tags[1] = Tag("b", 2)
        assert tags.deleting == []

    def test_clear_tracks_everything(self, tags):
        tags.clear()
        assert len(tags) == 0
        assert [t.label for t in tags.deleting] == ["a", "b", "c"]

    def test_slice_delete(self, tags):
        del tags[0:2]
        assert tags.keys() == ["c"]
        assert len(tags.deleting) == 2

    def test_move_and_reverse(self, tags):
        tags.move(0, 2)
        assert tags.keys() == ["b", "c", "a"]
        assert tags.get_by("a") is tags[2]
        tags.reverse()
        assert tags.keys() == ["a", "c", "b"]
        assert tags.deleting == []

    def test_observers(self, tags):
        events = []
        observer = lambda action, item, index: events.append((action, index))
        tags.subscribe(observer)
        tags.append(Tag("d"))
        del tags[0]
        tags.move(0, 1)
        tags.clear()
        tags.unsubscribe(observer)
        tags.append(Tag("e"))
        assert events == [
            (ChangeAction.ADD, 3),
            (ChangeAction.REMOVE, 0),
            (ChangeAction.MOVE, 1),
            (ChangeAction.RESET, -1),
        ]


def _node(name: str, id: int, parent=None) -> Entity:
    entity = Entity(name)
    entity["Id"] = id
    if parent is not None:
        entity["ParentId"] = parent
    return entity


class TestEntityCollection:
    """Test the change partition and hierarchy sort."""

    def test_name_from_first_entity(self, customer):
        collection = EntityCollection([customer])
        assert collection.entity_name == "Customer"
        assert collection.__data_type__ == DataType.ARRAY

    def test_keyed_by_entity_id(self, customer):
        other = Entity("Customer")
        collection = EntityCollection([customer, other, Entity("Customer")])
        assert collection.get_by("1") is customer
        assert len(collection) == 3

    def test_partition(self, registry, customer, stored_customer):
        modified = Entity("Customer", registry=registry)
        modified["Id"] = 2
        modified["Name"] = "Bob"
        modified.actualization()
        modified["Age"] = 30
        fresh = Entity("Customer", registry=registry)
        fresh["Id"] = 3
        fresh["Name"] = "Cid"
        collection = EntityCollection([stored_customer, modified, fresh])
        assert collection.creating == [fresh]
        assert collection.updating == [modified]
        assert collection.deleting == []

    def test_removing_created_is_not_a_deletion(self, customer):
        collection = EntityCollection([customer])
        collection.remove(customer)
        assert collection.deleting == []

    def test_removing_stored_is_a_deletion(self, stored_customer):
        collection = EntityCollection([stored_customer])
        collection.remove(stored_customer)
        assert collection.deleting == [stored_customer]

    def test_clone(self, stored_customer):
        collection = EntityCollection([stored_customer])
        collection.total_count = 10
        collection.has_more = True
        clone = collection.clone()
        assert clone[0] is stored_customer
        assert (clone.total_count, clone.has_more) == (10, True)
        clone.clear()
        assert len(collection) == 1
        assert collection.deleting == []

    def test_str_uses_grammar(self, customer):
        assert str(EntityCollection([customer])) == '{#Customer[{"Id":1,"Name":"Ann","Age":42}]}'

    def test_sort_moves_parents_first(self):
        grandchild = _node("Category", 3, 2)
        child = _node("Category", 2, 1)
        root = _node("Category", 1)
        collection = EntityCollection([grandchild, child, root])
        collection.sort("Id", "ParentId")
        assert [e["Id"] for e in collection] == [1, 2, 3]
        assert collection.deleting == []

    def test_sort_follows_same_name_references(self):
        child = _node("Category", 2, EntityReference("Category", 1))
        root = _node("Category", 1)
        collection = EntityCollection([child, root])
        collection.sort("Id", "ParentId")
        assert [e["Id"] for e in collection] == [1, 2]

    def test_sort_ignores_other_entity_references(self):
        child = _node("Category", 2, EntityReference("Folder", 1))
        root = _node("Category", 1)
        collection = EntityCollection([child, root])
        collection.sort("Id", "ParentId")
        assert [e["Id"] for e in collection] == [2, 1]

    def test_sort_is_single_pass_not_topological(self):
        # Reference names are compared case-sensitively, so the middle link
        # is skipped and the root is never pulled forward.
        grandchild = _node("Category", 3, 2)
        child = _node("Category", 2, EntityReference("category", 1))
        root = _node("Category", 1)
        collection = EntityCollection([grandchild, child, root])
        collection.sort("Id", "ParentId")
        assert [e["Id"] for e in collection] == [2, 3, 1]

    def test_sort_self_parent_terminates(self):
        node = _node("Category", 1, 1)
        other = _node("Category", 2)
        collection = EntityCollection([node, other])
        collection.sort("Id", "ParentId")
        assert [e["Id"] for e in collection] == [1, 2]

    def test_sort_requires_keys(self):
        collection = EntityCollection([_node("Category", 2, 1), _node("Category", 1)])
        collection.sort("", "ParentId")
        assert [e["Id"] for e in collection] == [2, 1]
