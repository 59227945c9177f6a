"""Entity collection - the unit of work handed to a transactional connector.

An :class:`EntityCollection` is a :class:`~recordkit.core.collection.KeyedCollection`
of entities keyed by ``entity_id``. Unlike the generic collection it
accepts repeated or empty keys (new entities usually have no id yet), so a
bare ``append`` always appends.

Its change partition is what a connector needs to persist it:

    creating  entities in state CREATED
    updating  entities in state MODIFIED
    deleting  entities removed from the collection, except those that were
              still CREATED (they never reached the store)
"""

from __future__ import annotations

from typing import Iterable

from recordkit.core.collection import KeyedCollection
from recordkit.core.entity import Entity, EntityReference
from recordkit.core.enums import DataType, EntityState
from recordkit.core.values import format_value


class EntityCollection(KeyedCollection[Entity, str]):
    """Ordered collection of entities sharing one logical entity name."""

    __data_type__ = DataType.ARRAY

    def __init__(self, entities: Iterable[Entity] = (), entity_name: str = ""):
        self.entity_name = entity_name
        self.has_more = False
        self.total_count = 0
        self.paging_cookie: str | None = None
        super().__init__(key_field="entity_id", unique=False)
        for entity in entities:
            self.append(entity)

    # -- change partition ----------------------------------------------------------

    @property
    def creating(self) -> list[Entity]:
        return [entity for entity in self if entity.state == EntityState.CREATED]

    @property
    def updating(self) -> list[Entity]:
        return [entity for entity in self if entity.state == EntityState.MODIFIED]

    def _track_deleted(self, item: Entity) -> None:
        if item.state != EntityState.CREATED:
            super()._track_deleted(item)

    # -- overrides -------------------------------------------------------------------

    def insert(self, index: int, item: Entity) -> None:
        super().insert(index, item)
        if not self.entity_name:
            self.entity_name = item.entity_name

    def clone(self) -> EntityCollection:
        """Shallow copy: same entities, same paging fields, fresh deletion list."""
        clone = EntityCollection(self, self.entity_name)
        clone.has_more = self.has_more
        clone.total_count = self.total_count
        clone.paging_cookie = self.paging_cookie
        return clone

    def sort(self, primary_key: str, parent_key: str) -> None:
        """
        Move parents in front of their children.

        A single forward scan: for the entity at ``idx`` whose parent id
        matches a later entity's primary key, the two swap places and the scan
        re-examines ``idx``. Parent references to another entity name are
        ignored. This is not a full topological sort; some parent/child
        graphs stay partially unordered.
        """
        if not primary_key or not parent_key:
            return

        idx = 0
        while idx < len(self) - 1:
            parent = self[idx].get(parent_key)
            if parent is not None:
                if isinstance(parent, EntityReference):
                    if parent.entity_name != self.entity_name:
                        idx += 1
                        continue
                    parent_id = parent.id
                else:
                    parent_id = format_value(parent)
                if parent_id:
                    for i in range(idx + 1, len(self)):
                        value = self[i].get(primary_key)
                        own_id = value.id if isinstance(value, EntityReference) else format_value(value)
                        if own_id == parent_id:
                            self._swap(idx, i)
                            idx -= 1
                            break
            idx += 1

    def __str__(self) -> str:
        from recordkit.core.grammar import dumps_collection

        return dumps_collection(self)


__all__ = ["EntityCollection"]
