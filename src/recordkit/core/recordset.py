"""
Record set - typed record collections committed as one entity set.

A :class:`RecordSet` holds one :class:`RecordCollection` per record shape.
Records are plain objects (usually synthesized from a shape with
:func:`~recordkit.core.records.create`); the set converts them to entities
when a connector asks for its change partition, so it can be handed
straight to :meth:`TransactedData.transaction`.

Examples:
    >>> class Role(Protocol):
    ...     Id: int
    ...     Name: str
    >>> data = RecordSet(registry)
    >>> data.fill(Role, [{"Id": 1, "Name": "reader"}, {"Id": 2, "Name": "writer"}])
    >>> data.commit_changes(MemoryConnector(registry))

Guardrails:
    ❌ DON'T: Expect ``updating`` to report edits made to records in place
    ✅ DO: Use entities (which track state) for edits; records are for seeding
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from recordkit.core import records
from recordkit.core.collection import KeyedCollection
from recordkit.core.entity import Entity
from recordkit.core.enums import EntityState
from recordkit.core.logging import get_logger
from recordkit.core.registry import SchemaRegistry, get_registry

logger = get_logger(__name__)

_STAMP_FIELDS = ("Created", "Modified")


class RecordCollection(KeyedCollection[Any, Any]):
    """Records of one shape keyed by the table's primary key."""

    def __init__(self, shape: type, key_field: str):
        self.shape = shape
        self.entity_name = records.entity_name_of(shape)
        super().__init__(key_field=key_field, unique=True)


class RecordSet:
    """Collections of records, exposed as an ``EntitySet``."""

    def __init__(self, registry: SchemaRegistry | None = None):
        self._registry = registry
        self._collections: dict[str, RecordCollection] = {}

    @property
    def registry(self) -> SchemaRegistry:
        return get_registry(self._registry)

    # -- collections -------------------------------------------------------------

    def collection(self, shape: type) -> RecordCollection:
        """Collection for ``shape``, created on first use."""
        name = records.entity_name_of(shape)
        collection = self._collections.get(name.lower())
        if collection is None:
            key_field = self.registry.primary_key(name, {}, self.registry.get_table(name))
            collection = RecordCollection(shape, key_field)
            collection.subscribe(
                lambda action, item, index, name=name: logger.debug(
                    "record_set_changed", entity=name, action=action.value, index=index
                )
            )
            self._collections[name.lower()] = collection
        return collection

    def add(self, record: Any, shape: type | None = None) -> Any:
        self.collection(shape or type(record)).append(record)
        return record

    def fill(self, shape: type, rows: Iterable[Mapping[str, Any]]) -> RecordCollection:
        """Create one record of ``shape`` per row and add it."""
        collection = self.collection(shape)
        for row in rows:
            collection.append(records.create(shape, **dict(row)))
        return collection

    def __iter__(self):
        return iter(self._collections.values())

    def __len__(self) -> int:
        return sum(len(collection) for collection in self._collections.values())

    # -- EntitySet -----------------------------------------------------------------

    def get_entities(self, state: EntityState) -> list[Entity]:
        """
        Records as entities in ``state``.

        Only CREATED yields entities (every record is new to the store);
        ``Created``/``Modified`` fields present on a record are stamped with
        the current time first.
        """
        if state != EntityState.CREATED:
            return []
        now = datetime.now()
        entities = []
        for collection in self._collections.values():
            fields = records.shape_fields(collection.shape)
            for record in collection:
                for name in _STAMP_FIELDS:
                    if name in fields:
                        setattr(record, name, now)
                entity = Entity.from_object(record, registry=self._registry)
                entity.state = EntityState.CREATED
                entities.append(entity)
        return entities

    @property
    def creating(self) -> list[Entity]:
        return self.get_entities(EntityState.CREATED)

    @property
    def updating(self) -> list[Entity]:
        return self.get_entities(EntityState.MODIFIED)

    @property
    def deleting(self) -> list[Entity]:
        """Removed records as entities; the removal lists are cleared."""
        entities = []
        for collection in reversed(list(self._collections.values())):
            for record in collection.deleting:
                entities.append(Entity.from_object(record, registry=self._registry))
            collection.accept_deletions()
        return entities

    def commit_changes(self, data) -> None:
        """Hand this set to ``data.transaction``."""
        data.transaction(self)
        logger.info("record_set_committed", collections=len(self._collections), records=len(self))


__all__ = ["RecordCollection", "RecordSet"]
