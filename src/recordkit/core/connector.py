"""
Connector contract - what the core needs from a data store.

The core performs no I/O. Concrete connectors (SQL dialects, HTTP APIs,
the in-process :class:`~recordkit.core.memory.MemoryConnector`) implement
these Protocols and are looked up by name through :class:`DataProvider`.

Manifesto:
    Protocol over inheritance: a connector is anything with the right
    methods. ``read_entity`` is the one piece of shared behavior, turning a
    raw row into an Actual entity with the schema enforced.

Architecture:
    ::

        ReadonlyData   read(entity_name, keys) / select(query) / get_schema(*tables)
            │
        CrudData       create / update / delete / delete_ids
            │
        TransactedData transaction(entity_set)
                          entity_set: EntitySet (creating / updating / deleting)

        DesignData     set_schema(schema)

        DataProvider   name -> connector   (DataSourceNotFoundError)

Examples:
    >>> provider = DataProvider()
    >>> provider.register("main", MemoryConnector(registry))
    >>> provider.get("main").read("Customer", {"Id": 1})

Tags:
    connector, protocol, data-source, registry, recordkit
"""

from __future__ import annotations

import threading
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from recordkit.core.entity import Entity
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.enums import EntityState
from recordkit.core.errors import DataSourceNotFoundError, SchemaError
from recordkit.core.logging import get_logger
from recordkit.core.query import Query
from recordkit.core.registry import SchemaRegistry
from recordkit.core.schema import Schema, TableSchema, is_value_of_type

logger = get_logger(__name__)


# =============================================================================
# PROTOCOLS
# =============================================================================


@runtime_checkable
class EntitySet(Protocol):
    """Change partition handed to :meth:`TransactedData.transaction`."""

    @property
    def creating(self) -> list[Entity]:
        ...

    @property
    def updating(self) -> list[Entity]:
        ...

    @property
    def deleting(self) -> list[Entity]:
        ...


@runtime_checkable
class ReadonlyData(Protocol):
    def read(self, entity_name: str, keys: Mapping[str, Any]) -> EntityCollection:
        """Entities whose items equal every ``keys`` pair."""
        ...

    def select(self, query: Query) -> EntityCollection:
        ...

    def get_schema(self, *table_names: str) -> Schema:
        """Schema of the named tables (all tables when none given)."""
        ...


@runtime_checkable
class CrudData(ReadonlyData, Protocol):
    def create(self, *entities: Entity) -> None:
        ...

    def update(self, *entities: Entity) -> None:
        ...

    def delete(self, *entities: Entity) -> None:
        ...

    def delete_ids(self, entity_name: str, key_column: str, *ids: Any) -> None:
        ...


@runtime_checkable
class TransactedData(CrudData, Protocol):
    def transaction(self, entity_set: EntitySet) -> None:
        """Apply creates, updates and deletes atomically."""
        ...


@runtime_checkable
class DesignData(Protocol):
    def set_schema(self, schema: Schema) -> None:
        ...


# =============================================================================
# ROW READING
# =============================================================================


def read_entity(
    table: TableSchema,
    row: Iterable[tuple[str, Any]],
    *,
    registry: SchemaRegistry | None = None,
) -> Entity:
    """
    Build an Actual entity from ``(column, value)`` pairs.

    Raises:
        SchemaError: duplicate column in the row, column unknown to
            ``table``, or a value that does not fit its column type.
    """
    entity = Entity(table, registry=registry)
    for name, value in row:
        if name in entity.items:
            raise SchemaError(f"Double columns with name '{name}'", name=name).with_context(
                table_name=table.name
            )
        column = table.get_column_schema(name)
        if column is None:
            raise SchemaError(f"Column {name} not found", name=name).with_context(
                table_name=table.name
            )
        if value is not None and not is_value_of_type(column.data_type, value):
            raise SchemaError(
                f"Mismatch data type for column {name}",
                name=name,
                data_type=column.data_type,
            ).with_context(table_name=table.name)
        entity.items[column.name] = value
    entity.state = EntityState.ACTUAL
    return entity


# =============================================================================
# PROVIDER
# =============================================================================


class DataProvider:
    """
    Named data sources.

    Design Principle #3: Registry-Driven Discovery
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sources: dict[str, ReadonlyData] = {}

    def register(self, name: str, data: ReadonlyData) -> None:
        with self._lock:
            self._sources[name.lower()] = data
        logger.debug("data_source_registered", source=name, kind=type(data).__name__)

    def unregister(self, name: str) -> None:
        with self._lock:
            self._sources.pop(name.lower(), None)

    def get(self, name: str) -> ReadonlyData:
        with self._lock:
            data = self._sources.get(name.lower())
        if data is None:
            raise DataSourceNotFoundError(name)
        return data

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._sources)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return isinstance(name, str) and name.lower() in self._sources


# Global provider
data_provider = DataProvider()


__all__ = [
    "EntitySet",
    "ReadonlyData",
    "CrudData",
    "TransactedData",
    "DesignData",
    "read_entity",
    "DataProvider",
    "data_provider",
]
