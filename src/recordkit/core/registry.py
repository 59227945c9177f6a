"""Schema registry - table cache plus primary/parent key inference.

Manifesto:
    Entities look up their table by name on every schema-bound operation,
    and key inference writes its answer back into the cached table. The
    registry is therefore the one shared, mutable piece of state in the
    core; every access goes through its lock.

    - **Injected, not hidden:** components take a ``registry`` argument
    - **Convenience default:** ``schema_registry`` for callers that do not care
    - **Memoized keys:** once a table's key is resolved it never changes

Features:
    - ``SchemaRegistry.get_table()`` / ``set_table()`` (case-insensitive)
    - ``SchemaRegistry.primary_key()`` candidate probing over columns or items
    - ``SchemaRegistry.parent_key()`` ``parent*id`` probing
    - ``schema_registry`` module default, ``get_registry()`` accessor

Tags:
    recordkit, schema, registry, cache, key-inference

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Mapping
from typing import Any, Iterable

from recordkit.core.enums import DataType
from recordkit.core.logging import get_logger
from recordkit.core.schema import Schema, TableSchema
from recordkit.core.settings import get_settings
from recordkit.core.values import try_parse_guid

logger = get_logger(__name__)

_KEY_TYPES = (DataType.INT32, DataType.INT64, DataType.GUID, DataType.STRING)


def _primary_candidates(entity_name: str) -> list[str]:
    lower = entity_name.lower()
    return ["id", f"{lower}id", f"id_{lower}", f"{lower}_id", "activityid"]


def _parent_candidates(entity_name: str) -> list[str]:
    lower = entity_name.lower()
    return [
        "parentid",
        f"parent{lower}id",
        f"parentid_{lower}",
        f"parent_id_{lower}",
        f"parent_{lower}_id",
    ]


def _looks_like_key(value: Any) -> bool:
    """Integers, GUIDs, and strings that parse as either."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, uuid.UUID)):
        return True
    if isinstance(value, str) and value.strip():
        if try_parse_guid(value) is not None:
            return True
        try:
            int(value)
            return True
        except ValueError:
            return False
    return False


class SchemaRegistry:
    """
    Thread-safe cache of table schemas keyed by lower-cased name.

    Design Principle #3: Registry-Driven Discovery
    """

    def __init__(self, tables: Iterable[TableSchema] | None = None):
        self._lock = threading.RLock()
        self._tables: dict[str, TableSchema] = {}
        for table in tables or ():
            self.set_table(table)

    # -- cache ---------------------------------------------------------------

    def get_table(self, name: str | None) -> TableSchema | None:
        """Get a cached table by name (case-insensitive)."""
        if not name:
            return None
        with self._lock:
            return self._tables.get(name.lower())

    def set_table(self, table: TableSchema) -> TableSchema:
        """Insert or replace a table."""
        with self._lock:
            self._tables[table.name.lower()] = table
        logger.debug("table_registered", table=table.name, columns=len(table.columns))
        return table

    def register_schema(self, schema: Schema) -> None:
        """Insert or replace every table of ``schema``."""
        for table in schema.tables:
            self.set_table(table)

    def remove_table(self, name: str) -> TableSchema | None:
        with self._lock:
            return self._tables.pop(name.lower(), None)

    def list_tables(self) -> list[str]:
        """List registered table names."""
        with self._lock:
            return sorted(table.name for table in self._tables.values())

    def to_schema(self, name: str = "") -> Schema:
        with self._lock:
            return Schema(name=name, tables=list(self._tables.values()))

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get_table(name) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    # -- key inference ---------------------------------------------------------

    def primary_key(
        self,
        entity_name: str | None,
        items: Mapping[str, Any] | None = None,
        table: TableSchema | None = None,
    ) -> str:
        """
        Infer the primary-key column name of an entity.

        Order: the table's resolved key, a candidate column of the table
        (memoized on the table), the exact ``<Name>Id`` item, the first
        candidate item holding a key-like value, ``<Name>Id`` itself.
        """
        default = get_settings().default_primary_key
        if not entity_name:
            return default

        with self._lock:
            if table is None:
                table = self.get_table(entity_name)
            if not items and table is None:
                return default

            candidates = _primary_candidates(entity_name)
            if table is not None:
                if table.primary_key:
                    return table.primary_key
                for candidate in candidates:
                    for column in table.columns:
                        if column.name.lower() == candidate and column.data_type in _KEY_TYPES:
                            table.primary_key = column.name
                            logger.debug(
                                "primary_key_resolved", table=table.name, key=column.name
                            )
                            return table.primary_key

        if entity_name[0].islower():
            primary_key = f"{entity_name}id"
        else:
            primary_key = f"{entity_name}Id"

        if items:
            if primary_key in items:
                return primary_key
            for key, value in items.items():
                if key.lower() in candidates and _looks_like_key(value):
                    return key
        return primary_key

    def parent_key(self, entity_name: str | None, table: TableSchema | None = None) -> str:
        """Infer the parent-key column name (memoized on the table)."""
        if not entity_name:
            return "ParentId"

        with self._lock:
            if table is None:
                table = self.get_table(entity_name)
            if table is not None:
                if table.parent_key:
                    return table.parent_key
                candidates = _parent_candidates(entity_name)
                for column in table.columns:
                    if column.name.lower() in candidates and column.data_type in _KEY_TYPES:
                        table.parent_key = column.name
                        logger.debug("parent_key_resolved", table=table.name, key=column.name)
                        return table.parent_key

        if entity_name[0].islower():
            return f"parent{entity_name}id"
        return "ParentId"


# Global registry
schema_registry = SchemaRegistry()


def get_registry(registry: SchemaRegistry | None = None) -> SchemaRegistry:
    """Return ``registry`` or the module default."""
    return registry if registry is not None else schema_registry


__all__ = [
    "SchemaRegistry",
    "schema_registry",
    "get_registry",
]
