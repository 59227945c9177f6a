"""
In-process connector.

Keeps rows as plain dicts per entity name and implements the full
connector contract (read, select, CRUD, transaction, schema). Used to seed
data and to exercise code written against the connector Protocols without
a database.

Examples:
    >>> data = MemoryConnector(registry)
    >>> customer = Entity("Customer", registry=registry)
    >>> customer["Name"] = "Ann"
    >>> data.create(customer)
    >>> customer.entity_id, customer.state
    ('1', <EntityState.ACTUAL: 'actual'>)

Guardrails:
    ❌ DON'T: Use for concurrent writers across processes
    ✅ DO: Use for tests and seeding; a transaction restores every row on failure
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Mapping

from recordkit.core.entity import Entity
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.enums import ConditionOperator, DataType, EntityState, LogicalOperator, OrderType
from recordkit.core.errors import DataError, SchemaError
from recordkit.core.logging import get_logger
from recordkit.core.query import Condition, Filter, Query
from recordkit.core.registry import SchemaRegistry, get_registry
from recordkit.core.schema import Schema
from recordkit.core.values import format_value

logger = get_logger(__name__)

_AUTO_KEY_TYPES = (DataType.INT16, DataType.INT32, DataType.INT64)


class MemoryConnector:
    """Dict-backed implementation of ``TransactedData`` and ``DesignData``."""

    def __init__(self, registry: SchemaRegistry | None = None):
        self._registry = registry
        self._lock = threading.RLock()
        self._rows: dict[str, list[dict[str, Any]]] = {}

    @property
    def registry(self) -> SchemaRegistry:
        return get_registry(self._registry)

    # -- helpers -------------------------------------------------------------------

    def _table_rows(self, entity_name: str) -> list[dict[str, Any]]:
        return self._rows.setdefault(entity_name.lower(), [])

    def _entity(self, entity_name: str, row: dict[str, Any]) -> Entity:
        entity = Entity(entity_name, dict(row), registry=self._registry)
        entity.state = EntityState.ACTUAL
        return entity

    def _find(self, entity: Entity) -> int:
        key, value = entity.primary_key, entity.entity_id
        if not value:
            return -1
        for index, row in enumerate(self._table_rows(entity.entity_name)):
            if format_value(row.get(key)) == value:
                return index
        return -1

    def _assign_key(self, entity: Entity) -> None:
        key = entity.primary_key
        table = entity.schema
        column = table.get_column_schema(key) if table is not None else None
        if column is not None and column.data_type not in _AUTO_KEY_TYPES:
            return
        used = [
            row.get(key) for row in self._table_rows(entity.entity_name)
            if isinstance(row.get(key), int)
        ]
        entity.items[key] = max(used, default=0) + 1

    # -- ReadonlyData ------------------------------------------------------------

    def read(self, entity_name: str, keys: Mapping[str, Any]) -> EntityCollection:
        wanted = {name: format_value(value) for name, value in keys.items()}
        collection = EntityCollection(entity_name=entity_name)
        with self._lock:
            for row in self._table_rows(entity_name):
                entity = self._entity(entity_name, row)
                if all(entity.get_item_text(name) == text for name, text in wanted.items()):
                    collection.append(entity)
        collection.total_count = len(collection)
        return collection

    def select(self, query: Query) -> EntityCollection:
        with self._lock:
            entities = [self._entity(query.entity_name, row) for row in self._table_rows(query.entity_name)]

        if query.criteria:
            entities = [entity for entity in entities if _matches(entity, query.criteria)]
        for order in reversed(query.orders):
            entities.sort(
                key=lambda entity, name=order.attribute: _sort_key(entity.get_item_value(name)),
                reverse=order.order_type == OrderType.DESCENDING,
            )
        if query.distinct:
            seen, unique = set(), []
            for entity in entities:
                marker = tuple(sorted((k, format_value(v)) for k, v in entity.items.items()))
                if marker not in seen:
                    seen.add(marker)
                    unique.append(entity)
            entities = unique

        total = len(entities)
        skip, top = query.effective_skip(), query.effective_top()
        page = entities[skip:skip + top] if top > 0 else entities[skip:]
        if query.columns:
            for entity in page:
                keep = {name.lower() for name in query.columns} | {entity.primary_key.lower()}
                entity.items = {k: v for k, v in entity.items.items() if k.lower() in keep}

        collection = EntityCollection(page, entity_name=query.entity_name)
        collection.total_count = total
        collection.has_more = skip + len(page) < total
        return collection

    def get_schema(self, *table_names: str) -> Schema:
        registry = self.registry
        if not table_names:
            return registry.to_schema()
        tables = []
        for name in table_names:
            table = registry.get_table(name)
            if table is None:
                raise SchemaError(f"Table {name} not found", name=name)
            tables.append(table)
        return Schema(tables=tables)

    # -- CrudData ------------------------------------------------------------------

    def create(self, *entities: Entity) -> None:
        with self._lock:
            for entity in entities:
                if not entity.entity_id:
                    self._assign_key(entity)
                elif self._find(entity) >= 0:
                    raise DataError(
                        f"Duplicate key {entity.primary_key}={entity.entity_id}"
                    ).with_context(entity_name=entity.entity_name)
                self._table_rows(entity.entity_name).append(dict(entity.items))
                entity.actualization()

    def update(self, *entities: Entity) -> None:
        with self._lock:
            for entity in entities:
                index = self._find(entity)
                if index < 0:
                    raise DataError(f"Entity not found: {entity}").with_context(
                        entity_name=entity.entity_name
                    )
                self._table_rows(entity.entity_name)[index] = dict(entity.items)
                entity.actualization()

    def delete(self, *entities: Entity) -> None:
        with self._lock:
            for entity in entities:
                index = self._find(entity)
                if index < 0:
                    raise DataError(f"Entity not found: {entity}").with_context(
                        entity_name=entity.entity_name
                    )
                del self._table_rows(entity.entity_name)[index]

    def delete_ids(self, entity_name: str, key_column: str, *ids: Any) -> None:
        targets = {format_value(value) for value in ids}
        with self._lock:
            rows = self._table_rows(entity_name)
            rows[:] = [row for row in rows if format_value(row.get(key_column)) not in targets]

    # -- TransactedData ------------------------------------------------------------

    def transaction(self, entity_set) -> None:
        """Apply ``entity_set``; on any failure every table is restored."""
        creating, updating, deleting = entity_set.creating, entity_set.updating, entity_set.deleting
        with self._lock:
            snapshot = copy.deepcopy(self._rows)
            try:
                self.create(*creating)
                self.update(*updating)
                self.delete(*deleting)
            except Exception:
                self._rows = snapshot
                logger.warning(
                    "transaction_rolled_back",
                    creating=len(creating),
                    updating=len(updating),
                    deleting=len(deleting),
                )
                raise
        logger.debug(
            "transaction_committed",
            creating=len(creating),
            updating=len(updating),
            deleting=len(deleting),
        )

    # -- DesignData ----------------------------------------------------------------

    def set_schema(self, schema: Schema) -> None:
        self.registry.register_schema(schema)
        with self._lock:
            for table in schema.tables:
                self._table_rows(table.name)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._rows.values())


# =============================================================================
# FILTER EVALUATION
# =============================================================================


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, format_value(value))


def _compare(condition: Condition, value: Any) -> bool:
    operator, expected = condition.operator, condition.value
    if operator == ConditionOperator.NULL:
        return value is None
    if operator == ConditionOperator.NOT_NULL:
        return value is not None
    if operator in (ConditionOperator.LIKE, ConditionOperator.NOT_LIKE):
        found = format_value(expected).lower() in format_value(value).lower()
        return found if operator == ConditionOperator.LIKE else not found
    if operator == ConditionOperator.EQUAL:
        return value == expected or format_value(value) == format_value(expected)
    if operator == ConditionOperator.NOT_EQUAL:
        return not (value == expected or format_value(value) == format_value(expected))
    if value is None or expected is None:
        return False
    try:
        if operator == ConditionOperator.GREATER_THAN:
            return value > expected
        if operator == ConditionOperator.GREATER_EQUAL:
            return value >= expected
        if operator == ConditionOperator.LESS_THAN:
            return value < expected
        if operator == ConditionOperator.LESS_EQUAL:
            return value <= expected
    except TypeError:
        return False
    return False


def _matches(entity: Entity, flt: Filter) -> bool:
    results = [_compare(c, entity.get_item_value(c.attribute)) for c in flt.conditions]
    results.extend(_matches(entity, child) for child in flt.filters if child)
    if not results:
        return True
    return all(results) if flt.operator == LogicalOperator.AND else any(results)


__all__ = ["MemoryConnector"]
