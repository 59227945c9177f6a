"""
Entity - a named, schema-aware record with change tracking.

An ``Entity`` holds an ordered ``items`` map (current values), an
``old_items`` map (pre-change values of changed keys only) and a list of
owned ``children``. When a :class:`~recordkit.core.schema.TableSchema` is
bound, every write is checked against it.

Manifesto:
    - **Explicit accessors:** ``entity[name]``, ``get()``, ``set_item_value()``
      over an ordered map, no attribute magic
    - **Cheap change tracking:** only the first pre-change value per key is kept
    - **Two failure modes:** internal paths check a bool, user paths get an error

Architecture:
    ::

        ┌──────────── Entity ─────────────┐
        │ entity_name ── TableSchema (ref) │
        │ state: CREATED|ACTUAL|MODIFIED   │
        │ items      {name: value}         │
        │ old_items  {name: first value}   │
        │ children   [Entity, ...]         │
        └──────────────────────────────────┘

        CREATED ──write──▶ CREATED
        ACTUAL  ──first differing write──▶ MODIFIED (snapshot to old_items)
        any     ──actualization()──▶ ACTUAL (old_items cleared)

Examples:
    >>> order = Entity("Order")
    >>> order["OrderId"] = 42
    >>> order.primary_key, order.entity_id
    ('OrderId', '42')
    >>> order.actualization()
    >>> order["Total"] = 10
    >>> order.state
    <EntityState.MODIFIED: 'modified'>

Guardrails:
    ❌ DON'T: Share one Entity between threads without external locking
    ✅ DO: Clone (or convert with ``to()``) before handing data to another worker

    ❌ DON'T: Expect ``clone()`` to copy ``items``
    ✅ DO: Treat a non-fast clone as sharing ``items``/``old_items`` with its source

Tags:
    entity, change-tracking, record, recordkit
"""

from __future__ import annotations

import copy
import re
import typing
import uuid
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, TypeVar

from recordkit.core.enums import DataType, EntityState
from recordkit.core.errors import RequiredValueError, SchemaError, TypeMismatchError
from recordkit.core.logging import get_logger
from recordkit.core.registry import SchemaRegistry, get_registry
from recordkit.core.schema import TableSchema, is_value_of_type
from recordkit.core.settings import get_settings
from recordkit.core.values import coerce_to_type, coerce_value, format_value, try_parse_guid

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# VALUE OBJECTS
# =============================================================================


class EntityReference:
    """
    Non-owning pointer to another entity: ``#REF=<Name>/#TXT=<Text>/#ID=<Id>``.

    Equality compares entity name and id only.
    """

    __data_type__ = DataType.REFERENCE

    def __init__(self, entity_name: str = "", id: Any = "", text: str | None = None):
        self.entity_name = entity_name or ""
        self.id = format_value(id)
        self.text = text

    @classmethod
    def from_entity(cls, entity: Entity) -> EntityReference:
        """Reference ``entity``; the display text comes from its primary column."""
        text = None
        if entity.schema is not None:
            column = entity.schema.get_primary_column()
            if column is not None:
                text = entity.get_item_text(column.name) or None
        return cls(entity.entity_name, entity.entity_id, text)

    @classmethod
    def parse(cls, text: str | None) -> EntityReference | None:
        """Read the reference form, or None if ``text`` is not one."""
        if not text or len(text) > get_settings().reference_text_limit or text[0] != "#":
            return None
        upper = text.upper()
        if not upper.startswith("#REF="):
            return None
        id_index = upper.find("/#ID=")
        if id_index < 0:
            return None
        text_index = upper.find("/#TXT=")
        if text_index < 0 or text_index > id_index:
            text_index = id_index
        reference = cls(text[5:text_index].strip(), text[id_index + 5:].strip())
        if text_index < id_index:
            reference.text = text[text_index + 6:id_index].strip()
        return reference

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityReference):
            return NotImplemented
        return self.entity_name == other.entity_name and self.id == other.id

    def __hash__(self) -> int:
        return hash((self.entity_name, self.id))

    def __str__(self) -> str:
        text = (self.text or "").strip()
        if not text:
            return f"#REF={self.entity_name.strip()}/#ID={self.id}"
        return f"#REF={self.entity_name.strip()}/#TXT={text}/#ID={self.id}"

    def __repr__(self) -> str:
        return f"EntityReference({self.entity_name!r}, {self.id!r}, {self.text!r})"


class OptionSetValue:
    """Enumerated value with a display label: ``#SET=<Value>/#TXT=<Text>``."""

    __data_type__ = DataType.OPTION_SET

    def __init__(self, value: int, text: str | None = None):
        self.value = int(value)
        self.text = text

    @classmethod
    def parse(cls, text: str | None) -> OptionSetValue | None:
        if not text or text[0] != "#":
            return None
        upper = text.upper()
        if not upper.startswith("#SET="):
            return None
        text_index = upper.find("/#TXT=")
        if text_index < 0:
            text_index = len(text)
        try:
            option = cls(int(text[5:text_index].strip()))
        except ValueError:
            return None
        if text_index < len(text):
            option.text = text[text_index + 6:].strip()
        return option

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OptionSetValue):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        if not self.text:
            return f"#SET={self.value}"
        return f"#SET={self.value}/#TXT={self.text}"

    def __repr__(self) -> str:
        return f"OptionSetValue({self.value!r}, {self.text!r})"


@dataclass
class FormattedValue:
    """A value paired with a ``str.format`` template (``"{0} kg"``)."""

    format: str
    value: Any

    def __str__(self) -> str:
        if self.value is None:
            return ""
        text = format_value(self.value)
        if not text or not self.format:
            return text
        return self.format.format(text)


# =============================================================================
# ENTITY
# =============================================================================


class Entity:
    """
    Dynamically keyed record.

    ``entity_name`` may be a table name (the table is looked up in the
    registry and bound when found), a ``TableSchema`` (bound directly) or
    any plain name.
    """

    def __init__(
        self,
        entity_name: str | TableSchema,
        items: Mapping[str, Any] | None = None,
        *,
        registry: SchemaRegistry | None = None,
    ):
        if entity_name is None:
            raise TypeError("entity_name must not be None")
        self._registry = registry
        self.items: dict[str, Any] = dict(items or {})
        self.old_items: dict[str, Any] = {}
        self.children: list[Entity] = []
        self.state = EntityState.CREATED
        if isinstance(entity_name, TableSchema):
            self._schema: TableSchema | None = entity_name
            self._name = entity_name.name
        else:
            self._schema = self.registry.get_table(entity_name)
            self._name = entity_name

    # -- identity ----------------------------------------------------------------

    @property
    def registry(self) -> SchemaRegistry:
        return get_registry(self._registry)

    @property
    def schema(self) -> TableSchema | None:
        return self._schema

    @property
    def entity_name(self) -> str:
        return self._schema.name if self._schema is not None else self._name

    @entity_name.setter
    def entity_name(self, name: str) -> None:
        self._name = name
        if self._schema is not None and self._schema.name.lower() != name.lower():
            self._schema = self.registry.get_table(name)

    @property
    def primary_key(self) -> str:
        return self.registry.primary_key(self.entity_name, self.items, self._schema)

    @property
    def parent_key(self) -> str:
        return self.registry.parent_key(self.entity_name, self._schema)

    @property
    def entity_id(self) -> str:
        """Text form of the primary-key value ("" when unset)."""
        return format_value(self.items.get(self.primary_key))

    @entity_id.setter
    def entity_id(self, value: str) -> None:
        table = self._schema if self._schema is not None else self.registry.get_table(self.entity_name)
        primary_key = self.registry.primary_key(self.entity_name, self.items, table)
        if table is not None and table.primary_key:
            column = table.get_column_schema(primary_key)
            if column is not None:
                if column.data_type in (DataType.INT32, DataType.INT64):
                    try:
                        self[column.name] = int(value)
                    except (TypeError, ValueError):
                        self[column.name] = 0
                    return
                if column.data_type == DataType.GUID:
                    self[column.name] = try_parse_guid(value or "") or uuid.UUID(int=0)
                    return
        self[primary_key] = value

    # -- reading -----------------------------------------------------------------

    def _resolve_key(self, name: str) -> str | None:
        if name in self.items:
            return name
        lowered = name.lower()
        if lowered in self.items:
            return lowered
        return None

    def __getitem__(self, name: str) -> Any:
        return self.items[name]

    def __contains__(self, name: object) -> bool:
        return name in self.items

    def __iter__(self) -> Iterator[str]:
        return iter(self.items)

    def get(self, name: str, default: Any = None) -> Any:
        return self.items.get(name, default)

    def get_item_value(self, name: str) -> Any:
        """Value by exact name, then by lower-cased name; None if absent."""
        key = self._resolve_key(name)
        return self.items[key] if key is not None else None

    def get_item_text(self, name: str) -> str:
        return format_value(self.get_item_value(name))

    def get_typed(self, name: str, target: type[T], default: T | None = None) -> T | None:
        """
        Value converted to ``target`` (``int``, ``bool``, ``datetime`` ...).

        Returns ``default`` when the value is absent or cannot be converted.
        """
        value = self.items.get(name)
        if value is None:
            return default
        try:
            return coerce_to_type(target, value)
        except (TypeError, ValueError):
            return default

    def search_named_value(self, name: str) -> Any:
        """Depth-first search of this entity, then its children."""
        value = self.get_item_value(name)
        if value is not None:
            return value
        for child in self.children:
            value = child.search_named_value(name)
            if value is not None:
                return value
        return None

    # -- writing -----------------------------------------------------------------

    def set_item_value(self, name: str, value: Any) -> bool:
        """
        Write a value, returning False when the bound schema rejects it.

        Equal values (identity, ``==`` or equal text) are a successful no-op.
        """
        if not name or not name.strip():
            return False

        if self._schema is not None:
            column = self._schema.get_column_schema(name)
            if column is None:
                return False
            name = column.name
            if not column.accepts(value):
                return False

        old = self.items.get(name)
        if old is value:
            return True
        if old is not None:
            if type(old) is type(value) and old == value:
                return True
            if value is not None and format_value(old) == format_value(value):
                return True

        if self.state == EntityState.ACTUAL:
            self.state = EntityState.MODIFIED
        if self.state == EntityState.MODIFIED and name not in self.old_items:
            self.old_items[name] = old

        self.items[name] = value
        return True

    def __setitem__(self, name: str, value: Any) -> None:
        if not self.set_item_value(name, value):
            raise TypeMismatchError(name, value).with_context(entity_name=self.entity_name)

    # -- state -------------------------------------------------------------------

    def actualization(self, entity_name: str | None = None) -> None:
        """Mark the entity as matching the data store."""
        if entity_name:
            self.entity_name = entity_name
        self.state = EntityState.ACTUAL
        self.old_items.clear()

    def actualize_with(self, table: TableSchema) -> bool:
        """
        Bind ``table``, coerce values to column types and actualize.

        Returns False (and changes nothing) when a Required column is null.
        Values that cannot be coerced are kept as they are.
        """
        for column in table.columns:
            if column.is_required and self.get_item_value(column.name) is None:
                logger.debug("required_value_missing", entity=self.entity_name, column=column.name)
                return False

        for column in table.columns:
            key = self._resolve_key(column.name)
            if key is None:
                continue
            value = self.items[key]
            if value is None or is_value_of_type(column.data_type, value):
                continue
            try:
                self.items[key] = coerce_value(column.data_type, value)
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "column_coercion_failed",
                    entity=self.entity_name,
                    column=column.name,
                    data_type=column.data_type.name,
                    error=str(exc),
                )

        self._schema = table
        self.actualization()
        return True

    def validate(self) -> None:
        """Raise for the first Required null or type mismatch against the schema."""
        if self._schema is None:
            return
        for column in self._schema.columns:
            value = self.get_item_value(column.name)
            if value is None:
                if column.is_required:
                    raise RequiredValueError(column.name, self.entity_name)
                continue
            if not column.accepts(value):
                raise SchemaError(
                    f"Mismatch data type for column {column.name}",
                    name=column.name,
                    data_type=column.data_type,
                ).with_context(entity_name=self.entity_name)

    # -- copies and conversions ------------------------------------------------

    def clone(self, entity_name: str | None = None, fast: bool = False) -> Entity:
        """
        Copy this entity.

        ``fast`` with a new name renames this very entity (no copy). Any other
        clone is a shallow copy: ``items`` and ``old_items`` stay shared with
        the source. Children are deep-cloned unless ``fast``; a fast clone
        starts with no children.
        """
        rename = bool(entity_name and entity_name.strip())
        clone = self if (rename and fast) else copy.copy(self)
        source_children = self.children
        clone.children = []
        if not fast:
            clone.children.extend(child.clone() for child in source_children)
        if rename:
            clone.entity_name = entity_name
        return clone

    def to(self, target: type[T]) -> T:
        """
        Convert to a typed view.

        An abstract shape (Protocol/ABC) gets a synthesized record; a concrete
        class is instantiated without arguments. Each declared field is copied
        from ``items`` by name and converted to the field's type.
        """
        from recordkit.core import records

        if records.is_shape(target):
            instance = records.create(target)
            fields = records.shape_fields(target)
        else:
            instance = target()
            fields = {
                name: hint
                for name, hint in typing.get_type_hints(target).items()
                if not name.startswith("_")
            }

        for name, hint in fields.items():
            value = self.items.get(name)
            if value is None:
                continue
            try:
                setattr(instance, name, records.convert_field(hint, value))
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "field_conversion_failed",
                    entity=self.entity_name,
                    field=name,
                    error=str(exc),
                )
        return instance

    @classmethod
    def from_schema(cls, obj: Any, table: TableSchema, *, registry: SchemaRegistry | None = None) -> Entity:
        """Copy every column of ``table`` from ``obj``; mismatches raise."""
        if table is None:
            raise SchemaError("Table schema is required")
        entity = cls(table, registry=registry)
        for column in table.columns:
            value = getattr(obj, column.name, None)
            if value is not None:
                entity[column.name] = value
        return entity

    @classmethod
    def from_object(
        cls,
        obj: Any,
        table: TableSchema | None = None,
        *,
        registry: SchemaRegistry | None = None,
    ) -> Entity:
        """
        Build an entity from the public fields of ``obj``.

        Without ``table`` the table is looked up by the object's entity name.
        Fields the table does not have, or whose values do not fit the column,
        are skipped with a warning.
        """
        from recordkit.core import records

        entity = cls(table if table is not None else records.entity_name_of(type(obj)), registry=registry)
        table = entity.schema
        for field_name, value in records.public_fields(obj).items():
            if value is None:
                continue
            if table is not None:
                column = table.get_column_schema(field_name)
                if column is None:
                    logger.warning("column_skipped", table=table.name, column=field_name)
                    continue
                if not column.accepts(value):
                    logger.warning(
                        "column_type_mismatch",
                        table=table.name,
                        column=field_name,
                        data_type=column.data_type.name,
                    )
                    continue
            entity.set_item_value(field_name, value)
        return entity

    # -- misc --------------------------------------------------------------------

    @staticmethod
    def get_equal_index(text: str, *candidates: str) -> int:
        """
        Index of the first candidate with the same word set as ``text``.

        Words are split on spaces and commas and compared case-insensitively.
        Returns -1 when nothing matches.
        """
        parts = [p for p in re.split(r"[ ,]+", text.lower()) if p]
        for index, candidate in enumerate(candidates):
            keys = [k for k in re.split(r"[ ,]+", candidate.lower()) if k]
            if len(parts) != len(keys):
                continue
            if parts and all(part in keys for part in parts):
                return index
        return -1

    def __str__(self) -> str:
        return f"{self.entity_name or ''}[{self.entity_id}]"

    def __repr__(self) -> str:
        return f"Entity({self.entity_name!r}, state={self.state.value}, items={self.items!r})"


__all__ = [
    "Entity",
    "EntityReference",
    "OptionSetValue",
    "FormattedValue",
]
