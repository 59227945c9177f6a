"""Fluent schema builder.

Tables are described in code instead of being derived from annotated
business types:

    >>> orders = (
    ...     table("Order", title="Orders")
    ...     .primary_key("OrderId")
    ...     .column("Number", DataType.STRING, Requirement.REQUIRED)
    ...     .reference("CustomerId", "Customer")
    ...     .build()
    ... )
    >>> orders.primary_key
    'OrderId'

The output is a plain :class:`~recordkit.core.schema.TableSchema`, the same
shape a catalog reader or the schema exchange models produce.
"""

from __future__ import annotations

from typing import Any

from recordkit.core.enums import DataType, ReferenceType, Requirement
from recordkit.core.errors import SchemaError
from recordkit.core.registry import SchemaRegistry, get_registry
from recordkit.core.schema import (
    ColumnSchema,
    IndexSchema,
    OptionSchema,
    RelationSchema,
    Schema,
    TableSchema,
)


class TableBuilder:
    """Accumulates columns and indexes for one table."""

    def __init__(self, name: str, *, title: str = "", description: str = ""):
        if not name or not name.strip():
            raise SchemaError("Table name must not be empty")
        self._table = TableSchema(name=name.strip(), title=title, description=description)
        self._relations: list[RelationSchema] = []

    def column(
        self,
        name: str,
        data_type: DataType = DataType.STRING,
        requirement: Requirement = Requirement.NONE,
        *,
        title: str = "",
        description: str = "",
        foreign_table: str | None = None,
        default: Any = None,
        pattern: str | None = None,
        length: int = -1,
        options: dict[int, str] | None = None,
    ) -> TableBuilder:
        if not name or not name.strip():
            raise SchemaError("Column name must not be empty", name=self._table.name)
        if self._table.get_column_schema(name) is not None:
            raise SchemaError(
                f"Double columns with name '{name}'", name=name, data_type=data_type
            ).with_context(table_name=self._table.name)
        option_set = [OptionSchema(value, text) for value, text in (options or {}).items()]
        if option_set and data_type == DataType.STRING:
            data_type = DataType.OPTION_SET
        self._table.columns.append(
            ColumnSchema(
                name=name.strip(),
                data_type=data_type,
                title=title or name.strip(),
                description=description,
                requirement=requirement,
                foreign_table=foreign_table,
                default_value=default,
                pattern=pattern,
                length=length,
                order=len(self._table.columns),
                option_set=option_set,
                table_name=self._table.name,
            )
        )
        return self

    def primary_key(self, name: str, data_type: DataType = DataType.INT64) -> TableBuilder:
        self.column(name, data_type, Requirement.PRIMARY_KEY)
        self._table.primary_key = name
        return self

    def parent_key(self, name: str, data_type: DataType = DataType.INT64) -> TableBuilder:
        """Self reference used by hierarchical tables."""
        self.reference(name, self._table.name, data_type)
        self._table.parent_key = name
        return self

    def reference(
        self,
        name: str,
        foreign_table: str,
        data_type: DataType = DataType.INT64,
        *,
        required: bool = False,
        on_delete: ReferenceType = ReferenceType.RESTRICT,
    ) -> TableBuilder:
        requirement = Requirement.REQUIRED_FOREIGN_KEY if required else Requirement.FOREIGN_KEY
        self.column(name, data_type, requirement, foreign_table=foreign_table)
        self._relations.append(
            RelationSchema(
                name=f"FK_{self._table.name}_{name}",
                from_table=self._table.name,
                to_table=foreign_table,
                column_name=name,
                delete=on_delete,
            )
        )
        return self

    def index(self, name: str, *columns: str, unique: bool = False) -> TableBuilder:
        for column in columns:
            if self._table.get_column_schema(column) is None:
                raise SchemaError(f"Column {column} not found", name=column)
        self._table.indexes.append(IndexSchema(name, list(columns), unique))
        return self

    def view_format(self, template: str) -> TableBuilder:
        self._table.view_format = template
        return self

    def collection_title(self, title: str) -> TableBuilder:
        self._table.collection_title = title
        return self

    @property
    def relations(self) -> list[RelationSchema]:
        return list(self._relations)

    def build(self) -> TableSchema:
        return self._table

    def register(self, registry: SchemaRegistry | None = None) -> TableSchema:
        """Build and store the table in ``registry`` (default registry if None)."""
        return get_registry(registry).set_table(self.build())


def table(name: str, *, title: str = "", description: str = "") -> TableBuilder:
    """Start describing a table."""
    return TableBuilder(name, title=title, description=description)


def schema(name: str, *builders: TableBuilder, title: str = "") -> Schema:
    """Assemble built tables and their relations into a sorted Schema."""
    result = Schema(name=name, title=title)
    for builder in builders:
        result.add_table(builder.build())
        result.relations.extend(builder.relations)
    result.sort()
    return result


__all__ = [
    "TableBuilder",
    "table",
    "schema",
]
