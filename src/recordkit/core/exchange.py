"""Schema exchange models.

Pydantic v2 models for moving a :class:`~recordkit.core.schema.Schema`
across a process boundary (HTTP, files, other languages).

Key Concepts:
    SchemaModel: tables plus relations, ``from_schema()`` / ``to_schema()``.
    TableModel: name, title, primary/parent key, columns, indexes.
    ColumnModel: name, title, data type, requirement bitset, foreign table,
        option set.

Architecture Decisions:
    - Pydantic (not dataclass): validation of foreign JSON and
      ``model_dump_json()`` / ``model_validate_json()`` for free.
    - Enums travel by value (``data_type=12``, ``requirement=63``) so the
      payload stays language neutral.

Tags:
    schema, exchange, pydantic, json, recordkit
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from recordkit.core.enums import DataType, ReferenceType, Requirement
from recordkit.core.schema import (
    ColumnSchema,
    IndexSchema,
    OptionSchema,
    RelationSchema,
    Schema,
    TableSchema,
)


class OptionModel(BaseModel):
    value: int
    title: str = ""


class ColumnModel(BaseModel):
    name: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    data_type: DataType = DataType.STRING
    requirement: int = Field(default=0, ge=0, description="Requirement bitset")
    foreign_table: str | None = None
    default_value: Any = None
    pattern: str | None = None
    length: int = -1
    option_set: list[OptionModel] = Field(default_factory=list)

    @classmethod
    def from_column(cls, column: ColumnSchema) -> ColumnModel:
        return cls(
            name=column.name,
            title=column.title,
            description=column.description,
            data_type=column.data_type,
            requirement=int(column.requirement),
            foreign_table=column.foreign_table,
            default_value=column.default_value,
            pattern=column.pattern,
            length=column.length,
            option_set=[OptionModel(value=o.value, title=o.title) for o in column.option_set],
        )

    def to_column(self, order: int = -1) -> ColumnSchema:
        return ColumnSchema(
            name=self.name,
            data_type=DataType(self.data_type),
            title=self.title,
            description=self.description,
            requirement=Requirement(self.requirement),
            foreign_table=self.foreign_table,
            default_value=self.default_value,
            pattern=self.pattern,
            length=self.length,
            order=order,
            option_set=[OptionSchema(o.value, o.title) for o in self.option_set],
        )


class IndexModel(BaseModel):
    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False


class TableModel(BaseModel):
    name: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    primary_key: str = ""
    parent_key: str = ""
    view_format: str = ""
    columns: list[ColumnModel] = Field(default_factory=list)
    indexes: list[IndexModel] = Field(default_factory=list)

    @classmethod
    def from_table(cls, table: TableSchema) -> TableModel:
        return cls(
            name=table.name,
            title=table.title,
            description=table.description,
            primary_key=table.primary_key,
            parent_key=table.parent_key,
            view_format=table.view_format,
            columns=[ColumnModel.from_column(c) for c in table.columns],
            indexes=[IndexModel(name=i.name, columns=list(i.columns), unique=i.unique) for i in table.indexes],
        )

    def to_table(self) -> TableSchema:
        return TableSchema(
            name=self.name,
            title=self.title,
            description=self.description,
            primary_key=self.primary_key,
            parent_key=self.parent_key,
            view_format=self.view_format,
            columns=[c.to_column(order) for order, c in enumerate(self.columns)],
            indexes=[IndexSchema(i.name, list(i.columns), i.unique) for i in self.indexes],
        )


class RelationModel(BaseModel):
    name: str
    from_table: str = ""
    to_table: str = ""
    column_name: str = ""
    update: ReferenceType = ReferenceType.NONE
    delete: ReferenceType = ReferenceType.RESTRICT
    share: ReferenceType = ReferenceType.NONE


class SchemaModel(BaseModel):
    name: str = ""
    title: str = ""
    description: str = ""
    created_time: datetime | None = None
    tables: list[TableModel] = Field(default_factory=list)
    relations: list[RelationModel] = Field(default_factory=list)

    @classmethod
    def from_schema(cls, schema: Schema) -> SchemaModel:
        return cls(
            name=schema.name,
            title=schema.title,
            description=schema.description,
            created_time=schema.created_time,
            tables=[TableModel.from_table(t) for t in schema.tables],
            relations=[
                RelationModel(
                    name=r.name,
                    from_table=r.from_table,
                    to_table=r.to_table,
                    column_name=r.column_name,
                    update=r.update,
                    delete=r.delete,
                    share=r.share,
                )
                for r in schema.relations
            ],
        )

    def to_schema(self) -> Schema:
        schema = Schema(
            name=self.name,
            title=self.title,
            description=self.description,
            tables=[t.to_table() for t in self.tables],
            relations=[
                RelationSchema(r.name, r.from_table, r.to_table, r.column_name, r.update, r.delete, r.share)
                for r in self.relations
            ],
        )
        if self.created_time is not None:
            schema.created_time = self.created_time
        return schema


def dumps_schema(schema: Schema, indent: int | None = None) -> str:
    return SchemaModel.from_schema(schema).model_dump_json(indent=indent)


def loads_schema(text: str) -> Schema:
    return SchemaModel.model_validate_json(text).to_schema()


__all__ = [
    "OptionModel",
    "ColumnModel",
    "IndexModel",
    "TableModel",
    "RelationModel",
    "SchemaModel",
    "dumps_schema",
    "loads_schema",
]
