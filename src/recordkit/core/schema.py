"""
Schema model - tables, columns, indexes, relations and type rules.

A ``TableSchema`` describes one logical entity: its columns, its primary and
parent key columns and a view-format template used to pick a display column.
Entities *reference* a table schema, they never own it, so one instance is
shared by every entity of that name in the process.

Manifesto:
    - **Metadata only:** No SQL, no I/O, just the shape of the data
    - **Shared, not copied:** Built once and cached in a SchemaRegistry
    - **Closed type system:** Every value maps to one DataType member

Architecture:
    ::

        Schema ──┬── TableSchema ──┬── ColumnSchema ── OptionSchema
                 │                 └── IndexSchema
                 └── RelationSchema

        is_equal_types(expected, actual)
            INT64 ⊇ INT32 ⊇ INT16, everything else exact

Examples:
    >>> table = TableSchema("Customer", columns=[ColumnSchema("Name")])
    >>> str(table)
    'TABLE [Customer:1]'
    >>> is_equal_types(DataType.INT64, DataType.INT32)
    True
    >>> is_equal_types(DataType.INT32, DataType.INT64)
    False

Guardrails:
    ❌ DON'T: Mutate a cached table's columns in place
    ✅ DO: Build a new TableSchema and replace it in the registry

Tags:
    schema, metadata, data-type, recordkit
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

from recordkit.core.enums import DataType, ReferenceType, Requirement

_INT16_RANGE = range(-(2**15), 2**15)
_INT32_RANGE = range(-(2**31), 2**31)

_VIEW_FORMAT = re.compile(r"\{%(.+?)%\}")


# =============================================================================
# COLUMN LEVEL
# =============================================================================


@dataclass
class OptionSchema:
    """One entry of an option-set catalog."""

    value: int
    title: str = ""

    def __str__(self) -> str:
        return f"{self.value}|{self.title}"

    @classmethod
    def parse(cls, text: str) -> OptionSchema | None:
        """Parse the ``value|title`` form."""
        value, _, title = text.partition("|")
        try:
            return cls(int(value.strip()), title)
        except ValueError:
            return None


@dataclass
class ColumnSchema:
    """
    Column metadata.

    ``length`` and ``order`` use -1 for "not set". ``pattern`` is an optional
    regular expression that string values must match.
    """

    name: str
    data_type: DataType = DataType.STRING
    title: str = ""
    description: str = ""
    requirement: Requirement = Requirement.NONE
    foreign_table: str | None = None
    default_value: Any = None
    pattern: str | None = None
    length: int = -1
    order: int = -1
    option_set: list[OptionSchema] = field(default_factory=list)
    table_name: str = ""

    @property
    def is_required(self) -> bool:
        return bool(self.requirement & Requirement.REQUIRED)

    @property
    def is_foreign_key(self) -> bool:
        return bool(self.requirement & Requirement.FOREIGN_KEY)

    def accepts(self, value: Any) -> bool:
        """Whether ``value`` may be stored in this column."""
        if not is_value_of_type(self.data_type, value):
            return False
        if self.pattern and isinstance(value, str):
            return re.fullmatch(self.pattern, value) is not None
        return True

    def option_title(self, value: int) -> str | None:
        for option in self.option_set:
            if option.value == value:
                return option.title
        return None

    def __str__(self) -> str:
        return f"COLUMN [{self.name}:{self.data_type.name}]"


@dataclass
class IndexSchema:
    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False


@dataclass
class RelationSchema:
    """One-to-many relation: ``from_table.column_name`` references ``to_table``."""

    name: str
    from_table: str = ""
    to_table: str = ""
    column_name: str = ""
    update: ReferenceType = ReferenceType.NONE
    delete: ReferenceType = ReferenceType.RESTRICT
    share: ReferenceType = ReferenceType.NONE


# =============================================================================
# TABLE / SCHEMA
# =============================================================================


@dataclass(eq=False)
class TableSchema:
    """
    Table metadata.

    ``primary_key`` and ``parent_key`` start empty when the source catalog
    does not declare them. A SchemaRegistry resolves them on first use and
    writes the answer back here; from then on they never change.
    """

    name: str
    title: str = ""
    description: str = ""
    collection_title: str = ""
    primary_key: str = ""
    parent_key: str = ""
    view_format: str = ""
    columns: list[ColumnSchema] = field(default_factory=list)
    indexes: list[IndexSchema] = field(default_factory=list)

    def __post_init__(self) -> None:
        for column in self.columns:
            if not column.table_name:
                column.table_name = self.name

    def get_column_schema(self, name: str) -> ColumnSchema | None:
        """Find a column by exact name, then by case-insensitive name."""
        for column in self.columns:
            if column.name == name:
                return column
        lowered = name.lower()
        for column in self.columns:
            if column.name.lower() == lowered:
                return column
        return None

    def get_primary_column(self) -> ColumnSchema | None:
        """
        Pick the display column.

        The first column named by a ``{%column%}`` placeholder of the view
        format wins; otherwise the first String column.
        """
        names = _VIEW_FORMAT.findall(self.view_format or "")
        primary = None
        for column in self.columns:
            if column.name in names or column.name.lower() in names:
                return column
            if primary is None and column.data_type == DataType.STRING:
                primary = column
        return primary

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnSchema]:
        return iter(self.columns)

    def __str__(self) -> str:
        return f"TABLE [{self.name}:{len(self.columns)}]"


@dataclass(eq=False)
class Schema:
    """A named set of tables and the relations between them."""

    name: str = ""
    title: str = ""
    description: str = ""
    created_time: datetime = field(default_factory=datetime.now)
    tables: list[TableSchema] = field(default_factory=list)
    relations: list[RelationSchema] = field(default_factory=list)

    def get_table_by_name(self, name: str) -> TableSchema | None:
        """Case-insensitive table lookup."""
        lowered = name.lower()
        for table in self.tables:
            if table.name.lower() == lowered:
                return table
        return None

    def add_table(self, table: TableSchema) -> TableSchema:
        """Add or replace a table (matched case-insensitively)."""
        lowered = table.name.lower()
        for i, existing in enumerate(self.tables):
            if existing.name.lower() == lowered:
                self.tables[i] = table
                return table
        self.tables.append(table)
        return table

    def sort(self) -> None:
        """
        Order tables so that every foreign-key target precedes its referrers.

        Tables caught in a reference cycle keep their relative order after
        all resolvable tables.
        """
        known = {table.name.lower() for table in self.tables}
        depends: dict[str, set[str]] = {}
        for table in self.tables:
            own = table.name.lower()
            targets = set()
            for column in table.columns:
                if column.is_foreign_key and column.foreign_table:
                    for target in _foreign_tables(column.foreign_table):
                        if target in known and target != own:
                            targets.add(target)
            depends[own] = targets

        ordered: list[TableSchema] = []
        placed: set[str] = set()
        pending = list(self.tables)
        while pending:
            ready = [t for t in pending if depends[t.name.lower()] <= placed]
            if not ready:
                ordered.extend(pending)
                break
            for table in ready:
                ordered.append(table)
                placed.add(table.name.lower())
            pending = [t for t in pending if t.name.lower() not in placed]
        self.tables = ordered

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[TableSchema]:
        return iter(self.tables)

    def __str__(self) -> str:
        return f"SCHEMA [{self.name}:{len(self.tables)}]"


def _foreign_tables(text: str) -> list[str]:
    """A foreign table is a single name or a ``[a,b;c]`` list of names."""
    text = text.strip().lower()
    if text.startswith("["):
        return [s.strip() for s in re.split(r"[\[\],;]", text) if s.strip()]
    return [text] if text else []


def split_table_name(name: str) -> tuple[str, str]:
    """Split ``schema.table`` into ``("schema", "table")``."""
    owner, dot, table = name.partition(".")
    if not dot:
        return "", name.strip()
    return owner.strip(), table.strip()


# =============================================================================
# TYPE RULES
# =============================================================================


def is_equal_types(expected: DataType, actual: DataType) -> bool:
    """Whether a value of type ``actual`` fits a column of type ``expected``."""
    if expected == actual:
        return True
    if expected == DataType.INT64:
        return actual in (DataType.INT32, DataType.INT16)
    if expected == DataType.INT32:
        return actual == DataType.INT16
    return False


def data_type_of(value: Any) -> DataType:
    """
    Classify a Python value.

    Integers map to the narrowest of INT16/INT32/INT64 that holds them.
    Objects may declare their own type through a ``__data_type__`` class
    attribute (option sets, references, entity collections).
    """
    declared = getattr(type(value), "__data_type__", None)
    if declared is not None:
        return declared
    if isinstance(value, (bytes, bytearray)):
        return DataType.BINARY
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, Enum) and isinstance(value, int):
        return DataType.INT32
    if isinstance(value, int):
        if value in _INT16_RANGE:
            return DataType.INT16
        if value in _INT32_RANGE:
            return DataType.INT32
        return DataType.INT64
    if isinstance(value, float):
        return DataType.DOUBLE
    if isinstance(value, Decimal):
        return DataType.DECIMAL
    if isinstance(value, uuid.UUID):
        return DataType.GUID
    if isinstance(value, datetime):
        return DataType.DATETIME
    if isinstance(value, date):
        return DataType.DATE
    if isinstance(value, (time, timedelta)):
        return DataType.TIME
    if isinstance(value, str):
        return DataType.STRING
    return DataType.UNKNOWN


def is_value_of_type(data_type: DataType, value: Any) -> bool:
    """
    Value-level compatibility check used by schema-bound writes.

    ``None`` always fits. On top of :func:`is_equal_types` a Byte column
    takes integers 0..255, Currency takes floats and decimals, Date and
    DateTime take both ``date`` and ``datetime``.
    """
    if value is None:
        return True
    actual = data_type_of(value)
    if is_equal_types(data_type, actual):
        return True
    if data_type == DataType.BYTE:
        return actual == DataType.INT16 and 0 <= value <= 255
    if data_type == DataType.CURRENCY:
        return actual in (DataType.DOUBLE, DataType.DECIMAL)
    if data_type in (DataType.DATE, DataType.DATETIME):
        return actual in (DataType.DATE, DataType.DATETIME)
    return False


_PYTHON_TYPES: dict[DataType, type] = {
    DataType.STRING: str,
    DataType.BINARY: bytes,
    DataType.BYTE: int,
    DataType.BOOLEAN: bool,
    DataType.CURRENCY: float,
    DataType.DATE: date,
    DataType.DATETIME: datetime,
    DataType.DECIMAL: Decimal,
    DataType.DOUBLE: float,
    DataType.GUID: uuid.UUID,
    DataType.INT16: int,
    DataType.INT32: int,
    DataType.INT64: int,
    DataType.TIME: time,
}


def python_type_for(data_type: DataType) -> type:
    """Python type that stores values of ``data_type`` (``object`` if none)."""
    return _PYTHON_TYPES.get(data_type, object)


_SQL_TYPES: dict[str, DataType] = {
    "tinyint": DataType.BYTE,
    "smallint": DataType.INT16,
    "int": DataType.INT32,
    "integer": DataType.INT32,
    "bigint": DataType.INT64,
    "float": DataType.DOUBLE,
    "real": DataType.DOUBLE,
    "uniqueidentifier": DataType.GUID,
    "uuid": DataType.GUID,
    "bit": DataType.BOOLEAN,
    "boolean": DataType.BOOLEAN,
    "binary": DataType.BINARY,
    "varbinary": DataType.BINARY,
    "blob": DataType.BINARY,
    "char": DataType.STRING,
    "nchar": DataType.STRING,
    "varchar": DataType.STRING,
    "nvarchar": DataType.STRING,
    "text": DataType.STRING,
    "ntext": DataType.STRING,
    "decimal": DataType.DECIMAL,
    "numeric": DataType.DECIMAL,
    "money": DataType.CURRENCY,
    "smallmoney": DataType.CURRENCY,
    "datetime": DataType.DATE,
    "smalldatetime": DataType.DATE,
    "date": DataType.DATE,
    "time": DataType.TIME,
    "timestamp": DataType.TIME,
}


def sql_type_to_data_type(sql_type: str) -> DataType:
    """
    Map a catalog type name (``nvarchar(50)``, ``BIGINT``) to a DataType.

    Unrecognized names map to ``DataType.UNKNOWN``.
    """
    base = sql_type.strip().lower().split("(")[0].strip()
    return _SQL_TYPES.get(base, DataType.UNKNOWN)


__all__ = [
    "OptionSchema",
    "ColumnSchema",
    "IndexSchema",
    "RelationSchema",
    "TableSchema",
    "Schema",
    "split_table_name",
    "is_equal_types",
    "data_type_of",
    "is_value_of_type",
    "python_type_for",
    "sql_type_to_data_type",
]
