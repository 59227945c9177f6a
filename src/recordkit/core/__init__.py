"""Recordkit Core -- schema-driven entities, text grammar and query model.

Manifesto:
    Applications that talk to many stores (SQL dialects, REST APIs, local
    files) need one record shape that every connector understands. The core
    supplies it without doing any I/O: connectors plug in through Protocols.

    - **Schema-aware, schema-optional:** entities validate when a table is bound
    - **Explicit registry:** a ``SchemaRegistry`` value, injectable everywhere
    - **Lossy by contract:** the grammar drops empties and infers types

Architecture::

    Layer 1 -- Type System & Errors
        enums.py           DataType, Requirement, EntityState, query enums
        errors.py          RecordkitError hierarchy
        logging.py         structlog configuration
        settings.py        RecordkitSettings (pydantic-settings)
        values.py          Value formatting, parsing and coercion

    Layer 2 -- Schema
        schema.py          Table/column/index/relation metadata, type mapping
        registry.py        SchemaRegistry (table cache, key inference)
        builder.py         table(name).column(...) builder API
        exchange.py        Pydantic exchange models (JSON)

    Layer 3 -- Records
        entity.py          Entity, EntityReference, OptionSetValue
        collection.py      KeyedCollection (observable, deletion tracking)
        entity_collection.py  EntityCollection (change partition)
        merge.py           Field-level merge helpers
        records.py         Dataclass synthesis from shapes
        grammar.py         Brace-delimited text codec

    Layer 4 -- Access
        query.py           Query/Filter/Condition tree, OData compiler
        odata.py           OData query-string parser
        connector.py       Connector Protocols, read_entity, DataProvider
        memory.py          In-process connector
        recordset.py       Typed record sets committed as entity sets
"""

from recordkit.core.enums import (
    ConditionOperator,
    DataType,
    EntityState,
    JoinOperator,
    LogicalOperator,
    OrderType,
    ReferenceType,
    Requirement,
)
from recordkit.core.errors import (
    ConfigError,
    DataError,
    DataSourceNotFoundError,
    ErrorCategory,
    ErrorContext,
    ParseError,
    RecordkitError,
    RequiredValueError,
    SchemaError,
    TypeMismatchError,
    ValidationError,
    categorize_error,
)
from recordkit.core.logging import configure_logging, get_logger
from recordkit.core.settings import RecordkitSettings, clear_settings_cache, get_settings
from recordkit.core.schema import (
    ColumnSchema,
    IndexSchema,
    OptionSchema,
    RelationSchema,
    Schema,
    TableSchema,
    data_type_of,
    is_equal_types,
    is_value_of_type,
    split_table_name,
    sql_type_to_data_type,
)
from recordkit.core.registry import SchemaRegistry, get_registry, schema_registry
from recordkit.core.builder import TableBuilder, table
from recordkit.core.entity import Entity, EntityReference, FormattedValue, OptionSetValue
from recordkit.core.collection import ChangeAction, KeyedCollection
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.grammar import (
    dumps_collection,
    dumps_entity,
    loads_collection,
    loads_entity,
    parse_collection,
    parse_entity,
)
from recordkit.core.query import Condition, Filter, Link, Order, PagingInfo, Query
from recordkit.core.odata import ODataQueryParser
from recordkit.core.connector import (
    CrudData,
    DataProvider,
    DesignData,
    EntitySet,
    ReadonlyData,
    TransactedData,
    data_provider,
    read_entity,
)
from recordkit.core.memory import MemoryConnector
from recordkit.core.recordset import RecordCollection, RecordSet
from recordkit.core.exchange import SchemaModel, dumps_schema, loads_schema

__all__ = [
    # enums
    "ConditionOperator",
    "DataType",
    "EntityState",
    "JoinOperator",
    "LogicalOperator",
    "OrderType",
    "ReferenceType",
    "Requirement",
    # errors
    "ConfigError",
    "DataError",
    "DataSourceNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "ParseError",
    "RecordkitError",
    "RequiredValueError",
    "SchemaError",
    "TypeMismatchError",
    "ValidationError",
    "categorize_error",
    # logging / settings
    "configure_logging",
    "get_logger",
    "RecordkitSettings",
    "clear_settings_cache",
    "get_settings",
    # schema
    "ColumnSchema",
    "IndexSchema",
    "OptionSchema",
    "RelationSchema",
    "Schema",
    "TableSchema",
    "data_type_of",
    "is_equal_types",
    "is_value_of_type",
    "split_table_name",
    "sql_type_to_data_type",
    "SchemaRegistry",
    "get_registry",
    "schema_registry",
    "TableBuilder",
    "table",
    # records
    "Entity",
    "EntityReference",
    "FormattedValue",
    "OptionSetValue",
    "ChangeAction",
    "KeyedCollection",
    "EntityCollection",
    # grammar
    "dumps_collection",
    "dumps_entity",
    "loads_collection",
    "loads_entity",
    "parse_collection",
    "parse_entity",
    # query
    "Condition",
    "Filter",
    "Link",
    "Order",
    "PagingInfo",
    "Query",
    "ODataQueryParser",
    # access
    "CrudData",
    "DataProvider",
    "DesignData",
    "EntitySet",
    "ReadonlyData",
    "TransactedData",
    "data_provider",
    "read_entity",
    "MemoryConnector",
    "RecordCollection",
    "RecordSet",
    "SchemaModel",
    "dumps_schema",
    "loads_schema",
]
