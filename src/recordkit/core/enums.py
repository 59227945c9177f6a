"""
Shared enums for the recordkit core.

Every component (schema, entity, grammar, query) agrees on these values.
Numeric values are part of the schema exchange shape and must not change.

STDLIB ONLY - NO PYDANTIC.
"""

from enum import Enum, IntEnum, IntFlag


class DataType(IntEnum):
    """
    Closed set of column data types.

    The integer values are stable: they travel in the schema exchange shape
    and are stored by external catalogs.
    """

    STRING = 0
    BINARY = 1
    BYTE = 2
    BOOLEAN = 3
    CURRENCY = 4
    DATE = 5
    DATETIME = 6
    DECIMAL = 7
    DOUBLE = 8
    GUID = 9
    INT16 = 10
    INT32 = 11
    INT64 = 12
    TIME = 17

    # Composite values
    OPTION_SET = 90
    REFERENCE = 91
    ARRAY = 92

    UNKNOWN = 99


class Requirement(IntFlag):
    """
    Column requirement flags.

    Composite members combine the base flags:
    SYSTEM_REQUIRED = RECOMMENDED | REQUIRED | NOT_NULL,
    REQUIRED_FOREIGN_KEY = SYSTEM_REQUIRED | FOREIGN_KEY,
    PRIMARY_KEY = every base flag.
    """

    NONE = 0
    RECOMMENDED = 1
    REQUIRED = 2
    UNIQUE_KEY = 4
    READ_ONLY = 8
    NOT_NULL = 16
    FOREIGN_KEY = 32

    SYSTEM_REQUIRED = 19
    REQUIRED_FOREIGN_KEY = 51
    PRIMARY_KEY = 63


class EntityState(str, Enum):
    """Change-tracking state of an entity."""

    ACTUAL = "actual"      # matches the data store
    CREATED = "created"    # never stored
    MODIFIED = "modified"  # stored, changed locally


class ReferenceType(IntEnum):
    """Referential action of a relation (ON UPDATE / ON DELETE)."""

    NONE = 0
    CASCADE = 1
    RESTRICT = 2
    SET_NULL = 3
    SET_DEFAULT = 4


class ConditionOperator(IntEnum):
    """Comparison operator of a query condition."""

    EQUAL = 0
    NOT_EQUAL = 1
    GREATER_THAN = 2
    LESS_THAN = 3
    GREATER_EQUAL = 4
    LESS_EQUAL = 5
    LIKE = 6
    NOT_LIKE = 7
    NULL = 12
    NOT_NULL = 13


class LogicalOperator(str, Enum):
    """Connective joining the members of one filter level."""

    AND = "and"
    OR = "or"


class JoinOperator(str, Enum):
    """Join kind of a single-hop query link."""

    INNER = "inner"
    LEFT_OUTER = "left_outer"
    NATURAL = "natural"


class OrderType(str, Enum):
    """Sort direction."""

    ASCENDING = "asc"
    DESCENDING = "desc"


__all__ = [
    "DataType",
    "Requirement",
    "EntityState",
    "ReferenceType",
    "ConditionOperator",
    "LogicalOperator",
    "JoinOperator",
    "OrderType",
]
