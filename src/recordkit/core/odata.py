"""OData query-string parser.

Reads the subset of OData system query options that :meth:`Query.to_odata`
writes, validating names against a schema::

    $select=Name,Age            columns of the table
    $expand=Customer[.Column]   foreign key to Customer (default CustomerId)
    $orderby=Name [asc|desc]    comma separated
    $top=10  $skip=20           non-negative integers

``$filter`` is accepted and ignored. Any invalid option raises
:class:`~recordkit.core.errors.SchemaError`.
"""

from __future__ import annotations

from recordkit.core.enums import OrderType
from recordkit.core.errors import SchemaError
from recordkit.core.logging import get_logger
from recordkit.core.query import Link, Order, Query
from recordkit.core.schema import ColumnSchema, Schema

logger = get_logger(__name__)


class ODataQueryParser:
    """Validating parser for one table's OData query string."""

    def __init__(self, schema: Schema, table: str, text: str):
        name = table.strip(" (")
        table_schema = schema.get_table_by_name(name)
        if table_schema is None:
            raise SchemaError(f"Table {table} not found", name=table)
        self.schema = schema
        self.table = table_schema
        self.options = self._split_options(text or "")

    @staticmethod
    def _split_options(text: str) -> dict[str, str]:
        options: dict[str, str] = {}
        text = text.strip().lstrip("?")
        for part in text.split("&"):
            if not part.strip():
                continue
            key, sep, value = part.partition("=")
            if not sep:
                raise SchemaError(f"Incorrect query option {part!r}", name=part)
            options[key.strip().lstrip("$").lower()] = value.strip()
        return options

    def _column(self, name: str) -> ColumnSchema:
        column = self.table.get_column_schema(name)
        if column is None:
            raise SchemaError(f"Column {name} not found", name=name)
        return column

    # -- options -------------------------------------------------------------------

    def parse_select(self) -> list[str]:
        text = self.options.get("select")
        if not text:
            return []
        return [self._column(part.strip()).name for part in text.split(",")]

    def parse_expand(self) -> list[tuple[str, ColumnSchema]]:
        """``(table, foreign key column)`` pairs."""
        text = self.options.get("expand")
        if not text:
            return []
        result = []
        for part in text.split(","):
            table, _, column_name = part.strip().replace(".", "/").partition("/")
            table = table.strip()
            if not table:
                raise SchemaError("Incorrect expand", name=part)
            target = self.schema.get_table_by_name(table)
            if target is None:
                raise SchemaError(f"Table {table} not found", name=table)
            column = self._column(column_name.strip() or f"{target.name}Id")
            if (column.foreign_table or "").lower() != target.name.lower():
                raise SchemaError(
                    f"Column {column.name} is not a foreign key to {target.name}",
                    name=column.name,
                    data_type=column.data_type,
                )
            result.append((target.name, column))
        return result

    def parse_order_by(self) -> list[Order]:
        text = self.options.get("orderby")
        if not text:
            return []
        orders = []
        for part in text.split(","):
            words = part.split()
            if not words or len(words) > 2:
                raise SchemaError("Incorrect orderBy", name=text)
            order_type = OrderType.ASCENDING
            if len(words) == 2:
                try:
                    order_type = OrderType(words[1].lower())
                except ValueError:
                    raise SchemaError("Incorrect orderBy", name=text) from None
            orders.append(Order(self._column(words[0]).name, order_type))
        return orders

    def _parse_count(self, key: str) -> int | None:
        text = self.options.get(key)
        if text is None:
            return None
        try:
            value = int(text)
        except ValueError:
            raise SchemaError(f"Incorrect {key}", name=text) from None
        if value < 0:
            raise SchemaError(f"Incorrect {key}", name=text)
        return value

    def parse_top(self) -> int | None:
        return self._parse_count("top")

    def parse_skip(self) -> int | None:
        return self._parse_count("skip")

    # -- query -------------------------------------------------------------------

    def to_query(self) -> Query:
        query = Query(self.table.name)
        query.columns.extend(self.parse_select())
        for table, column in self.parse_expand():
            query.links.append(Link(self.table.name, table, column.name, column.name))
        query.orders.extend(self.parse_order_by())
        query.top = self.parse_top() or 0
        query.skip = self.parse_skip() or 0
        logger.debug("odata_parsed", table=self.table.name, options=sorted(self.options))
        return query


__all__ = ["ODataQueryParser"]
