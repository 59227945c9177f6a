"""
Query model - a dialect-neutral filter/order/link/paging expression tree.

A :class:`Query` is built by the caller and handed to a connector, which
compiles it to its own dialect. The only compiler in this package is
:meth:`Query.to_odata`.

Manifesto:
    The tree is metadata only. Links describe single-hop joins but nothing
    here executes them.

Architecture:
    ::

        Query
          ├── columns   [str]
          ├── criteria  Filter(AND|OR)
          │               ├── conditions [Condition(attribute, operator, value)]
          │               └── filters    [Filter ...]   (nested, parenthesized)
          ├── orders    [Order(attribute, ASC|DESC)]
          ├── links     [Link(from, to, from_item, to_item, join)]
          └── top / skip / page_info

    OData segments are emitted in a fixed order and joined by ``&``::

        $select  $filter  $expand  $orderby  $top  $skip

    Conditions inside one filter are joined by the bare ``and``/``or`` token
    with no spaces around it (``Age gt 18andAge lt 65``). Servers that
    consume this output rely on that adjacency.

Examples:
    >>> q = Query("Customer")
    >>> q.criteria = Filter()
    >>> q.criteria.add_condition("Age", ConditionOperator.GREATER_THAN, 18)
    >>> q.criteria.add_condition("Age", ConditionOperator.LESS_THAN, 65)
    >>> q.add_order("Name")
    >>> q.top = 10
    >>> q.to_odata()
    '?$filter=Age gt 18andAge lt 65&$orderby=Name&$top=10'

Tags:
    query, odata, filter, paging, recordkit
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from recordkit.core.enums import ConditionOperator, JoinOperator, LogicalOperator, OrderType
from recordkit.core.values import ISO_SECONDS, canonical_number

_COMPARISONS = {
    ConditionOperator.EQUAL: "eq",
    ConditionOperator.NOT_EQUAL: "ne",
    ConditionOperator.GREATER_THAN: "gt",
    ConditionOperator.GREATER_EQUAL: "ge",
    ConditionOperator.LESS_THAN: "lt",
    ConditionOperator.LESS_EQUAL: "le",
}


# =============================================================================
# EXPRESSION TREE
# =============================================================================


@dataclass
class Condition:
    attribute: str
    operator: ConditionOperator = ConditionOperator.EQUAL
    value: Any = None


@dataclass
class Filter:
    """Conjunction or disjunction of conditions and nested filters."""

    operator: LogicalOperator = LogicalOperator.AND
    conditions: list[Condition] = field(default_factory=list)
    filters: list[Filter] = field(default_factory=list)

    def add_condition(
        self,
        attribute: str | Condition,
        operator: ConditionOperator = ConditionOperator.EQUAL,
        value: Any = None,
    ) -> None:
        if isinstance(attribute, Condition):
            self.conditions.append(attribute)
        else:
            self.conditions.append(Condition(attribute, operator, value))

    def add_filter(self, child: Filter | LogicalOperator = LogicalOperator.AND) -> Filter:
        """Append a nested filter (given, or a new one with the operator)."""
        if not isinstance(child, Filter):
            child = Filter(child)
        self.filters.append(child)
        return child

    def __bool__(self) -> bool:
        return bool(self.conditions or self.filters)


@dataclass
class Order:
    attribute: str
    order_type: OrderType = OrderType.ASCENDING


@dataclass
class Link:
    """Single-hop join descriptor. Not executed, only described."""

    from_entity: str
    to_entity: str
    from_item: str
    to_item: str
    join: JoinOperator = JoinOperator.INNER
    columns: list[str] = field(default_factory=list)
    alias: str | None = None
    criteria: Filter | None = None


@dataclass
class PagingInfo:
    count: int = 0
    page_number: int = 0
    paging_cookie: str | None = None
    return_total_count: bool = False


# =============================================================================
# QUERY
# =============================================================================


@dataclass
class Query:
    entity_name: str = ""
    columns: list[str] = field(default_factory=list)
    criteria: Filter | None = None
    distinct: bool = False
    no_lock: bool = False
    orders: list[Order] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    page_info: PagingInfo | None = None
    top: int = 0
    skip: int = 0
    tag: Any = None

    def add_link(
        self,
        to_entity: str,
        from_item: str,
        to_item: str,
        join: JoinOperator = JoinOperator.INNER,
    ) -> Link:
        link = Link(self.entity_name, to_entity, from_item, to_item, join)
        self.links.append(link)
        return link

    def add_order(self, attribute: str, order_type: OrderType = OrderType.ASCENDING) -> None:
        self.orders.append(Order(attribute, order_type))

    # -- paging ------------------------------------------------------------------

    def effective_top(self) -> int:
        if self.top > 0:
            return self.top
        if self.page_info is not None and self.page_info.count > 0:
            return self.page_info.count
        return 0

    def effective_skip(self) -> int:
        if self.skip > 0:
            return self.skip
        info = self.page_info
        if info is not None and info.page_number > 1:
            return info.count * (info.page_number - 1)
        return 0

    # -- OData -------------------------------------------------------------------

    def to_odata(self, url: str = "") -> str:
        """Append the OData query string for this query to ``url``."""
        segments = []
        if self.columns:
            segments.append("$select=" + ",".join(self.columns))
        if self.criteria:
            text = filter_text(self.criteria)
            if text:
                segments.append("$filter=" + text)
        if self.links:
            segments.append("$expand=" + ",".join(self._expand_text(link) for link in self.links))
        if self.orders:
            segments.append("$orderby=" + ",".join(
                order.attribute + (" desc" if order.order_type == OrderType.DESCENDING else "")
                for order in self.orders
            ))
        top = self.effective_top()
        if top > 0:
            segments.append(f"$top={top}")
        skip = self.effective_skip()
        if skip > 0:
            segments.append(f"$skip={skip}")

        query = "&".join(segments)
        return url + ("?" + query if query else "")

    def _expand_text(self, link: Link) -> str:
        prefix = "" if link.from_entity == self.entity_name else link.from_entity + "/"
        return f"{prefix}{link.to_entity}.{link.to_item}"

    @classmethod
    def from_odata(cls, schema, table: str, text: str) -> Query:
        """Build a query for ``table`` from an OData query string."""
        from recordkit.core.odata import ODataQueryParser

        return ODataQueryParser(schema, table, text).to_query()


def odata_value(value: Any) -> str:
    """OData literal for a condition value."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.strftime(ISO_SECONDS)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        return canonical_number(float(value))
    return "null"


def condition_text(condition: Condition) -> str:
    name = condition.attribute
    operator = condition.operator
    if operator in _COMPARISONS:
        return f"{name} {_COMPARISONS[operator]} {odata_value(condition.value)}"
    if operator == ConditionOperator.LIKE:
        return f"contains({name},{odata_value(condition.value)})"
    if operator == ConditionOperator.NOT_LIKE:
        return f"not contains({name},{odata_value(condition.value)})"
    if operator == ConditionOperator.NULL:
        return f"{name} eq null"
    if operator == ConditionOperator.NOT_NULL:
        return f"{name} ne null"
    raise ValueError(f"Unsupported condition operator: {operator!r}")


def filter_text(flt: Filter) -> str:
    """Body of ``$filter``; nested filters are parenthesized."""
    parts = [condition_text(condition) for condition in flt.conditions]
    for child in flt.filters:
        text = filter_text(child)
        if text:
            parts.append("(" + text + ")")
    return flt.operator.value.join(parts)


__all__ = [
    "Condition",
    "Filter",
    "Order",
    "Link",
    "PagingInfo",
    "Query",
    "odata_value",
    "condition_text",
    "filter_text",
]
