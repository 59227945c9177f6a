"""
Shared pytest fixtures for recordkit tests.

This module provides:
- Settings and record-cache cleanup for test isolation
- A fresh SchemaRegistry with a small Customer/Order/Category schema
- Sample entities in each state

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    def test_something(registry, customer):
        ...
"""

from typing import Generator

import pytest
import structlog

from recordkit.core import records
from recordkit.core.builder import table
from recordkit.core.entity import Entity
from recordkit.core.enums import DataType, Requirement
from recordkit.core.registry import SchemaRegistry, schema_registry
from recordkit.core.schema import ColumnSchema, TableSchema
from recordkit.core.settings import clear_settings_cache


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings() -> Generator[None, None, None]:
    """Reload settings for every test so env overrides do not leak."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def clean_default_registry() -> Generator[None, None, None]:
    """Keep the module-level registry empty between tests."""
    schema_registry.clear()
    yield
    schema_registry.clear()


@pytest.fixture(autouse=True)
def clean_logging() -> Generator[None, None, None]:
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def clean_records() -> Generator[None, None, None]:
    """Drop synthesized record classes between tests."""
    records.clear_cache()
    yield
    records.clear_cache()


# =============================================================================
# Schema Fixtures
# =============================================================================


@pytest.fixture
def customer_table() -> TableSchema:
    return (
        table("Customer", title="Customers")
        .primary_key("Id")
        .column("Name", DataType.STRING, Requirement.REQUIRED)
        .column("Age", DataType.INT32)
        .column("Email", DataType.STRING, pattern=r"[^@]+@[^@]+")
        .column("IsActive", DataType.BOOLEAN)
        .column("Birthday", DataType.DATETIME)
        .column("Status", options={1: "New", 2: "Regular"})
        .view_format("{%Name%}")
        .build()
    )


@pytest.fixture
def order_table() -> TableSchema:
    return (
        table("Order", title="Orders")
        .primary_key("OrderId")
        .column("Number", DataType.STRING, Requirement.REQUIRED)
        .column("Total", DataType.DOUBLE)
        .reference("CustomerId", "Customer")
        .build()
    )


@pytest.fixture
def category_table() -> TableSchema:
    """Hierarchical table whose keys are left for inference."""
    return TableSchema(
        "Category",
        columns=[
            ColumnSchema("Id", DataType.INT64),
            ColumnSchema("ParentId", DataType.INT64),
            ColumnSchema("Title"),
        ],
    )


@pytest.fixture
def registry(customer_table, order_table, category_table) -> SchemaRegistry:
    """A private registry with Customer, Order and Category."""
    return SchemaRegistry([customer_table, order_table, category_table])


# =============================================================================
# Entity Fixtures
# =============================================================================


@pytest.fixture
def customer(registry) -> Entity:
    """A new (CREATED) customer bound to the Customer table."""
    entity = Entity("Customer", registry=registry)
    entity["Id"] = 1
    entity["Name"] = "Ann"
    entity["Age"] = 42
    return entity


@pytest.fixture
def stored_customer(customer) -> Entity:
    """The same customer after it has been stored (ACTUAL)."""
    customer.actualization()
    return customer
