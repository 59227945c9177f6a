"""Tests for the connector contract helpers."""

import pytest

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
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.enums import EntityState
from recordkit.core.errors import DataSourceNotFoundError, SchemaError
from recordkit.core.memory import MemoryConnector


class TestReadEntity:
    """Test turning raw rows into Actual entities."""

    def test_reads_row(self, customer_table, registry):
        entity = read_entity(customer_table, [("Id", 1), ("name", "Ann"), ("Age", None)], registry=registry)
        assert entity.items == {"Id": 1, "Name": "Ann", "Age": None}
        assert entity.state == EntityState.ACTUAL
        assert entity.schema is customer_table
        assert entity.old_items == {}

    def test_accepts_mapping_items(self, customer_table):
        entity = read_entity(customer_table, {"Id": 2, "Name": "Bob"}.items())
        assert entity.entity_id == "2"

    def test_duplicate_column(self, customer_table):
        with pytest.raises(SchemaError, match="Double columns with name 'Id'") as info:
            read_entity(customer_table, [("Id", 1), ("Id", 2)])
        assert info.value.context.table_name == "Customer"

    def test_unknown_column(self, customer_table):
        with pytest.raises(SchemaError, match="Column Phone not found") as info:
            read_entity(customer_table, [("Phone", "555")])
        assert info.value.context.column_name == "Phone"

    def test_type_mismatch(self, customer_table):
        with pytest.raises(SchemaError, match="Mismatch data type for column Age") as info:
            read_entity(customer_table, [("Age", "old")])
        assert info.value.context.data_type == "INT32"


class TestProtocols:
    """Test structural conformance."""

    def test_memory_connector_conforms(self):
        data = MemoryConnector()
        assert isinstance(data, ReadonlyData)
        assert isinstance(data, CrudData)
        assert isinstance(data, TransactedData)
        assert isinstance(data, DesignData)

    def test_entity_collection_is_entity_set(self):
        assert isinstance(EntityCollection(), EntitySet)

    def test_plain_object_does_not_conform(self):
        assert not isinstance(object(), ReadonlyData)


class TestDataProvider:
    """Test named data source lookup."""

    def test_register_and_get(self):
        provider = DataProvider()
        data = MemoryConnector()
        provider.register("Main", data)
        assert provider.get("main") is data
        assert "MAIN" in provider
        assert provider.names() == ["main"]

    def test_missing_source(self):
        with pytest.raises(DataSourceNotFoundError) as info:
            DataProvider().get("archive")
        assert info.value.source_name == "archive"

    def test_unregister(self):
        provider = DataProvider()
        provider.register("main", MemoryConnector())
        provider.unregister("MAIN")
        provider.unregister("never-registered")
        assert "main" not in provider

    def test_global_provider(self):
        data_provider.register("test-source", MemoryConnector())
        try:
            assert "test-source" in data_provider
        finally:
            data_provider.unregister("test-source")
