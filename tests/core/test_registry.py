"""Tests for recordkit.core.registry (table cache and key inference)."""

import uuid

from recordkit.core.registry import SchemaRegistry, get_registry, schema_registry
from recordkit.core.schema import Schema, TableSchema


class TestTableCache:
    """Test get/set/remove of cached tables."""

    def test_lookup_is_case_insensitive(self, registry, customer_table):
        assert registry.get_table("customer") is customer_table
        assert "CUSTOMER" in registry
        assert registry.get_table(None) is None
        assert registry.get_table("Missing") is None

    def test_set_replaces(self, registry):
        replacement = TableSchema("customer")
        registry.set_table(replacement)
        assert registry.get_table("Customer") is replacement
        assert len(registry) == 3

    def test_remove_and_list(self, registry):
        assert registry.list_tables() == ["Category", "Customer", "Order"]
        assert registry.remove_table("order").name == "Order"
        assert registry.list_tables() == ["Category", "Customer"]
        assert registry.remove_table("order") is None

    def test_register_schema_and_to_schema(self, customer_table):
        registry = SchemaRegistry()
        registry.register_schema(Schema("crm", tables=[customer_table]))
        assert [t.name for t in registry.to_schema("crm")] == ["Customer"]

    def test_get_registry_default(self, registry):
        assert get_registry() is schema_registry
        assert get_registry(registry) is registry


class TestPrimaryKey:
    """Test primary-key inference."""

    def test_declared_key_wins(self, registry):
        assert registry.primary_key("Order") == "OrderId"
        assert registry.primary_key("Customer") == "Id"

    def test_default_without_items_or_table(self):
        assert SchemaRegistry().primary_key("Order") == "Id"
        assert SchemaRegistry().primary_key("") == "Id"

    def test_default_follows_settings(self, monkeypatch):
        monkeypatch.setenv("RECORDKIT_DEFAULT_PRIMARY_KEY", "Key")
        assert SchemaRegistry().primary_key(None) == "Key"

    def test_name_id_item(self):
        assert SchemaRegistry().primary_key("Order", {"OrderId": 5, "Id": 6}) == "OrderId"

    def test_candidate_item_with_key_like_value(self):
        registry = SchemaRegistry()
        assert registry.primary_key("Order", {"id": 5}) == "id"
        assert registry.primary_key("Order", {"order_id": str(uuid.uuid4())}) == "order_id"

    def test_candidate_item_with_other_value_is_ignored(self):
        registry = SchemaRegistry()
        assert registry.primary_key("Order", {"id": "abc"}) == "OrderId"
        assert registry.primary_key("Order", {"id": True}) == "OrderId"

    def test_lowercase_entity_name(self):
        assert SchemaRegistry().primary_key("order", {"x": 1}) == "orderid"

    def test_inferred_from_columns_and_memoized(self, registry, category_table):
        assert category_table.primary_key == ""
        assert registry.primary_key("Category") == "Id"
        assert category_table.primary_key == "Id"
        # Later items do not change a resolved key
        assert registry.primary_key("Category", {"CategoryId": 3}) == "Id"


class TestParentKey:
    """Test parent-key inference."""

    def test_inferred_from_columns_and_memoized(self, registry, category_table):
        assert registry.parent_key("Category") == "ParentId"
        assert category_table.parent_key == "ParentId"

    def test_fallbacks(self):
        registry = SchemaRegistry()
        assert registry.parent_key("Node") == "ParentId"
        assert registry.parent_key("node") == "parentnodeid"
        assert registry.parent_key(None) == "ParentId"
