"""Tests for the pydantic schema exchange models."""

import json
from datetime import datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from recordkit.core.builder import schema, table
from recordkit.core.enums import DataType, ReferenceType, Requirement
from recordkit.core.exchange import ColumnModel, SchemaModel, TableModel, dumps_schema, loads_schema


@pytest.fixture
def crm():
    result = schema(
        "crm",
        table("Order").primary_key("OrderId").reference("CustomerId", "Customer", on_delete=ReferenceType.CASCADE),
        table("Customer")
        .primary_key("Id")
        .column("Name", DataType.STRING, Requirement.REQUIRED, pattern=r"\w+")
        .column("Status", options={1: "New", 2: "Regular"})
        .index("IX_Name", "Name", unique=True),
        title="CRM",
    )
    result.created_time = datetime(2024, 1, 2, 3, 4, 5)
    return result


class TestModels:
    """Test conversion between schema objects and models."""

    def test_column_model(self, customer_table):
        model = ColumnModel.from_column(customer_table.get_column_schema("Id"))
        assert model.data_type == DataType.INT64
        assert model.requirement == int(Requirement.PRIMARY_KEY)
        column = model.to_column(order=0)
        assert column.requirement == Requirement.PRIMARY_KEY
        assert column.order == 0

    def test_table_model_round_trip(self, customer_table):
        restored = TableModel.from_table(customer_table).to_table()
        assert restored.name == "Customer"
        assert restored.primary_key == "Id"
        assert restored.view_format == "{%Name%}"
        assert restored.column_names == customer_table.column_names
        status = restored.get_column_schema("Status")
        assert status.data_type == DataType.OPTION_SET
        assert status.option_title(2) == "Regular"
        assert all(c.table_name == "Customer" for c in restored)

    def test_schema_model_round_trip(self, crm):
        restored = SchemaModel.from_schema(crm).to_schema()
        assert restored.title == "CRM"
        assert restored.created_time == datetime(2024, 1, 2, 3, 4, 5)
        assert [t.name for t in restored] == ["Customer", "Order"]
        [relation] = restored.relations
        assert (relation.from_table, relation.to_table, relation.delete) == ("Order", "Customer", ReferenceType.CASCADE)
        assert restored.get_table_by_name("Customer").indexes[0].unique

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": ""},
            {"name": "Age", "requirement": -1},
            {"name": "Age", "data_type": 1000},
        ],
    )
    def test_invalid_columns_rejected(self, payload):
        with pytest.raises(PydanticValidationError):
            ColumnModel(**payload)


class TestJson:
    """Test JSON dumps/loads."""

    def test_enums_travel_by_value(self, crm):
        payload = json.loads(dumps_schema(crm))
        customer = next(t for t in payload["tables"] if t["name"] == "Customer")
        key = customer["columns"][0]
        assert key["data_type"] == 12
        assert key["requirement"] == 63
        assert payload["relations"][0]["delete"] == 1

    def test_round_trip(self, crm):
        restored = loads_schema(dumps_schema(crm, indent=2))
        order = restored.get_table_by_name("Order")
        fk = order.get_column_schema("CustomerId")
        assert fk.foreign_table == "Customer"
        assert fk.is_foreign_key
        assert restored.get_table_by_name("Customer").get_column_schema("Name").pattern == r"\w+"

    def test_loads_rejects_bad_json(self):
        with pytest.raises(PydanticValidationError):
            loads_schema('{"tables": [{"name": 5}]}')
