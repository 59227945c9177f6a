"""Tests for record synthesis from shapes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Union

from recordkit.core import records


class Named(Protocol):
    Name: str


class Person(Named, Protocol):
    __entity_name__ = "Customer"

    Age: int
    Birthday: Optional[datetime]


class Shape(ABC):
    Id: int

    @property
    @abstractmethod
    def Title(self) -> str:
        ...


class Plain:
    Id: int = 0


@dataclass
class Row:
    Id: int = 0
    Name: str = ""
    _hidden: str = ""


class TestShapes:
    """Test shape detection and field discovery."""

    def test_is_shape(self):
        assert records.is_shape(Person)
        assert records.is_shape(Shape)
        assert not records.is_shape(Plain)
        assert not records.is_shape(Row)

    def test_entity_name_of(self):
        assert records.entity_name_of(Person) == "Customer"
        assert records.entity_name_of(Named) == "Named"

    def test_inherited_fields_come_first(self):
        assert list(records.shape_fields(Person)) == ["Name", "Age", "Birthday"]

    def test_typed_properties(self):
        assert records.shape_fields(Shape) == {"Id": int, "Title": str}


class TestSynthesis:
    """Test dataclass generation."""

    def test_create_protocol_record(self):
        person = records.create(Person, Name="Ann")
        assert (person.Name, person.Age, person.Birthday) == ("Ann", None, None)
        assert Person in type(person).__mro__
        assert type(person).__name__ == "PersonRecord"
        assert type(person).__entity_name__ == "Customer"

    def test_create_abc_record(self):
        record = records.create(Shape, Id=1, Title="x")
        assert isinstance(record, Shape)
        assert record.Title == "x"

    def test_records_are_independent(self):
        first, second = records.create(Person), records.create(Person)
        first.Name = "Ann"
        assert second.Name is None

    def test_synthesize_is_cached(self):
        record = records.synthesize(Person)
        assert records.synthesize(Person) is record
        records.clear_cache()
        assert records.synthesize(Person) is not record


class TestFieldAccess:
    """Test conversion and field extraction."""

    def test_convert_field(self):
        assert records.convert_field(int, "5") == 5
        assert records.convert_field(Optional[int], "5") == 5
        assert records.convert_field(Union[int, str], "5") == "5"
        assert records.convert_field(Optional[datetime], "2024-01-02T03:04:05") == datetime(2024, 1, 2, 3, 4, 5)

    def test_public_fields_of_dataclass(self):
        assert records.public_fields(Row(1, "Ann")) == {"Id": 1, "Name": "Ann"}

    def test_public_fields_of_plain_object(self):
        class Account:
            def __init__(self):
                self.Id = 3
                self._secret = "x"

            @property
            def Code(self) -> str:
                return f"A{self.Id}"

        assert records.public_fields(Account()) == {"Id": 3, "Code": "A3"}
