"""
Record synthesis - concrete dataclasses generated from abstract shapes.

A *shape* is a ``typing.Protocol`` or an abstract base class that declares
fields (annotations or abstract properties). Code is written against the
shape; ``create(shape)`` hands back a plain, independently mutable
instance of a dataclass built for it.

Manifesto:
    Shapes describe data, synthesized records hold it. Each record is its
    own object, so converting an entity to a shape never aliases the
    entity's storage.

Architecture:
    ::

        Shape (Protocol / ABC)
            │  shape_fields(): annotations + typed properties, whole MRO
            ▼
        synthesize() ──▶ dataclasses.make_dataclass(..., bases=(shape,))
            │  cached per shape under a lock
            ▼
        create(shape, **values) ──▶ <Shape>Record(field=None, ...)

Examples:
    >>> class Customer(Protocol):
    ...     name: str
    ...     age: int
    >>> record = create(Customer, name="Ann")
    >>> record.name, record.age
    ('Ann', None)
    >>> synthesize(Customer) is synthesize(Customer)
    True

Guardrails:
    ❌ DON'T: Expect validation at synthesis time
    ✅ DO: Validate when converting to or from an Entity

Tags:
    records, dataclasses, synthesis, shapes, recordkit
"""

from __future__ import annotations

import dataclasses
import inspect
import threading
import types
import typing
from typing import Any, Union

from recordkit.core.values import coerce_to_type

_records: dict[type, type] = {}
_records_lock = threading.Lock()

_SKIP_BASES = (object, typing.Generic)


# =============================================================================
# SHAPES
# =============================================================================


def is_shape(target: type) -> bool:
    """True for Protocols and abstract classes."""
    return bool(getattr(target, "_is_protocol", False)) or inspect.isabstract(target)


def entity_name_of(cls: type) -> str:
    """``__entity_name__`` when declared, else the class name."""
    return getattr(cls, "__entity_name__", None) or cls.__name__


def shape_fields(shape: type) -> dict[str, Any]:
    """
    Public fields of ``shape`` and everything it inherits.

    Annotated attributes come first, then properties with a return
    annotation. Base-class fields precede the ones a subclass adds.
    """
    fields: dict[str, Any] = {}
    try:
        hints = typing.get_type_hints(shape)
    except (NameError, TypeError):
        hints = {}
        for klass in reversed(shape.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
    for name, hint in hints.items():
        if not name.startswith("_"):
            fields[name] = hint

    for klass in reversed(shape.__mro__):
        if klass in _SKIP_BASES:
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or name in fields or not isinstance(member, property):
                continue
            try:
                fields[name] = typing.get_type_hints(member.fget).get("return", Any)
            except (NameError, TypeError):
                fields[name] = Any
    return fields


# =============================================================================
# SYNTHESIS
# =============================================================================


def synthesize(shape: type) -> type:
    """Dataclass implementing ``shape``; built once and reused."""
    with _records_lock:
        record = _records.get(shape)
        if record is not None:
            return record

        fields = [
            (name, hint, dataclasses.field(default=None))
            for name, hint in shape_fields(shape).items()
        ]
        record = dataclasses.make_dataclass(
            f"{shape.__name__}Record",
            fields,
            bases=(shape,),
            namespace={"__entity_name__": entity_name_of(shape)},
        )
        record.__module__ = shape.__module__
        _records[shape] = record
        return record


def create(shape: type, **values: Any) -> Any:
    """New record for ``shape``; unspecified fields are None."""
    return synthesize(shape)(**values)


# =============================================================================
# FIELD ACCESS
# =============================================================================


def convert_field(hint: Any, value: Any) -> Any:
    """Convert ``value`` to the type named by an annotation (Optional unwrapped)."""
    origin = typing.get_origin(hint)
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) != 1:
            return value
        hint = args[0]
    if not isinstance(hint, type):
        return value
    return coerce_to_type(hint, value)


def public_fields(obj: Any) -> dict[str, Any]:
    """Readable public fields of an instance."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj) if not f.name.startswith("_")}

    fields = {name: value for name, value in vars(obj).items() if not name.startswith("_")}
    for klass in type(obj).__mro__:
        for name, member in vars(klass).items():
            if isinstance(member, property) and not name.startswith("_") and name not in fields:
                fields[name] = getattr(obj, name)
    return fields


def clear_cache() -> None:
    """Drop synthesized records (tests)."""
    with _records_lock:
        _records.clear()


__all__ = [
    "is_shape",
    "entity_name_of",
    "shape_fields",
    "synthesize",
    "create",
    "convert_field",
    "public_fields",
    "clear_cache",
]
