"""Keyed collection - an observable list with a ``key -> position`` index.

The key is a single designated attribute of the element type. When it is
not given explicitly it is discovered once per element type: the first
public annotated attribute (or typed property) whose type is the key type.

Every structural change (insert, move, remove, replace, clear) keeps the
index consistent with the live sequence. Elements that leave the
collection through remove/replace/clear are appended to ``deleting``,
which is how a caller later learns what to delete from the data store.

Examples:
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Tag:
    ...     label: str
    ...     weight: int = 0
    >>> tags = KeyedCollection([Tag("a"), Tag("b")])
    >>> tags.get_by("b").label
    'b'
    >>> del tags[0]
    >>> [t.label for t in tags.deleting]
    ['a']
"""

from __future__ import annotations

import threading
import typing
from collections.abc import Callable, Iterable, MutableSequence
from enum import Enum
from typing import Any, Generic, TypeVar, overload

from recordkit.core.errors import SchemaError, ValidationError

T = TypeVar("T")
K = TypeVar("K")

_key_fields: dict[tuple[type, type], str] = {}
_key_fields_lock = threading.Lock()


class ChangeAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"
    RESET = "reset"


Observer = Callable[[ChangeAction, Any, int], None]


def discover_key_field(item_type: type, key_type: type) -> str:
    """First public attribute of ``item_type`` annotated with ``key_type``."""
    cache_key = (item_type, key_type)
    with _key_fields_lock:
        if cache_key in _key_fields:
            return _key_fields[cache_key]

        try:
            hints = typing.get_type_hints(item_type)
        except (NameError, TypeError):
            hints = {}
        found = None
        for name, hint in hints.items():
            if not name.startswith("_") and hint is key_type:
                found = name
                break
        if found is None:
            for klass in reversed(item_type.__mro__):
                for name, member in vars(klass).items():
                    if name.startswith("_") or not isinstance(member, property):
                        continue
                    hint = typing.get_type_hints(member.fget).get("return") if member.fget else None
                    if hint is key_type:
                        found = name
                        break
                if found is not None:
                    break
        if found is None:
            raise SchemaError(
                f"{item_type.__name__} has no attribute of type {key_type.__name__}",
                name=item_type.__name__,
            )
        _key_fields[cache_key] = found
        return found


class KeyedCollection(MutableSequence, Generic[T, K]):
    """
    Observable list indexed by a key attribute.

    With ``unique=True`` (the default) inserting a second element with an
    existing key raises :class:`ValidationError`. ``None`` and empty-string
    keys are never indexed.
    """

    key_type: type = str

    def __init__(
        self,
        items: Iterable[T] = (),
        *,
        key_field: str | None = None,
        key_type: type | None = None,
        unique: bool = True,
    ):
        self._items: list[T] = []
        self._cache: dict[K, int] = {}
        self._deleting: list[T] = []
        self._observers: list[Observer] = []
        self._key_field = key_field
        self._key_type = key_type or self.key_type
        self._unique = unique
        for item in items:
            self.append(item)

    # -- keys ------------------------------------------------------------------

    @property
    def key_field(self) -> str | None:
        return self._key_field

    def key_of(self, item: T) -> K:
        if self._key_field is None:
            self._key_field = discover_key_field(type(item), self._key_type)
        return getattr(item, self._key_field)

    def _indexable(self, key: Any) -> bool:
        return key is not None and key != ""

    def _rebuild(self) -> None:
        self._cache.clear()
        for index, item in enumerate(self._items):
            key = self.key_of(item)
            if self._indexable(key):
                self._cache.setdefault(key, index)

    def _check_unique(self, item: T, ignore: int = -1) -> None:
        if not self._unique:
            return
        key = self.key_of(item)
        if not self._indexable(key):
            return
        index = self._find(key)
        if index >= 0 and index != ignore:
            raise ValidationError(
                f"Duplicate key {key!r}",
                field=self._key_field,
                value=key,
                constraint="unique",
            )

    def _find(self, key: K) -> int:
        index = self._cache.get(key, -1)
        if 0 <= index < len(self._items) and self.key_of(self._items[index]) == key:
            return index
        # Keys derived from mutable state can drift; resync once.
        self._rebuild()
        return self._cache.get(key, -1)

    def get_by(self, key: K) -> T | None:
        """Element with ``key`` or None."""
        if not self._indexable(key):
            return None
        index = self._find(key)
        return self._items[index] if index >= 0 else None

    def contains_key(self, key: K) -> bool:
        return self.get_by(key) is not None

    def keys(self) -> list[K]:
        return [self.key_of(item) for item in self._items]

    # -- observation -------------------------------------------------------------

    def subscribe(self, observer: Observer) -> None:
        """Register ``observer(action, item, index)`` for every change."""
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def _notify(self, action: ChangeAction, item: Any, index: int) -> None:
        for observer in list(self._observers):
            observer(action, item, index)

    # -- deletion tracking -------------------------------------------------------

    @property
    def deleting(self) -> list[T]:
        """Elements removed since creation (or since ``accept_deletions``)."""
        return list(self._deleting)

    def _track_deleted(self, item: T) -> None:
        self._deleting.append(item)

    def accept_deletions(self) -> None:
        """Forget removed elements once the store has deleted them."""
        self._deleting.clear()

    # -- sequence protocol -------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index):
        return self._items[index]

    def __setitem__(self, index: int, item: T) -> None:
        if isinstance(index, slice):
            raise TypeError("slice assignment is not supported")
        old = self._items[index]
        if item is old or item == old:
            return
        index = index % len(self._items)
        self._check_unique(item, ignore=index)
        self._items[index] = item
        self._rebuild()
        self._track_deleted(old)
        self._notify(ChangeAction.REPLACE, item, index)

    def __delitem__(self, index: int) -> None:
        if isinstance(index, slice):
            for i in sorted(range(*index.indices(len(self._items))), reverse=True):
                del self[i]
            return
        index = index % len(self._items) if self._items else index
        item = self._items.pop(index)
        self._rebuild()
        self._track_deleted(item)
        self._notify(ChangeAction.REMOVE, item, index)

    def insert(self, index: int, item: T) -> None:
        self._check_unique(item)
        size = len(self._items)
        self._items.insert(index, item)
        position = max(size + index, 0) if index < 0 else min(index, size)
        if position == size:
            key = self.key_of(item)
            if self._indexable(key):
                self._cache.setdefault(key, position)
        else:
            self._rebuild()
        self._notify(ChangeAction.ADD, item, position)

    def move(self, old_index: int, new_index: int) -> None:
        item = self._items.pop(old_index)
        self._items.insert(new_index, item)
        self._rebuild()
        self._notify(ChangeAction.MOVE, item, new_index)

    def _swap(self, first: int, second: int) -> None:
        """Exchange two positions without deletion tracking."""
        items = self._items
        items[first], items[second] = items[second], items[first]
        self._rebuild()
        self._notify(ChangeAction.MOVE, items[first], first)
        self._notify(ChangeAction.MOVE, items[second], second)

    def reverse(self) -> None:
        self._items.reverse()
        self._rebuild()
        self._notify(ChangeAction.RESET, None, -1)

    def clear(self) -> None:
        for item in self._items:
            self._track_deleted(item)
        self._items.clear()
        self._cache.clear()
        self._notify(ChangeAction.RESET, None, -1)

    def __iter__(self):
        return iter(self._items)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"


__all__ = [
    "ChangeAction",
    "KeyedCollection",
    "discover_key_field",
]
