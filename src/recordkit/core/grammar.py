"""
Entity text grammar - a brace-delimited codec for entities and collections.

Manifesto:
    The grammar predates JSON support in the systems that speak it, so it
    is bespoke and deliberately lossy: empty strings, zero numbers and empty
    GUIDs are dropped on the way out, and values come back typed by
    inference rather than by a schema.

Architecture:
    ::

        entity      := "{" [ pair ("," pair)* ] "}"
        pair        := quoted ":" value
        value       := quoted | bare | entity | collection | array
        collection  := "{#" Name "[" [ entity ("," entity)* ] "]}"
        array       := "[" [ entity ("," entity)* ] "]"
        quoted      := '"' text-with-doubled-quotes '"'
        bare        := run of chars up to whitespace or one of , } ]

        reference   := #REF=<Name>[/#TXT=<Text>]/#ID=<Id>
        option set  := #SET=<Value>[/#TXT=<Text>]

    Bare-token inference order (``get_value``): option set, reference,
    32-bit int, 64-bit int, GUID, canonical boolean, canonical number,
    ``YYYY-MM-DDThh:mm:ss[+offset]``, configured date layouts, text.
    Integer-looking tokens with a leading zero stay text ("0123" is a code,
    not a number).

Examples:
    >>> e = Entity("Customer")
    >>> e["Name"] = "Ann"
    >>> e["Age"] = 42
    >>> e["Note"] = ""
    >>> dumps_entity(e)
    '{"Name":"Ann","Age":42}'
    >>> parse_entity('{"Age":42,"Code":0123}').items
    {'Age': 42, 'Code': '0123'}

Guardrails:
    ❌ DON'T: Catch exceptions around ``parse_*``; they return None instead
    ✅ DO: Use ``loads_*`` when malformed input should raise ParseError

Tags:
    grammar, codec, serialization, parser, recordkit
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from recordkit.core.entity import Entity, EntityReference, OptionSetValue
from recordkit.core.entity_collection import EntityCollection
from recordkit.core.errors import ParseError
from recordkit.core.logging import get_logger
from recordkit.core.registry import SchemaRegistry
from recordkit.core.values import (
    format_value,
    is_empty_guid,
    parse_date_text,
    parse_number,
    parse_utc_date,
    try_parse_guid,
)

logger = get_logger(__name__)

_PAIRS = {"{": "}", "[": "]", "(": ")", "«": "»"}
_BARE_STOP = ",}]"
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


# =============================================================================
# LEXICAL HELPERS
# =============================================================================


def add_quotes(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def remove_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1].replace('""', '"')
    return text


def next_quote(text: str, index: int) -> int:
    """Position of the quote closing the one at ``index`` (doubled quotes are escapes)."""
    if not text or index < 0 or index >= len(text):
        return -1
    quote = text[index]
    count = 1
    for i in range(index + 1, len(text)):
        if text[i] != quote:
            continue
        count += 1
        if count % 2 != 0:
            continue
        if i + 1 < len(text) and text[i + 1] == quote:
            continue
        return i
    return -1


def pair(text: str, index: int) -> int:
    """
    Position of the delimiter closing the one at ``index``.

    Handles ``{}``, ``[]``, ``()`` and ``«»``, counts nesting of the same
    delimiter and skips over quoted text. Returns -1 when unbalanced.
    """
    if not text or index < 0 or index >= len(text):
        return -1
    opening = text[index]
    closing = _PAIRS.get(opening)
    if closing is None:
        return -1

    depth = 0
    i = index + 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            end = next_quote(text, i)
            if end < 0:
                return -1
            i = end + 1
            continue
        if ch == closing:
            if depth == 0:
                return i
            depth -= 1
        elif ch == opening:
            depth += 1
        i += 1
    return -1


def text_for_value(text: str, index: int) -> str:
    """Bare token starting at ``index``."""
    end = index
    while end < len(text) and not text[end].isspace() and text[end] not in _BARE_STOP:
        end += 1
    return text[index:end]


# =============================================================================
# VALUES
# =============================================================================


def get_value(text: str) -> Any:
    """Infer a typed value from a token; falls back to the text itself."""
    if not text:
        return text

    option = OptionSetValue.parse(text)
    if option is not None:
        return option

    reference = EntityReference.parse(text)
    if reference is not None:
        return reference

    if _INTEGER.fullmatch(text):
        if text[0] == "0" and len(text) > 1:
            return text
        number = int(text)
        if _INT32_MIN <= number <= _INT32_MAX or _INT64_MIN <= number <= _INT64_MAX:
            return number

    guid = try_parse_guid(text)
    if guid is not None:
        return guid

    if text in ("true", "false"):
        return text == "true"

    number = parse_number(text)
    if number is not None:
        return number

    moment = parse_utc_date(text)
    if moment is not None:
        return moment

    moment = parse_date_text(text)
    if moment is not None:
        return moment

    return text


def _is_zero(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal)) and value == 0


def to_text(value: Any, quotes: bool = False) -> str:
    """
    Grammar form of a single value.

    With ``quotes`` strings, references, option sets and base64 binaries are
    quoted; everything else is emitted bare.
    """
    if value is None:
        return ""
    if isinstance(value, Entity):
        return dumps_entity(value)
    if isinstance(value, EntityCollection):
        return dumps_collection(value)
    if isinstance(value, (str, EntityReference, OptionSetValue, bytes, bytearray)):
        text = format_value(value)
        return add_quotes(text) if quotes else text
    return format_value(value)


def _quoted_value(text: str) -> Any:
    option = OptionSetValue.parse(text)
    if option is not None:
        return option
    reference = EntityReference.parse(text)
    if reference is not None:
        return reference
    return text.strip(" \t\r\n")


# =============================================================================
# ENTITIES AND COLLECTIONS
# =============================================================================


def dumps_entity(entity: Entity) -> str:
    """Serialize an entity, dropping empty strings, zeros and empty GUIDs."""
    parts = []
    for key, value in entity.items.items():
        if value is None or is_empty_guid(value) or _is_zero(value):
            continue
        if to_text(value) == "":
            continue
        parts.append(add_quotes(key) + ":" + to_text(value, True))
    return "{" + ",".join(parts) + "}"


def dumps_collection(collection: EntityCollection) -> str:
    """``{#Name[entity,entity,...]}``"""
    body = ",".join(dumps_entity(entity) for entity in collection)
    return "{#" + (collection.entity_name or "") + "[" + body + "]}"


def _skip(text: str, index: int, last: int, chars: str = "") -> int:
    while index < last and (text[index].isspace() or text[index] in chars):
        index += 1
    return index


def parse_entity(
    text: str | None,
    entity_name: str = "",
    *,
    registry: SchemaRegistry | None = None,
) -> Entity | None:
    """Decode an entity; returns None for malformed text."""
    if not text or not text.strip():
        return None
    text = text.strip()
    if text[0] != "{" or text.startswith("{#"):
        return None
    last = pair(text, 0)
    if last != len(text) - 1:
        return None

    entity = Entity(entity_name or "", registry=registry)
    idx = 1
    while True:
        idx = _skip(text, idx, last, ",")
        if idx >= last:
            break
        if text[idx] != '"':
            return None
        end = next_quote(text, idx)
        if end < 0 or end >= last:
            return None
        key = remove_quotes(text[idx:end + 1]).strip()
        if not key:
            return None

        idx = _skip(text, end + 1, last)
        if idx >= last or text[idx] != ":":
            return None
        idx = _skip(text, idx + 1, last)
        if idx >= last:
            return None

        start = text[idx]
        if start == '"':
            end = next_quote(text, idx)
            if end < 0 or end >= last:
                return None
            value = _quoted_value(remove_quotes(text[idx:end + 1]))
            idx = end + 1
        elif start in "{[":
            end = pair(text, idx)
            if end < 0 or end >= last:
                return None
            body = text[idx:end + 1]
            if start == "{" and not body.startswith("{#"):
                value = parse_entity(body, key, registry=registry)
            else:
                value = parse_collection(body, key, registry=registry)
            if value is None:
                return None
            idx = end + 1
        else:
            token = text_for_value(text, idx)
            if not token:
                return None
            value = get_value(token)
            idx += len(token)

        entity.items[key] = value
    return entity


def parse_collection(
    text: str | None,
    entity_name: str = "",
    *,
    registry: SchemaRegistry | None = None,
) -> EntityCollection | None:
    """
    Decode ``{#Name[...]}`` (or a bare ``[...]`` array named ``entity_name``).

    Elements that fail to decode are skipped with a warning.
    """
    if not text or not text.strip():
        return None
    text = text.strip()
    if text.startswith("{#"):
        if pair(text, 0) != len(text) - 1:
            return None
        bracket = text.find("[", 2)
        if bracket < 0:
            return None
        name = text[2:bracket].strip()
        close = pair(text, bracket)
        if close < 0 or text[close + 1:].strip() != "}":
            return None
    elif text.startswith("["):
        bracket, name = 0, entity_name
        close = pair(text, 0)
        if close != len(text) - 1:
            return None
    else:
        return None

    collection = EntityCollection(entity_name=name)
    idx = bracket + 1
    while True:
        idx = _skip(text, idx, close, ",")
        if idx >= close:
            break
        if text[idx] != "{":
            return None
        end = pair(text, idx)
        if end < 0 or end > close:
            return None
        element = text[idx:end + 1]
        entity = parse_entity(element, name, registry=registry)
        if entity is None:
            logger.warning("grammar_parse_failed", entity=name, text=element[:80])
        else:
            collection.append(entity)
        idx = end + 1
    return collection


def loads_entity(text: str, entity_name: str = "", *, registry: SchemaRegistry | None = None) -> Entity:
    """Like :func:`parse_entity` but raises :class:`ParseError`."""
    entity = parse_entity(text, entity_name, registry=registry)
    if entity is None:
        raise ParseError("Malformed entity text", text=(text or "")[:80]).with_context(
            entity_name=entity_name or None
        )
    return entity


def loads_collection(text: str, entity_name: str = "", *, registry: SchemaRegistry | None = None) -> EntityCollection:
    """Like :func:`parse_collection` but raises :class:`ParseError`."""
    collection = parse_collection(text, entity_name, registry=registry)
    if collection is None:
        raise ParseError("Malformed collection text", text=(text or "")[:80]).with_context(
            entity_name=entity_name or None
        )
    return collection


__all__ = [
    "add_quotes",
    "remove_quotes",
    "next_quote",
    "pair",
    "text_for_value",
    "get_value",
    "to_text",
    "dumps_entity",
    "dumps_collection",
    "parse_entity",
    "parse_collection",
    "loads_entity",
    "loads_collection",
]
